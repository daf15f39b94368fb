"""Database schema and initialization."""
from pokerpal.db.connection import db
from pokerpal.ledger.chips import DEFAULT_CHIP_VALUES
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)

# SQL schema for all tables (for fresh installs)
SCHEMA = """
-- Players table
CREATE TABLE IF NOT EXISTS players (
    player_id VARCHAR(50) PRIMARY KEY CHECK (player_id ~ '^[A-Za-z0-9]{3,50}$'),
    first_name VARCHAR(100) NOT NULL,
    last_name VARCHAR(100) NOT NULL,
    years_of_experience INTEGER CHECK (years_of_experience BETWEEN 0 AND 50),
    level VARCHAR(20),
    major VARCHAR(100),
    is_admin BOOLEAN NOT NULL DEFAULT FALSE,
    total_winnings NUMERIC(12, 2) NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_players_winnings ON players(total_winnings DESC);

-- Chip price table
CREATE TABLE IF NOT EXISTS chip_values (
    color VARCHAR(20) PRIMARY KEY,
    value NUMERIC(10, 2) NOT NULL CHECK (value > 0),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

-- Sessions (one check-in / check-out cycle per player and date)
CREATE TABLE IF NOT EXISTS sessions (
    session_id SERIAL PRIMARY KEY,
    player_id VARCHAR(50) NOT NULL REFERENCES players(player_id) ON DELETE CASCADE,
    session_date DATE NOT NULL,
    start_photo_url TEXT,
    start_chips NUMERIC(12, 2) NOT NULL DEFAULT 0,
    start_chip_breakdown JSONB NOT NULL DEFAULT '{}'::jsonb,
    end_photo_url TEXT,
    end_chips NUMERIC(12, 2),
    end_chip_breakdown JSONB,
    net_winnings NUMERIC(12, 2),
    is_completed BOOLEAN NOT NULL DEFAULT FALSE,
    admin_override BOOLEAN NOT NULL DEFAULT FALSE,
    override_reason TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
    CONSTRAINT net_winnings_only_when_completed
        CHECK (is_completed OR (net_winnings IS NULL AND NOT admin_override))
);

CREATE INDEX IF NOT EXISTS idx_sessions_player ON sessions(player_id, session_date DESC);

-- At most one open session per player and date
CREATE UNIQUE INDEX IF NOT EXISTS uq_sessions_open_per_day
    ON sessions(player_id, session_date)
    WHERE NOT is_completed;

-- Admin audit trail (insert-only)
CREATE TABLE IF NOT EXISTS audit_logs (
    log_id SERIAL PRIMARY KEY,
    admin_id VARCHAR(50) NOT NULL,
    action VARCHAR(50) NOT NULL,
    target_table VARCHAR(50) NOT NULL,
    target_id VARCHAR(100) NOT NULL,
    old_values JSONB,
    new_values JSONB,
    timestamp TIMESTAMPTZ NOT NULL DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_audit_logs_timestamp ON audit_logs(timestamp DESC);

-- Update trigger for updated_at columns
CREATE OR REPLACE FUNCTION update_updated_at()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS players_updated_at ON players;
CREATE TRIGGER players_updated_at
    BEFORE UPDATE ON players
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at();

DROP TRIGGER IF EXISTS sessions_updated_at ON sessions;
CREATE TRIGGER sessions_updated_at
    BEFORE UPDATE ON sessions
    FOR EACH ROW
    EXECUTE FUNCTION update_updated_at();
"""

# Migrations for existing databases
MIGRATIONS = [
    # Migration 1: Store the reason given for admin overrides
    """
    DO $$
    BEGIN
        IF NOT EXISTS (
            SELECT 1 FROM information_schema.columns
            WHERE table_name = 'sessions' AND column_name = 'override_reason'
        ) THEN
            ALTER TABLE sessions ADD COLUMN override_reason TEXT;
        END IF;
    END $$;
    """,
]


async def seed_defaults() -> None:
    """Insert default chip values and the default admin player if missing."""
    for color, value in DEFAULT_CHIP_VALUES.items():
        await db.execute(
            """
            INSERT INTO chip_values (color, value)
            VALUES ($1, $2)
            ON CONFLICT (color) DO NOTHING
            """,
            color.value, value
        )

    await db.execute(
        """
        INSERT INTO players (player_id, first_name, last_name, years_of_experience, level, major, is_admin)
        VALUES ('admin', 'Admin', 'User', 5, 'Expert', 'Computer Science', TRUE)
        ON CONFLICT (player_id) DO NOTHING
        """
    )


async def init_db() -> None:
    """Initialize database schema, run migrations and seed defaults."""
    logger.info("Initializing database schema...")
    await db.execute(SCHEMA)

    logger.info("Running migrations...")
    for i, migration in enumerate(MIGRATIONS, 1):
        try:
            await db.execute(migration)
            logger.info(f"Migration {i} completed")
        except Exception as e:
            logger.warning(f"Migration {i} skipped or failed: {e}")

    await seed_defaults()
    logger.info("Database schema initialized")
