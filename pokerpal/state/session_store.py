"""Session persistence store using PostgreSQL."""
import json
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import asyncpg

from pokerpal.db.connection import db
from pokerpal.errors import ConflictError
from pokerpal.ledger.models import Session
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)


def _dumps(value: Optional[dict]) -> Optional[str]:
    return json.dumps(value) if value is not None else None


class SessionStore:
    """Session rows. The one-open-session rule lives in the schema as a
    partial unique index, so ``create`` is safe against racing check-ins."""

    async def create(
        self,
        player_id: str,
        session_date: date,
        start_chips: Decimal,
        start_chip_breakdown: dict,
        start_photo_url: Optional[str] = None,
        conn: Any = None,
    ) -> Session:
        """Insert an open session.

        Raises:
            ConflictError: If the player already has an open session that day.
        """
        try:
            record = await (conn or db).fetchrow(
                """
                INSERT INTO sessions (player_id, session_date, start_chips, start_chip_breakdown, start_photo_url)
                VALUES ($1, $2, $3, $4::jsonb, $5)
                RETURNING *
                """,
                player_id, session_date, start_chips, _dumps(start_chip_breakdown), start_photo_url
            )
        except asyncpg.UniqueViolationError:
            # Lost the race; report the winner. Inside a transaction the
            # failed statement aborts it, so look it up on the pool.
            existing = await self.get_open(player_id, session_date)
            raise ConflictError(
                "You already have an incomplete session for this date",
                existing=existing,
            )

        return Session.from_record(record)

    async def get(self, session_id: int, conn: Any = None, for_update: bool = False) -> Optional[Session]:
        """Get session by ID, or None."""
        query = "SELECT * FROM sessions WHERE session_id = $1"
        if for_update:
            query += " FOR UPDATE"
        record = await (conn or db).fetchrow(query, session_id)
        if record is None:
            return None
        return Session.from_record(record)

    async def get_open(
        self, player_id: str, session_date: date, conn: Any = None, for_update: bool = False
    ) -> Optional[Session]:
        """The open session for a player on a date, or None."""
        query = """
            SELECT * FROM sessions
            WHERE player_id = $1 AND session_date = $2 AND NOT is_completed
        """
        if for_update:
            query += " FOR UPDATE"
        record = await (conn or db).fetchrow(query, player_id, session_date)
        if record is None:
            return None
        return Session.from_record(record)

    async def save(self, session: Session, conn: Any = None) -> Session:
        """Persist the mutable columns of ``session`` and return the stored row."""
        columns = session.state_columns()
        record = await (conn or db).fetchrow(
            """
            UPDATE sessions
            SET end_chips = $2,
                end_chip_breakdown = $3::jsonb,
                net_winnings = $4,
                is_completed = $5,
                admin_override = $6,
                override_reason = $7,
                start_photo_url = $8,
                end_photo_url = $9
            WHERE session_id = $1
            RETURNING *
            """,
            session.id,
            session.end_chips,
            _dumps(session.end_chip_breakdown),
            columns["net_winnings"],
            columns["is_completed"],
            columns["admin_override"],
            columns["override_reason"],
            session.start_photo_url,
            session.end_photo_url,
        )
        return Session.from_record(record)

    async def list_for_player(self, player_id: str, conn: Any = None) -> list[Session]:
        """All sessions for a player, newest date first."""
        records = await (conn or db).fetch(
            """
            SELECT * FROM sessions
            WHERE player_id = $1
            ORDER BY session_date DESC, session_id DESC
            """,
            player_id
        )
        return [Session.from_record(r) for r in records]

    async def list_completed_for_player(self, player_id: str, conn: Any = None) -> list[Session]:
        """Completed sessions for a player."""
        records = await (conn or db).fetch(
            "SELECT * FROM sessions WHERE player_id = $1 AND is_completed ORDER BY session_id",
            player_id
        )
        return [Session.from_record(r) for r in records]

    async def list_all(self, conn: Any = None) -> list[Session]:
        """Every session in the system."""
        records = await (conn or db).fetch("SELECT * FROM sessions ORDER BY session_id")
        return [Session.from_record(r) for r in records]


session_store = SessionStore()
