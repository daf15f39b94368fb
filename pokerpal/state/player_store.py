"""Player persistence store using PostgreSQL."""
from decimal import Decimal
from typing import Any, Optional

import asyncpg

from pokerpal.db.connection import db
from pokerpal.errors import ConflictError, NotFoundError, ValidationError
from pokerpal.ledger.models import Player
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)

PROFILE_FIELDS = ("first_name", "last_name", "years_of_experience", "level", "major")


class PlayerStore:
    """Player profile CRUD.

    Every method takes an optional ``conn`` so it can join a transaction
    opened by the caller; without one it runs on the shared pool.
    """

    async def create(
        self,
        player_id: str,
        first_name: str,
        last_name: str,
        years_of_experience: Optional[int] = None,
        level: Optional[str] = None,
        major: Optional[str] = None,
        is_admin: bool = False,
        conn: Any = None,
    ) -> Player:
        """Create a new player profile.

        Raises:
            ConflictError: If the player ID is taken.
        """
        try:
            record = await (conn or db).fetchrow(
                """
                INSERT INTO players (player_id, first_name, last_name, years_of_experience, level, major, is_admin)
                VALUES ($1, $2, $3, $4, $5, $6, $7)
                RETURNING *
                """,
                player_id, first_name, last_name, years_of_experience, level, major, is_admin
            )
        except asyncpg.UniqueViolationError:
            raise ConflictError("A player with this ID already exists")

        logger.info(f"Created player: {player_id}")
        return Player.from_record(record)

    async def get(self, player_id: str, conn: Any = None) -> Optional[Player]:
        """Get player by ID, or None."""
        record = await (conn or db).fetchrow(
            "SELECT * FROM players WHERE player_id = $1",
            player_id
        )
        if record is None:
            return None
        return Player.from_record(record)

    async def update(self, player_id: str, updates: dict, conn: Any = None) -> Player:
        """Update profile fields. Unknown keys are ignored.

        Raises:
            ValidationError: If no updatable field was given.
            NotFoundError: If the player does not exist.
        """
        fields = [key for key in PROFILE_FIELDS if key in updates]
        if not fields:
            raise ValidationError("No valid fields to update")

        assignments = ", ".join(f"{key} = ${i}" for i, key in enumerate(fields, 2))
        record = await (conn or db).fetchrow(
            f"UPDATE players SET {assignments} WHERE player_id = $1 RETURNING *",
            player_id, *(updates[key] for key in fields)
        )
        if record is None:
            raise NotFoundError("No player found with the specified ID")

        logger.info(f"Updated player {player_id}: {', '.join(fields)}")
        return Player.from_record(record)

    async def set_total_winnings(
        self, player_id: str, total: Decimal, conn: Any = None
    ) -> bool:
        """Write the derived winnings total. Only the aggregator calls this."""
        result = await (conn or db).execute(
            "UPDATE players SET total_winnings = $1 WHERE player_id = $2",
            total, player_id
        )
        return result != "UPDATE 0"

    async def set_admin(self, player_id: str, is_admin: bool, conn: Any = None) -> None:
        """Grant or revoke admin privileges.

        Raises:
            NotFoundError: If the player does not exist.
        """
        result = await (conn or db).execute(
            "UPDATE players SET is_admin = $1 WHERE player_id = $2",
            is_admin, player_id
        )
        if result == "UPDATE 0":
            raise NotFoundError(f"Player '{player_id}' not found")

        logger.info(f"Set is_admin={is_admin} for {player_id}")

    async def list_players(self, conn: Any = None) -> list[Player]:
        """All players, highest winnings first."""
        records = await (conn or db).fetch(
            "SELECT * FROM players ORDER BY total_winnings DESC, player_id"
        )
        return [Player.from_record(r) for r in records]

    async def list_ids(self, conn: Any = None) -> list[str]:
        """IDs of every player."""
        records = await (conn or db).fetch("SELECT player_id FROM players ORDER BY player_id")
        return [r["player_id"] for r in records]


player_store = PlayerStore()
