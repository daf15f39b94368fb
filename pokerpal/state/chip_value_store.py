"""Chip price table persistence."""
from decimal import Decimal
from typing import Any, Mapping, Optional

from pokerpal.db.connection import db
from pokerpal.ledger.chips import to_money
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)

_LOCK_CLAUSES = {None: "", "share": " FOR SHARE", "update": " FOR UPDATE"}


class ChipValueStore:
    """Reads and writes the global chip price table."""

    async def get_all(self, conn: Any = None, lock: Optional[str] = None) -> dict[str, Decimal]:
        """Current prices keyed by color.

        Args:
            conn: Optional connection of an open transaction.
            lock: ``"share"`` while computing totals, ``"update"`` while
                changing prices. Only meaningful inside a transaction.
        """
        records = await (conn or db).fetch(
            "SELECT color, value FROM chip_values ORDER BY color" + _LOCK_CLAUSES[lock]
        )
        return {r["color"]: to_money(r["value"]) for r in records}

    async def update(self, values: Mapping[str, Decimal], conn: Any = None) -> int:
        """Set prices for the given colors.

        Returns:
            Number of colors written.
        """
        updated = 0
        for color, value in values.items():
            await (conn or db).execute(
                """
                INSERT INTO chip_values (color, value)
                VALUES ($1, $2)
                ON CONFLICT (color) DO UPDATE SET value = EXCLUDED.value, updated_at = NOW()
                """,
                color, value
            )
            updated += 1
        logger.info(f"Updated {updated} chip values")
        return updated


chip_value_store = ChipValueStore()
