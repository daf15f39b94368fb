"""Chip price administration."""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Mapping, Optional

from pokerpal.auth.roles import require_admin
from pokerpal.db.connection import db
from pokerpal.errors import ValidationError
from pokerpal.ledger.chips import ChipColor, to_money
from pokerpal.ledger.models import AuditAction
from pokerpal.ledger.winnings import WinningsAggregator
from pokerpal.state.audit_store import audit_store, AuditStore
from pokerpal.state.chip_value_store import chip_value_store, ChipValueStore
from pokerpal.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ChipValueUpdate:
    """Result of a price table change."""
    chip_values: dict[str, Decimal]
    updated_count: int
    recalculated_players: int
    updated_at: datetime

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "chip_values": {color: float(v) for color, v in self.chip_values.items()},
            "updated_count": self.updated_count,
            "recalculated_players": self.recalculated_players,
            "updated_at": self.updated_at.isoformat(),
        }


def validate_prices(new_prices: Mapping) -> dict[str, Decimal]:
    """Normalize a ``{color: price}`` mapping.

    Raises:
        ValidationError: On an empty mapping, unknown color or non-positive price.
    """
    if not new_prices:
        raise ValidationError("At least one chip value is required")

    known = {c.value for c in ChipColor}
    prices = {}
    for color, value in new_prices.items():
        key = color.value if isinstance(color, ChipColor) else str(color)
        if key not in known:
            raise ValidationError(f"Chip color must be one of: {', '.join(sorted(known))}")
        price = to_money(value)
        if price <= 0:
            raise ValidationError("Chip value must be positive")
        prices[key] = price
    return prices


class ChipValueManager:
    """Reads and changes the global chip price table."""

    def __init__(
        self,
        chip_values: Optional[ChipValueStore] = None,
        audit: Optional[AuditStore] = None,
        aggregator: Optional[WinningsAggregator] = None,
        database: Any = None,
    ):
        self.chip_values = chip_values or chip_value_store
        self.audit = audit or audit_store
        self.aggregator = aggregator or WinningsAggregator()
        self.db = database or db

    async def get_chip_values(self) -> dict[str, Decimal]:
        """Current prices keyed by color."""
        return await self.chip_values.get_all()

    @require_admin
    async def update_chip_values(self, new_prices: Mapping, *, actor: Any) -> ChipValueUpdate:
        """Change prices and recalculate every player's winnings.

        The price rows stay locked for the whole transaction, so check-ins
        and check-outs computing totals wait for the new table instead of
        mixing old and new prices.

        Raises:
            AuthorizationError: If the actor is not an admin.
            ValidationError: If the price mapping is invalid.
        """
        prices = validate_prices(new_prices)

        async with self.db.transaction() as conn:
            old_values = await self.chip_values.get_all(conn=conn, lock="update")
            updated = await self.chip_values.update(prices, conn=conn)
            recalculated = await self.aggregator.recalculate_all(conn=conn)
            current = await self.chip_values.get_all(conn=conn)

            await self.audit.record(
                actor.player_id,
                AuditAction.UPDATE_CHIP_VALUES,
                "chip_values",
                "all",
                old_values={color: float(v) for color, v in old_values.items()},
                new_values={color: float(v) for color, v in prices.items()},
                conn=conn,
            )

        logger.info(
            f"Chip values updated by {actor.player_id}: {updated} colors, "
            f"{recalculated} players recalculated"
        )
        return ChipValueUpdate(
            chip_values=current,
            updated_count=updated,
            recalculated_players=recalculated,
            updated_at=datetime.now(timezone.utc),
        )


chip_value_manager = ChipValueManager()
