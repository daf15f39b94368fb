"""Chip ledger: converting chip breakdowns into money.

All money is ``Decimal`` rounded half-up to cents. Nothing in this module
touches the database; prices are passed in by the caller.
"""
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Mapping, Optional, Union

from pokerpal.errors import ValidationError

CENT = Decimal("0.01")

Money = Decimal
Number = Union[int, float, str, Decimal]


class ChipColor(str, Enum):
    """Chip colors known to the price table."""
    WHITE = "white"
    RED = "red"
    GREEN = "green"
    BLACK = "black"
    BLUE = "blue"


DEFAULT_CHIP_VALUES: dict[ChipColor, Decimal] = {
    ChipColor.WHITE: Decimal("1.00"),
    ChipColor.RED: Decimal("2.00"),
    ChipColor.GREEN: Decimal("5.00"),
    ChipColor.BLACK: Decimal("20.00"),
    ChipColor.BLUE: Decimal("50.00"),
}


def to_money(value: Number) -> Money:
    """Round a number to 2 decimal places.

    Floats go through ``str`` first so 0.1 stays 0.10 instead of its binary
    expansion.
    """
    if isinstance(value, float):
        value = str(value)
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def _color_key(color) -> str:
    return color.value if isinstance(color, ChipColor) else str(color)


def total_value(breakdown: Mapping, prices: Mapping) -> Money:
    """Monetary value of a chip breakdown.

    Colors missing from ``prices`` contribute nothing. Counts are assumed to
    be non-negative integers (checked at the request boundary).

    Args:
        breakdown: Chip color to count.
        prices: Chip color to unit value.

    Returns:
        Sum of count * price over priced colors, rounded to cents.
    """
    price_by_color = {_color_key(c): Decimal(str(p)) for c, p in prices.items()}
    total = Decimal("0")
    for color, count in breakdown.items():
        price = price_by_color.get(_color_key(color))
        if price is not None:
            total += price * int(count)
    return to_money(total)


def net_winnings(end_total: Number, start_total: Number) -> Money:
    """End total minus start total. Negative for a losing session."""
    return to_money(to_money(end_total) - to_money(start_total))


def resolve_total(
    declared_total: Optional[Number],
    breakdown: Optional[Mapping],
    prices: Mapping,
) -> Money:
    """Pick the chip total for a check-in or check-out.

    A non-empty breakdown takes precedence over a declared total.

    Raises:
        ValidationError: If neither is supplied.
    """
    if breakdown:
        return total_value(breakdown, prices)
    if declared_total is not None:
        return to_money(declared_total)
    raise ValidationError("Either a chip total or a chip breakdown is required")


def normalize_breakdown(breakdown: Optional[Mapping]) -> dict[str, int]:
    """Plain ``{color: count}`` dict suitable for JSON storage."""
    if not breakdown:
        return {}
    return {_color_key(color): int(count) for color, count in breakdown.items()}
