"""Numeric helpers for money and distance rounding"""

from decimal import ROUND_FLOOR, Decimal
from typing import Union

Number = Union[int, float, Decimal]


def to_decimal(value: Number) -> Decimal:
    """Exact decimal of the value as written (0.1 -> Decimal('0.1'), not its binary expansion)."""
    if isinstance(value, Decimal):
        return value
    return Decimal(repr(value))


def round_half_up(value: Number, places: int = 0) -> Decimal:
    """
    Round to ``places`` decimals with halves going toward +infinity
    (2.5 -> 3, -2.5 -> -2). Python's round() would give banker's rounding.
    """
    scale = Decimal(1).scaleb(places)
    scaled = to_decimal(value) * scale
    return (scaled + Decimal("0.5")).to_integral_value(rounding=ROUND_FLOOR) / scale
