"""
Numeric helpers shared by the scoring pipeline.

Every point and interval value in the engine is rounded with
round_half_away_from_zero. Python's built-in round() uses banker's rounding
and binary floats make products like 100 * 1.265 land just below .5, so the
rounding works on Decimal values.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

Number = int | float | Decimal

ONE = Decimal("1")


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal via its shortest repr."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_away_from_zero(value: Number) -> int:
    """
    Round to the nearest integer, ties away from zero.

    Examples:
        2.5 -> 3, -2.5 -> -3, 37.5 -> 38
    """
    # ROUND_HALF_UP on Decimal rounds ties away from zero for both signs
    return int(to_decimal(value).quantize(ONE, rounding=ROUND_HALF_UP))


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    return max(low, min(high, value))


def clamp_decimal(value: Decimal, low: Decimal, high: Decimal) -> Decimal:
    """Decimal flavour of clamp()."""
    return max(low, min(high, value))
