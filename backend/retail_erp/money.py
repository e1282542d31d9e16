# Overview: Decimal helpers for currency amounts (two places, half-up).

from __future__ import annotations

from decimal import Decimal, ROUND_HALF_UP, ROUND_FLOOR

TWO_PLACES = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value) -> Decimal:
    """Coerce int/str/float/Decimal to Decimal without binary float noise."""
    if isinstance(value, Decimal):
        return value
    if value is None:
        return ZERO
    return Decimal(str(value))


def round_money(value) -> Decimal:
    """Round to two decimal places, half-up (12.345 -> 12.35)."""
    return to_decimal(value).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def floor_int(value) -> int:
    return int(to_decimal(value).to_integral_value(rounding=ROUND_FLOOR))


def money_str(value) -> str | None:
    if value is None:
        return None
    return str(round_money(value))
