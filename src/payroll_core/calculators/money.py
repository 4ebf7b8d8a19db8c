"""Decimal helpers shared by the calculators.

Rounding:
- Internal compute keeps full Decimal precision
- Amounts are rounded to cents only for presentation and posting
- Non-numeric, NaN and negative inputs never propagate past the boundary
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
ONE = Decimal("1")
OUTPUT_PRECISION = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """Coerce an upstream value to Decimal; None, NaN and garbage become zero."""
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value))
        except (InvalidOperation, ValueError):
            return ZERO
    if result.is_nan() or result.is_infinite():
        return ZERO
    return result


def non_negative(value: Any) -> Decimal:
    """Coerce and clamp to zero."""
    amount = to_decimal(value)
    return amount if amount > 0 else ZERO


def round_to_cents(amount: Decimal) -> Decimal:
    """Round amount to 2 decimal places (cents)."""
    return amount.quantize(OUTPUT_PRECISION, rounding=ROUND_HALF_UP)


def clamp(value: Decimal, low: Decimal = ZERO, high: Decimal = ONE) -> Decimal:
    return max(low, min(high, value))
