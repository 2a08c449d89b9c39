"""Monetary coercion and rounding helpers.

Amounts travel through the application as ``Decimal``. Sums are kept at full
precision and only passed through :func:`round2` when they are persisted or
displayed.
"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any

ZERO = Decimal("0")
ONE = Decimal("1")
CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce an arbitrary value to a finite Decimal.

    Non-numeric input (None, empty strings, garbage, NaN, infinity) yields
    ``Decimal("0")`` instead of raising.

    Args:
        value: Number, numeric string or anything else

    Returns:
        Decimal amount
    """
    if value is None or isinstance(value, bool):
        return ZERO
    if isinstance(value, Decimal):
        amount = value
    else:
        if isinstance(value, str):
            value = value.strip().replace(",", "")
            if not value:
                return ZERO
        try:
            # str() keeps floats at their shortest repr instead of binary noise
            amount = Decimal(str(value)) if isinstance(value, float) else Decimal(value)
        except (InvalidOperation, TypeError, ValueError):
            return ZERO
    if not amount.is_finite():
        return ZERO
    return amount


def round2(value: Any) -> Decimal:
    """Round to whole cents, half away from zero."""
    return to_money(value).quantize(CENT, rounding=ROUND_HALF_UP)


def cents_to_money(cents: Any) -> Decimal:
    """Convert an integer amount in minor units (as sent by Stripe) to Decimal."""
    return to_money(cents) / 100
