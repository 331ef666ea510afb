# Overview: Fixed-point currency helpers shared by order aggregation.

from __future__ import annotations

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Iterable

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_decimal(value: Any) -> Decimal:
    """
    Convert a JSON number/string to a Decimal exactly as written.

    Floats go through str() so 9.99 stays 9.99 instead of its binary expansion.
    Raises ValueError for anything that is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        raise ValueError("not a number")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value) if not isinstance(value, Decimal) else value
    except (InvalidOperation, TypeError):
        raise ValueError("not a number")
    if not amount.is_finite():
        raise ValueError("not a number")
    return amount


def is_whole_cents(amount: Decimal) -> bool:
    return amount == amount.quantize(CENT)


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def line_subtotal(quantity: int, unit_amount: Decimal) -> Decimal:
    return quantize(Decimal(quantity) * unit_amount)


def money_sum(amounts: Iterable[Decimal]) -> Decimal:
    return quantize(sum(amounts, ZERO))


def money_str(amount: Decimal | None) -> str | None:
    """Serialize for JSON as a fixed 2-place string (never a float)."""
    if amount is None:
        return None
    return str(quantize(Decimal(amount)))
