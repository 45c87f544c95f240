"""
RMS Money Primitive — Decimal Amounts
=======================================
Prices, order totals, sales and loan amounts are Decimal values.

RULES:
- No float arithmetic on money
- Store values are written as plain decimal strings ("12.50")
- Numeric JSON values are accepted on read (converted via str())
- Display rounding is 2 places, half-up, applied only when rendering
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable

ZERO = Decimal("0")
CENTS = Decimal("0.01")


def to_decimal(value: Any, *, default: Decimal | None = ZERO) -> Decimal | None:
    """
    Coerce a stored money value to Decimal.

    Returns default for None, booleans, empty strings and anything
    that does not parse as a finite number.
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            return default
    if not result.is_finite():
        return default
    return result


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def format_money(amount: Decimal) -> str:
    """Render with exactly two decimals: Decimal('10') → '10.00'."""
    return f"{quantize(amount):.2f}"


def to_store(amount: Decimal) -> str:
    """Serialise for the store without losing precision."""
    return format(amount.normalize(), "f") if amount != ZERO else "0"


def total(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)
