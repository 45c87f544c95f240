"""
RMS Core Primitives
=====================
Shared, engine-agnostic building blocks.

    money — Decimal money coercion, rounding and formatting
"""

from core.primitives.money import (
    CENTS,
    ZERO,
    format_money,
    quantize,
    to_decimal,
    to_store,
    total,
)

__all__ = [
    "CENTS",
    "ZERO",
    "format_money",
    "quantize",
    "to_decimal",
    "to_store",
    "total",
]
