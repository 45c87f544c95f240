"""
RMS Orders Engine — Sequential Order Numbering
================================================
Human-readable order ids: <prefix><NNN>.

    next_order_id(["order001", "order007"])  → "order008"
    next_order_id([])                         → "order001"
    next_order_id(["order999"])               → "order1000"

Stateless: the next number is max(existing suffix) + 1. Ids that do
not match the pattern are ignored. The caller must run this inside a
store transaction over the orders collection; a plain read-then-write
lets two terminals allocate the same id.
"""

from __future__ import annotations

import re
from typing import Iterable


def parse_sequence(order_id: str, prefix: str = "order") -> int | None:
    match = re.fullmatch(re.escape(prefix) + r"(\d+)", order_id or "")
    if match is None:
        return None
    return int(match.group(1))


def format_order_id(sequence: int, prefix: str = "order", width: int = 3) -> str:
    if sequence < 1:
        raise ValueError("Order sequence must be >= 1.")
    return f"{prefix}{sequence:0{width}d}"


def next_order_id(existing_ids: Iterable[str], prefix: str = "order", width: int = 3) -> str:
    highest = 0
    for order_id in existing_ids:
        sequence = parse_sequence(order_id, prefix)
        if sequence is not None and sequence > highest:
            highest = sequence
    return format_order_id(highest + 1, prefix, width)
