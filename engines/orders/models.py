"""
RMS Orders Engine — Domain Models
===================================
Immutable views of the orders, catalog items and staff held in the
store, plus the normalisation that turns raw snapshot values into
them.

Snapshot tolerance (older clients wrote different shapes):
- order items as a map {item_id: {qty}} or a list [{itemId, qty}]
- waiter reference as waiter_id or waiterId
- status absent, empty or unknown → pending
- lines with qty <= 0 are dropped
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Mapping, Optional, Tuple

from core.primitives.money import ZERO, to_decimal, to_store
from core.time.timestamps import parse_timestamp

logger = logging.getLogger("rms.orders")


# ══════════════════════════════════════════════════════════════
# ORDER STATUS
# ══════════════════════════════════════════════════════════════

STATUS_PENDING = "pending"
STATUS_PAID = "paid"
STATUS_LOAN = "loan"

VALID_STATUSES = frozenset({STATUS_PENDING, STATUS_PAID, STATUS_LOAN})
SETTLED_STATUSES = frozenset({STATUS_PAID, STATUS_LOAN})


def normalize_status(raw: Any) -> str:
    if isinstance(raw, str) and raw.strip().lower() in VALID_STATUSES:
        return raw.strip().lower()
    return STATUS_PENDING


def _coerce_qty(raw: Any) -> int:
    if isinstance(raw, dict):
        raw = raw.get("qty")
    if isinstance(raw, bool):
        return 0
    try:
        return int(raw)
    except (TypeError, ValueError):
        return 0


# ══════════════════════════════════════════════════════════════
# ORDER
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class OrderLine:
    item_id: str
    qty: int


@dataclass(frozen=True)
class Order:
    """
    A captured order.

    Only status and collector change after creation.
    """

    id: str
    served_by: str
    time: str
    items: Tuple[OrderLine, ...]
    status: str = STATUS_PENDING
    collector: str = ""

    @property
    def placed_at(self) -> Optional[datetime]:
        return parse_timestamp(self.time)

    @property
    def item_count(self) -> int:
        return sum(line.qty for line in self.items)

    @property
    def is_settled(self) -> bool:
        return self.status in SETTLED_STATUSES

    @classmethod
    def from_snapshot(cls, key: str, raw: Mapping[str, Any]) -> "Order":
        if not isinstance(raw, Mapping):
            raise ValueError(f"Order '{key}' snapshot must be a mapping.")

        raw_items = raw.get("items") or {}
        lines = []
        if isinstance(raw_items, list):
            for entry in raw_items:
                if not isinstance(entry, Mapping):
                    continue
                item_id = entry.get("itemId") or entry.get("item_id")
                if item_id:
                    lines.append(OrderLine(str(item_id), _coerce_qty(entry)))
        elif isinstance(raw_items, Mapping):
            for item_id, record in raw_items.items():
                lines.append(OrderLine(str(item_id), _coerce_qty(record)))

        return cls(
            id=str(raw.get("id") or key),
            served_by=str(raw.get("waiter_id") or raw.get("waiterId") or ""),
            time=str(raw.get("time") or ""),
            items=tuple(sorted(
                (line for line in lines if line.qty > 0),
                key=lambda line: line.item_id,
            )),
            status=normalize_status(raw.get("status")),
            collector=str(raw.get("collector") or ""),
        )

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "waiter_id": self.served_by,
            "time": self.time,
            "status": self.status,
            "collector": self.collector,
            "items": {line.item_id: {"qty": line.qty} for line in self.items},
        }


def order_total(order: Order, prices: Mapping[str, Decimal]) -> Decimal:
    """Running total at live prices. Deleted items count as 0."""
    return sum(
        (line.qty * prices.get(line.item_id, ZERO) for line in order.items),
        ZERO,
    )


# ══════════════════════════════════════════════════════════════
# CATALOG ITEM
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Item:
    id: str
    name: str
    price: Decimal
    stock: Optional[int] = None  # None = unbounded

    @classmethod
    def from_snapshot(cls, key: str, raw: Mapping[str, Any]) -> "Item":
        if not isinstance(raw, Mapping):
            raise ValueError(f"Item '{key}' snapshot must be a mapping.")
        stock = raw.get("stock")
        if stock is not None:
            stock = _coerce_qty(stock)
        return cls(
            id=str(key),
            name=str(raw.get("name") or ""),
            price=to_decimal(raw.get("price")),
            stock=stock,
        )

    def to_snapshot(self) -> Dict[str, Any]:
        snapshot = {"name": self.name, "price": to_store(self.price)}
        if self.stock is not None:
            snapshot["stock"] = self.stock
        return snapshot


# ══════════════════════════════════════════════════════════════
# STAFF
# ══════════════════════════════════════════════════════════════

ROLE_ADMIN = "admin"
ROLE_WAITER = "waiter"


@dataclass(frozen=True)
class Staff:
    id: str
    name: str
    phone: str = ""
    role: str = ROLE_WAITER

    @property
    def is_waiter(self) -> bool:
        return self.role == ROLE_WAITER

    @classmethod
    def from_snapshot(cls, key: str, raw: Mapping[str, Any]) -> "Staff":
        if not isinstance(raw, Mapping):
            raise ValueError(f"Staff '{key}' snapshot must be a mapping.")
        return cls(
            id=str(raw.get("id") or key),
            name=str(raw.get("name") or ""),
            phone=str(raw.get("phone") or ""),
            role=str(raw.get("role") or ROLE_WAITER),
        )


# ══════════════════════════════════════════════════════════════
# COLLECTION PARSING
# ══════════════════════════════════════════════════════════════

def _parse_collection(raw: Any, factory, kind: str) -> list:
    if not isinstance(raw, Mapping):
        return []
    parsed = []
    for key, value in raw.items():
        try:
            parsed.append(factory(key, value))
        except ValueError as exc:
            logger.warning(f"Skipping malformed {kind} '{key}': {exc}")
    return parsed


def parse_orders(raw: Any) -> Tuple[Order, ...]:
    """Orders from an 'orders' snapshot, newest first (unparseable times last)."""
    orders = _parse_collection(raw, Order.from_snapshot, "order")
    dated = [o for o in orders if o.placed_at is not None]
    undated = sorted((o for o in orders if o.placed_at is None), key=lambda o: o.id)
    dated.sort(key=lambda o: (o.placed_at, o.id), reverse=True)
    return tuple(dated + undated)


def parse_items(raw: Any) -> Dict[str, Item]:
    return {item.id: item for item in _parse_collection(raw, Item.from_snapshot, "item")}


def parse_staff(raw: Any) -> Dict[str, Staff]:
    return {s.id: s for s in _parse_collection(raw, Staff.from_snapshot, "staff")}
