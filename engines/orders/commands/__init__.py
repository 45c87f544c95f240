"""
RMS Orders Engine — Request Commands
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Tuple

from core.commands.base import Command, build_command
from core.errors import ValidationError
from core.primitives.money import to_decimal, to_store
from engines.orders.models import OrderLine

ORDERS_ORDER_PLACE_REQUEST = "orders.order.place.request"
ORDERS_ITEM_ADD_REQUEST = "orders.item.add.request"
ORDERS_ITEM_UPDATE_REQUEST = "orders.item.update.request"


def _cmd(command_type, payload, **kw) -> Command:
    return build_command(command_type, payload, source_engine="orders", **kw)


@dataclass(frozen=True)
class OrderPlaceRequest:
    """
    A new order for one waiter.

    lines accepts OrderLine objects or (item_id, qty) pairs. Lines with
    qty <= 0 are dropped and repeated item ids are summed, so the
    stored line set is normalised.
    """

    waiter_id: str
    lines: tuple

    def __post_init__(self):
        if not self.waiter_id or not str(self.waiter_id).strip():
            raise ValidationError("Pick a waiter to assign the order.", field="waiter_id")

        merged: dict[str, int] = {}
        for line in self.lines or ():
            if isinstance(line, OrderLine):
                item_id, qty = line.item_id, line.qty
            else:
                item_id, qty = line
            if isinstance(qty, bool) or not isinstance(qty, int):
                raise ValidationError(f"qty for item '{item_id}' must be an integer.", field="lines")
            if not item_id:
                raise ValidationError("item_id must be non-empty.", field="lines")
            if qty > 0:
                merged[str(item_id)] = merged.get(str(item_id), 0) + qty

        if not merged:
            raise ValidationError("Add at least one item before submitting.", field="lines")

        object.__setattr__(self, "waiter_id", str(self.waiter_id).strip())
        object.__setattr__(
            self, "lines",
            tuple(OrderLine(item_id, qty) for item_id, qty in sorted(merged.items())),
        )

    @property
    def normalized_lines(self) -> Tuple[OrderLine, ...]:
        return self.lines

    def to_command(self, **kw) -> Command:
        return _cmd(ORDERS_ORDER_PLACE_REQUEST,
                    {"waiter_id": self.waiter_id,
                     "items": {line.item_id: {"qty": line.qty} for line in self.lines}},
                    **kw)


@dataclass(frozen=True)
class ItemUpsertRequest:
    """
    Add a catalog item (item_id None) or update an existing one.

    price: positive decimal (str, int or Decimal accepted).
    stock: None for unbounded, otherwise a non-negative integer.
    """

    name: str
    price: object
    stock: Optional[int] = None
    item_id: Optional[str] = None

    def __post_init__(self):
        name = self.name.strip() if isinstance(self.name, str) else ""
        if not name:
            raise ValidationError("Provide an item name.", field="name")

        price = to_decimal(self.price, default=None)
        if price is None or price <= 0:
            raise ValidationError("Provide a valid price above 0.", field="price")

        if self.stock is not None:
            if isinstance(self.stock, bool) or not isinstance(self.stock, int) or self.stock < 0:
                raise ValidationError("Stock must be a non-negative integer.", field="stock")

        if self.item_id is not None and not str(self.item_id).strip():
            raise ValidationError("item_id must be non-empty when given.", field="item_id")

        object.__setattr__(self, "name", name)
        object.__setattr__(self, "price", price)

    @property
    def unit_price(self) -> Decimal:
        return self.price

    def to_snapshot(self) -> dict:
        snapshot = {"name": self.name, "price": to_store(self.price)}
        if self.stock is not None:
            snapshot["stock"] = self.stock
        return snapshot

    def to_command(self, **kw) -> Command:
        command_type = ORDERS_ITEM_UPDATE_REQUEST if self.item_id else ORDERS_ITEM_ADD_REQUEST
        payload = dict(self.to_snapshot())
        if self.item_id:
            payload["item_id"] = self.item_id
        return _cmd(command_type, payload, **kw)
