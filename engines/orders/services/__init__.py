"""
RMS Orders Engine — Application Services
===========================================
Order capture and catalog maintenance.

Order ids are allocated inside a store transaction over the orders
collection: the mutator sees every committed id, picks the next one
and writes the new order in the same commit. A concurrent placement
either waits (database store) or is re-run against fresh state
(in-memory store), so ids are never handed out twice.
"""

from __future__ import annotations

import logging
import uuid
from typing import Optional

from core.audit import ActivityRecorder
from core.audit.models import ACTIVITY_ITEM_ADD, ACTIVITY_ITEM_UPDATE, ACTIVITY_ORDER_PLACE
from core.commands.base import Actor
from core.config import RmsSettings, load_settings
from core.errors import ItemNotFound
from core.store.contracts import StoreProtocol
from core.time.clock import Clock, get_default_clock
from engines.orders.commands import ItemUpsertRequest, OrderPlaceRequest
from engines.orders.events import (
    build_item_written_writes,
    build_order_placed_writes,
    resolve_orders_change_type,
)
from engines.orders.models import Item, Order
from engines.orders.numbering import next_order_id

logger = logging.getLogger("rms.orders")


# ══════════════════════════════════════════════════════════════
# ORDER SERVICE
# ══════════════════════════════════════════════════════════════

class OrderService:
    """Captures new orders with sequential ids."""

    def __init__(
        self,
        *,
        store: StoreProtocol,
        clock: Optional[Clock] = None,
        settings: Optional[RmsSettings] = None,
        activity: Optional[ActivityRecorder] = None,
    ):
        self._store = store
        self._clock = clock or get_default_clock()
        self._settings = settings or load_settings()
        self._activity = activity or ActivityRecorder(store=store, clock=self._clock)

    def place_order(self, request: OrderPlaceRequest, actor: Actor) -> Order:
        command = request.to_command(actor=actor, issued_at=self._clock.now_utc())
        allocated = {}

        def mutator(values):
            existing = values["orders"] or {}
            order_id = next_order_id(
                existing.keys(),
                prefix=self._settings.order_id_prefix,
                width=self._settings.order_id_width,
            )
            allocated["order_id"] = order_id
            return build_order_placed_writes(command, order_id)

        writes = self._store.transaction(["orders"], mutator)
        order_id = allocated["order_id"]
        order = Order.from_snapshot(order_id, writes[f"orders/{order_id}"])

        logger.info(
            f"{resolve_orders_change_type(command.command_type)}: {order_id} "
            f"for waiter {order.served_by} ({order.item_count} items) "
            f"by {actor.actor_id}"
        )
        self._activity.record(actor.actor_id, ACTIVITY_ORDER_PLACE, order_id)
        return order


# ══════════════════════════════════════════════════════════════
# CATALOG SERVICE
# ══════════════════════════════════════════════════════════════

class CatalogService:
    """Adds and edits menu items."""

    def __init__(
        self,
        *,
        store: StoreProtocol,
        clock: Optional[Clock] = None,
        activity: Optional[ActivityRecorder] = None,
    ):
        self._store = store
        self._clock = clock or get_default_clock()
        self._activity = activity or ActivityRecorder(store=store, clock=self._clock)

    def add_item(self, request: ItemUpsertRequest, actor: Actor) -> Item:
        if request.item_id is not None:
            raise ValueError("add_item() allocates the id; item_id must be None.")

        command = request.to_command(actor=actor, issued_at=self._clock.now_utc())
        item_id = f"item-{uuid.uuid4().hex[:12]}"
        writes = build_item_written_writes(command, item_id)
        self._store.write(f"items/{item_id}", writes[f"items/{item_id}"])

        logger.info(f"{resolve_orders_change_type(command.command_type)}: {item_id} '{request.name}'")
        self._activity.record(actor.actor_id, ACTIVITY_ITEM_ADD, request.name)
        return Item.from_snapshot(item_id, writes[f"items/{item_id}"])

    def update_item(self, request: ItemUpsertRequest, actor: Actor) -> Item:
        if request.item_id is None:
            raise ValueError("update_item() requires item_id.")

        command = request.to_command(actor=actor, issued_at=self._clock.now_utc())
        item_id = request.item_id
        path = f"items/{item_id}"

        def mutator(values):
            current = values[path]
            if not current:
                raise ItemNotFound(item_id)
            document = build_item_written_writes(command, item_id)[path]
            # stock is left alone unless the request sets it
            if "stock" not in document and "stock" in current:
                document["stock"] = current["stock"]
            return {path: document}

        writes = self._store.transaction([path], mutator)

        logger.info(f"{resolve_orders_change_type(command.command_type)}: {item_id} '{request.name}'")
        self._activity.record(actor.actor_id, ACTIVITY_ITEM_UPDATE, request.name)
        return Item.from_snapshot(item_id, writes[path])
