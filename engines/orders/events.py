"""
RMS Orders Engine — Change Types and Write Builders
======================================================
Engine: Orders

Each accepted request becomes a set of store writes. The builders here
turn a Command (plus values resolved inside the store transaction)
into the {path: value} mapping the transaction commits.
"""

from __future__ import annotations

from core.commands.base import Command
from core.time.timestamps import to_iso
from engines.orders.commands import (
    ORDERS_ITEM_ADD_REQUEST,
    ORDERS_ITEM_UPDATE_REQUEST,
    ORDERS_ORDER_PLACE_REQUEST,
)
from engines.orders.models import STATUS_PENDING


# ══════════════════════════════════════════════════════════════
# CHANGE TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

ORDERS_ORDER_PLACED_V1 = "orders.order.placed.v1"
ORDERS_ITEM_ADDED_V1 = "orders.item.added.v1"
ORDERS_ITEM_UPDATED_V1 = "orders.item.updated.v1"

ORDERS_CHANGE_TYPES = (
    ORDERS_ORDER_PLACED_V1,
    ORDERS_ITEM_ADDED_V1,
    ORDERS_ITEM_UPDATED_V1,
)


# ══════════════════════════════════════════════════════════════
# COMMAND → CHANGE MAPPING
# ══════════════════════════════════════════════════════════════

COMMAND_TO_CHANGE_TYPE = {
    ORDERS_ORDER_PLACE_REQUEST: ORDERS_ORDER_PLACED_V1,
    ORDERS_ITEM_ADD_REQUEST: ORDERS_ITEM_ADDED_V1,
    ORDERS_ITEM_UPDATE_REQUEST: ORDERS_ITEM_UPDATED_V1,
}


def resolve_orders_change_type(command_type: str) -> str | None:
    return COMMAND_TO_CHANGE_TYPE.get(command_type)


# ══════════════════════════════════════════════════════════════
# WRITE BUILDERS
# ══════════════════════════════════════════════════════════════

def build_order_placed_writes(command: Command, order_id: str) -> dict:
    """New order document. Status starts pending with no collector."""
    return {
        f"orders/{order_id}": {
            "id": order_id,
            "waiter_id": command.payload["waiter_id"],
            "time": to_iso(command.issued_at),
            "status": STATUS_PENDING,
            "collector": "",
            "items": {
                item_id: {"qty": line["qty"]}
                for item_id, line in command.payload["items"].items()
            },
        },
    }


def build_item_written_writes(command: Command, item_id: str) -> dict:
    document = {"name": command.payload["name"], "price": command.payload["price"]}
    if "stock" in command.payload:
        document["stock"] = command.payload["stock"]
    return {f"items/{item_id}": document}
