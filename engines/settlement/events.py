"""
RMS Settlement Engine — Change Types and Write Builders
==========================================================
Engine: Settlement

A status change writes the order's status and collector fields. A
move to loan also writes one ledger entry, committed together with
the status in a single store transaction.
"""

from __future__ import annotations

from core.commands.base import Command
from engines.orders.models import SETTLED_STATUSES, STATUS_LOAN, STATUS_PAID, STATUS_PENDING


# ══════════════════════════════════════════════════════════════
# CHANGE TYPE CONSTANTS
# ══════════════════════════════════════════════════════════════

SETTLEMENT_ORDER_PAID_V1 = "settlement.order.paid.v1"
SETTLEMENT_ORDER_LOANED_V1 = "settlement.order.loaned.v1"
SETTLEMENT_ORDER_REOPENED_V1 = "settlement.order.reopened.v1"

STATUS_TO_CHANGE_TYPE = {
    STATUS_PAID: SETTLEMENT_ORDER_PAID_V1,
    STATUS_LOAN: SETTLEMENT_ORDER_LOANED_V1,
    STATUS_PENDING: SETTLEMENT_ORDER_REOPENED_V1,
}


def resolve_settlement_change_type(status: str) -> str | None:
    return STATUS_TO_CHANGE_TYPE.get(status)


# ══════════════════════════════════════════════════════════════
# WRITE BUILDERS
# ══════════════════════════════════════════════════════════════

def collector_for(command: Command) -> str:
    """Settling records who collected; reopening clears it."""
    if command.payload["status"] in SETTLED_STATUSES:
        return command.actor.display_name
    return ""


def build_status_set_writes(command: Command) -> dict:
    order_id = command.payload["order_id"]
    return {
        f"orders/{order_id}/status": command.payload["status"],
        f"orders/{order_id}/collector": collector_for(command),
    }
