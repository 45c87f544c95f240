"""
RMS Settlement Engine — Policies
==================================
Checks run inside the settlement transaction against the state the
transaction read. Each returns None (allow) or a RejectionReason.
"""

from __future__ import annotations

from typing import Optional

from core.commands.base import Command
from core.commands.rejection import ReasonCode, RejectionReason
from engines.loans.models import LoanLedger
from engines.orders.models import STATUS_LOAN, STATUS_PAID, STATUS_PENDING, Order

# Used only when strict transitions are enabled. loan is final.
ALLOWED_TRANSITIONS = frozenset({
    (STATUS_PENDING, STATUS_PAID),
    (STATUS_PENDING, STATUS_LOAN),
    (STATUS_PAID, STATUS_PENDING),
    (STATUS_PAID, STATUS_LOAN),
})


def is_transition_allowed(current: str, requested: str, *, strict: bool) -> bool:
    if not strict or current == requested:
        return True
    return (current, requested) in ALLOWED_TRANSITIONS


def order_must_exist_policy(
    command: Command,
    order: Optional[Order],
) -> Optional[RejectionReason]:
    if order is not None:
        return None
    order_id = command.payload["order_id"]
    return RejectionReason(
        code=ReasonCode.ORDER_NOT_FOUND,
        message=f"Order '{order_id}' does not exist.",
        policy_name="order_must_exist_policy",
        details={"order_id": order_id},
    )


def expected_status_policy(
    command: Command,
    order: Order,
) -> Optional[RejectionReason]:
    """Compare-and-swap check. Skipped when the request names no expected status."""
    expected = command.payload.get("expected_status")
    if expected is None or expected == order.status:
        return None
    return RejectionReason(
        code=ReasonCode.STALE_ORDER_STATE,
        message=f"Order '{order.id}' status is '{order.status}', expected '{expected}'.",
        policy_name="expected_status_policy",
        details={"order_id": order.id, "expected": expected, "actual": order.status},
    )


def transition_policy(
    command: Command,
    order: Order,
    *,
    strict: bool = False,
) -> Optional[RejectionReason]:
    requested = command.payload["status"]
    if is_transition_allowed(order.status, requested, strict=strict):
        return None
    return RejectionReason(
        code=ReasonCode.INVALID_TRANSITION,
        message=f"Order '{order.id}' cannot move from '{order.status}' to '{requested}'.",
        policy_name="transition_policy",
        details={"order_id": order.id, "current": order.status, "requested": requested},
    )


def loan_customer_must_exist_policy(
    command: Command,
    ledger: LoanLedger,
) -> Optional[RejectionReason]:
    customer_id = command.payload.get("loan_customer_id")
    if customer_id is None or customer_id in ledger:
        return None
    return RejectionReason(
        code=ReasonCode.LOAN_CUSTOMER_NOT_FOUND,
        message=f"Loan customer '{customer_id}' does not exist.",
        policy_name="loan_customer_must_exist_policy",
        details={"customer_id": customer_id},
    )


def single_loan_per_order_policy(
    command: Command,
    ledger: LoanLedger,
) -> Optional[RejectionReason]:
    """
    An order may sit in one customer's ledger only.

    An existing entry under the SAME customer is not a rejection; the
    service skips the insert instead.
    """
    order_id = command.payload["order_id"]
    existing = ledger.find_entry_for_order(order_id)
    if existing is None:
        return None
    owner, entry = existing
    if owner == command.payload.get("loan_customer_id"):
        return None
    return RejectionReason(
        code=ReasonCode.DUPLICATE_ORDER_LOAN,
        message=f"Order '{order_id}' is already on loan to customer '{owner}'.",
        policy_name="single_loan_per_order_policy",
        details={"order_id": order_id, "customer_id": owner, "entry_id": entry.id},
    )
