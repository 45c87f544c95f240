"""
RMS Settlement Engine — Application Service
==============================================
Order status transitions (pending / paid / loan) and the loan ledger
write that accompanies a move to loan.

Flow:
1. Request → Command
2. store.transaction over orders/<id> and loans:
   a. fold the order and the ledger from the transaction's values
   b. run policies; a rejection raises the matching typed error
   c. build status writes (+ ledger entry when moving to loan)
3. Log, record staff activity and return SettlementResult

The status write and the ledger entry commit together or not at all.
If a concurrent writer touches either path first, the transaction is
re-run (in-memory store) or waits on the row lock (database store),
so two collectors loaning the same order to two customers leave
exactly one ledger entry; the second sees DuplicateOrderLoan.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from core.audit import ActivityRecorder
from core.audit.models import ACTIVITY_ORDER_LOAN, ACTIVITY_ORDER_PAID, ACTIVITY_ORDER_REOPEN
from core.commands.base import Actor, Command
from core.commands.rejection import ReasonCode, RejectionReason
from core.config import RmsSettings, load_settings
from core.errors import (
    DuplicateOrderLoan,
    InvalidTransition,
    LoanCustomerNotFound,
    OrderNotFound,
    RmsError,
    StaleOrderState,
)
from core.store.contracts import StoreProtocol
from core.time.clock import Clock, get_default_clock
from engines.loans.events import build_entry_recorded_writes
from engines.loans.models import LoanEntry, LoanLedger
from engines.orders.models import (
    STATUS_LOAN,
    STATUS_PAID,
    STATUS_PENDING,
    Order,
    order_total,
    parse_items,
    parse_staff,
)
from engines.settlement.commands import OrderStatusSetRequest
from engines.settlement.events import (
    build_status_set_writes,
    collector_for,
    resolve_settlement_change_type,
)
from engines.settlement.policies import (
    expected_status_policy,
    loan_customer_must_exist_policy,
    order_must_exist_policy,
    single_loan_per_order_policy,
    transition_policy,
)

logger = logging.getLogger("rms.settlement")


# ══════════════════════════════════════════════════════════════
# REJECTION → ERROR
# ══════════════════════════════════════════════════════════════

ERROR_FACTORIES: Dict[str, Callable[[dict], RmsError]] = {
    ReasonCode.ORDER_NOT_FOUND: lambda d: OrderNotFound(d["order_id"]),
    ReasonCode.STALE_ORDER_STATE: lambda d: StaleOrderState(d["order_id"], d["expected"], d["actual"]),
    ReasonCode.INVALID_TRANSITION: lambda d: InvalidTransition(d["order_id"], d["current"], d["requested"]),
    ReasonCode.LOAN_CUSTOMER_NOT_FOUND: lambda d: LoanCustomerNotFound(d["customer_id"]),
    ReasonCode.DUPLICATE_ORDER_LOAN: lambda d: DuplicateOrderLoan(d["order_id"], d["customer_id"], d["entry_id"]),
}


def error_for(reason: RejectionReason) -> RmsError:
    return ERROR_FACTORIES[reason.code](reason.details)


STATUS_TO_ACTIVITY = {
    STATUS_PAID: ACTIVITY_ORDER_PAID,
    STATUS_LOAN: ACTIVITY_ORDER_LOAN,
    STATUS_PENDING: ACTIVITY_ORDER_REOPEN,
}


# ══════════════════════════════════════════════════════════════
# EXECUTION RESULT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class SettlementResult:
    """
    Outcome of set_status.

    loan_entry is the order's ledger entry when the new status is loan
    (freshly created or already present), otherwise None.
    """

    order_id: str
    previous_status: str
    status: str
    collector: str
    loan_entry: Optional[LoanEntry] = None
    ledger_entry_created: bool = False


# ══════════════════════════════════════════════════════════════
# APPLICATION SERVICE
# ══════════════════════════════════════════════════════════════

class SettlementService:
    """Settlement state machine application service."""

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

    def set_status(self, request: OrderStatusSetRequest, actor: Actor) -> SettlementResult:
        """
        Apply a status change.

        Raises:
            OrderNotFound, LoanCustomerNotFound, MissingLoanCustomer
            InvalidTransition   (strict transitions only)
            StaleOrderState     (expected_status mismatch)
            DuplicateOrderLoan  (order already on loan to another customer)
            StoreWriteFailure   (backend failure or retry budget exhausted)
        """
        command = request.to_command(actor=actor, issued_at=self._clock.now_utc())
        order_path = f"orders/{request.order_id}"

        # Entry amount and server name are snapshotted from the live
        # catalog and staff list; neither is written by this transaction.
        if request.status == STATUS_LOAN:
            prices = {i.id: i.price for i in parse_items(self._store.read("items")).values()}
            staff = parse_staff(self._store.read("users"))
        else:
            prices, staff = {}, {}

        outcome: dict = {}

        def mutator(values):
            outcome.clear()
            raw = values[order_path]
            order = Order.from_snapshot(request.order_id, raw) if raw else None

            reason = order_must_exist_policy(command, order)
            if reason is None:
                reason = expected_status_policy(command, order) or transition_policy(
                    command, order, strict=self._settings.strict_transitions,
                )
            if reason is not None:
                raise error_for(reason)

            writes = build_status_set_writes(command)
            outcome["previous_status"] = order.status

            if request.status == STATUS_LOAN:
                writes.update(self._loan_writes(command, order, values["loans"], prices, staff, outcome))

            return writes

        try:
            self._store.transaction([order_path, "loans"], mutator)
        except DuplicateOrderLoan as exc:
            logger.warning(
                f"Loan of {exc.order_id} to {request.loan_customer_id} rejected: "
                f"already on loan to {exc.customer_id} (entry {exc.entry_id})"
            )
            raise

        result = SettlementResult(
            order_id=request.order_id,
            previous_status=outcome["previous_status"],
            status=request.status,
            collector=collector_for(command),
            loan_entry=outcome.get("entry"),
            ledger_entry_created=outcome.get("created", False),
        )
        logger.info(
            f"{resolve_settlement_change_type(result.status)}: {result.order_id} "
            f"{result.previous_status} → {result.status} by {actor.actor_id}"
        )
        self._activity.record(actor.actor_id, STATUS_TO_ACTIVITY[result.status], result.order_id)
        return result

    @staticmethod
    def _loan_writes(
        command: Command,
        order: Order,
        raw_loans,
        prices: dict,
        staff: dict,
        outcome: dict,
    ) -> dict:
        ledger = LoanLedger.from_snapshot(raw_loans)
        reason = (
            loan_customer_must_exist_policy(command, ledger)
            or single_loan_per_order_policy(command, ledger)
        )
        if reason is not None:
            raise error_for(reason)

        customer_id = command.payload["loan_customer_id"]
        existing = ledger.find_entry_for_order(order.id)
        if existing is not None:
            # same customer: keep the original entry and its amount
            logger.warning(
                f"Order {order.id} already has loan entry {existing[1].id} "
                f"for {customer_id}; insert skipped"
            )
            outcome.update(entry=existing[1], created=False)
            return {}

        server = staff.get(order.served_by)
        served_by = server.name if server is not None and server.name else order.served_by
        _, entry = ledger.add_entry(
            customer_id,
            order.id,
            order_total(order, prices),
            order.time,
            served_by,
        )
        outcome.update(entry=entry, created=True)
        return build_entry_recorded_writes(customer_id, entry)
