"""
RMS Loans Engine — Application Service
=========================================
Customer registration and direct ledger entries.

Settlement writes its loan entries itself (in the same transaction as
the order status); this service covers the remaining ledger writes
and the read helpers.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Optional, Tuple

from core.audit import ActivityRecorder
from core.audit.models import ACTIVITY_LOAN_CUSTOMER_ADD, ACTIVITY_LOAN_ENTRY_ADD
from core.commands.base import Actor
from core.store.contracts import StoreProtocol
from core.time.clock import Clock, get_default_clock
from engines.loans.commands import LoanCustomerAddRequest, LoanEntryAddRequest
from engines.loans.events import (
    build_customer_added_writes,
    build_entry_recorded_writes,
    resolve_loans_change_type,
)
from engines.loans.models import LoanCustomer, LoanEntry, LoanLedger

logger = logging.getLogger("rms.loans")


class LoanLedgerService:
    """Loan ledger application service."""

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

    # ── Reads ──────────────────────────────────────────────────

    def ledger(self) -> LoanLedger:
        return LoanLedger.from_snapshot(self._store.read("loans"))

    def total_for(self, customer_id: str) -> Decimal:
        return self.ledger().total_for(customer_id)

    def list_entries(self, customer_id: str) -> Tuple[LoanEntry, ...]:
        return self.ledger().list_entries(customer_id)

    # ── Writes ─────────────────────────────────────────────────

    def add_customer(self, request: LoanCustomerAddRequest, actor: Actor) -> LoanCustomer:
        command = request.to_command(actor=actor, issued_at=self._clock.now_utc())
        customer_id = f"cust-{uuid.uuid4().hex[:12]}"
        writes = build_customer_added_writes(command, customer_id)
        self._store.write(f"loans/{customer_id}", writes[f"loans/{customer_id}"])

        logger.info(
            f"{resolve_loans_change_type(command.command_type)}: {customer_id} "
            f"'{request.name}' by {actor.actor_id}"
        )
        self._activity.record(actor.actor_id, ACTIVITY_LOAN_CUSTOMER_ADD, request.name)
        return LoanCustomer.from_snapshot(customer_id, writes[f"loans/{customer_id}"])

    def add_entry(self, request: LoanEntryAddRequest, actor: Actor) -> LoanEntry:
        """
        Record an entry. Same duplicate check as settlement: the order
        must not already appear under any customer.
        """
        command = request.to_command(actor=actor, issued_at=self._clock.now_utc())
        recorded = {}

        def mutator(values):
            ledger = LoanLedger.from_snapshot(values["loans"])
            _, entry = ledger.add_entry(
                request.customer_id,
                request.order_id,
                request.amount,
                request.date,
                request.served_by,
            )
            recorded["entry"] = entry
            return build_entry_recorded_writes(request.customer_id, entry)

        self._store.transaction(["loans"], mutator)
        entry = recorded["entry"]

        logger.info(
            f"{resolve_loans_change_type(command.command_type)}: {entry.id} "
            f"order {entry.order_id} → {request.customer_id} ({entry.amount})"
        )
        self._activity.record(actor.actor_id, ACTIVITY_LOAN_ENTRY_ADD, entry.order_id)
        return entry
