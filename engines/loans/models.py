"""
RMS Loans Engine — Ledger Model
==================================
Per-customer record of orders settled as deferred debt.

    loans/<customer_id> = {
        "name": ..., "phone": ...,
        "loans": {<entry_id>: {"order_id", "amount", "date", "served_by"}},
    }

RULES:
- An order id appears in at most one entry across ALL customers
- An entry's amount is fixed at creation and never rewritten
- Entries are never removed
- LoanLedger is immutable; add_entry returns a new ledger
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from decimal import Decimal
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional, Tuple

from core.errors import DuplicateOrderLoan, LoanCustomerNotFound, ValidationError
from core.primitives.money import ZERO, to_decimal, to_store, total

logger = logging.getLogger("rms.loans")


@dataclass(frozen=True)
class LoanEntry:
    id: str
    order_id: str
    amount: Decimal
    date: str
    served_by: str

    @classmethod
    def from_snapshot(cls, key: str, raw: Mapping[str, Any]) -> "LoanEntry":
        if not isinstance(raw, Mapping):
            raise ValueError(f"Loan entry '{key}' snapshot must be a mapping.")
        order_id = str(raw.get("order_id") or raw.get("orderId") or "")
        if not order_id:
            raise ValueError(f"Loan entry '{key}' has no order_id.")
        return cls(
            id=str(key),
            order_id=order_id,
            amount=to_decimal(raw.get("amount")),
            date=str(raw.get("date") or ""),
            served_by=str(raw.get("served_by") or raw.get("servedBy") or ""),
        )

    def to_snapshot(self) -> Dict[str, Any]:
        return {
            "order_id": self.order_id,
            "amount": to_store(self.amount),
            "date": self.date,
            "served_by": self.served_by,
        }


@dataclass(frozen=True)
class LoanCustomer:
    id: str
    name: str
    phone: str = ""
    entries: Mapping[str, LoanEntry] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "entries", MappingProxyType(dict(self.entries)))

    @property
    def balance(self) -> Decimal:
        return total(entry.amount for entry in self.entries.values())

    @classmethod
    def from_snapshot(cls, key: str, raw: Mapping[str, Any]) -> "LoanCustomer":
        if not isinstance(raw, Mapping):
            raise ValueError(f"Loan customer '{key}' snapshot must be a mapping.")
        entries = {}
        raw_entries = raw.get("loans") or {}
        if isinstance(raw_entries, Mapping):
            for entry_id, entry_raw in raw_entries.items():
                try:
                    entries[str(entry_id)] = LoanEntry.from_snapshot(entry_id, entry_raw)
                except ValueError as exc:
                    logger.warning(f"Skipping malformed loan entry under '{key}': {exc}")
        return cls(
            id=str(key),
            name=str(raw.get("name") or ""),
            phone=str(raw.get("phone") or ""),
            entries=entries,
        )

    def to_snapshot(self) -> Dict[str, Any]:
        snapshot: Dict[str, Any] = {"name": self.name, "phone": self.phone}
        if self.entries:
            snapshot["loans"] = {
                entry_id: entry.to_snapshot()
                for entry_id, entry in self.entries.items()
            }
        return snapshot


def new_entry_id() -> str:
    return f"loan-{uuid.uuid4().hex[:12]}"


class LoanLedger:
    """
    Immutable view of every loan customer and their entries.

    Built from the 'loans' snapshot with LoanLedger.from_snapshot().
    """

    __slots__ = ("_customers",)

    def __init__(self, customers: Optional[Mapping[str, LoanCustomer]] = None):
        self._customers = MappingProxyType(dict(customers or {}))

    @classmethod
    def from_snapshot(cls, raw: Any) -> "LoanLedger":
        customers = {}
        if isinstance(raw, Mapping):
            for key, value in raw.items():
                try:
                    customers[str(key)] = LoanCustomer.from_snapshot(key, value)
                except ValueError as exc:
                    logger.warning(f"Skipping malformed loan customer '{key}': {exc}")
        return cls(customers)

    @property
    def customers(self) -> Mapping[str, LoanCustomer]:
        return self._customers

    def customer(self, customer_id: str) -> LoanCustomer:
        found = self._customers.get(customer_id)
        if found is None:
            raise LoanCustomerNotFound(customer_id)
        return found

    def __contains__(self, customer_id: object) -> bool:
        return customer_id in self._customers

    def __len__(self) -> int:
        return len(self._customers)

    # ── Queries ────────────────────────────────────────────────

    def total_for(self, customer_id: str) -> Decimal:
        return self.customer(customer_id).balance

    def list_entries(self, customer_id: str) -> Tuple[LoanEntry, ...]:
        return tuple(self.customer(customer_id).entries.values())

    def find_entry_for_order(self, order_id: str) -> Optional[Tuple[str, LoanEntry]]:
        for customer_id, customer in self._customers.items():
            for entry in customer.entries.values():
                if entry.order_id == order_id:
                    return customer_id, entry
        return None

    def grand_total(self) -> Decimal:
        return total(c.balance for c in self._customers.values())

    # ── Updates ────────────────────────────────────────────────

    def add_entry(
        self,
        customer_id: str,
        order_id: str,
        amount: Decimal,
        date: str,
        served_by: str,
        entry_id: Optional[str] = None,
    ) -> Tuple["LoanLedger", LoanEntry]:
        """
        Return (new ledger, new entry).

        Raises:
            ValidationError:      empty order_id or negative amount.
            LoanCustomerNotFound: customer_id not in the ledger.
            DuplicateOrderLoan:   the order already has an entry anywhere.
        """
        if not order_id:
            raise ValidationError("order_id must be non-empty.", field="order_id")
        amount = to_decimal(amount, default=None)
        if amount is None or amount < ZERO:
            raise ValidationError("Loan amount must be a non-negative number.", field="amount")

        customer = self.customer(customer_id)

        existing = self.find_entry_for_order(order_id)
        if existing is not None:
            owner, entry = existing
            raise DuplicateOrderLoan(order_id, owner, entry.id)

        entry = LoanEntry(
            id=entry_id or new_entry_id(),
            order_id=order_id,
            amount=amount,
            date=date,
            served_by=served_by,
        )
        if entry.id in customer.entries:
            raise ValidationError(f"Entry id '{entry.id}' already used.", field="entry_id")

        updated = replace(customer, entries={**customer.entries, entry.id: entry})
        return LoanLedger({**self._customers, customer_id: updated}), entry

    def with_customer(self, customer: LoanCustomer) -> "LoanLedger":
        if customer.id in self._customers:
            raise ValidationError(f"Loan customer '{customer.id}' already exists.", field="customer_id")
        return LoanLedger({**self._customers, customer.id: customer})
