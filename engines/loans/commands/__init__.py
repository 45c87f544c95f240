"""
RMS Loans Engine — Request Commands
"""

from __future__ import annotations

from dataclasses import dataclass

from core.commands.base import Command, build_command
from core.errors import ValidationError
from core.primitives.money import ZERO, to_decimal, to_store

LOANS_CUSTOMER_ADD_REQUEST = "loans.customer.add.request"
LOANS_ENTRY_ADD_REQUEST = "loans.entry.add.request"


@dataclass(frozen=True)
class LoanCustomerAddRequest:
    """Register a customer who may take orders on loan."""

    name: str
    phone: str

    def __post_init__(self):
        name = self.name.strip() if isinstance(self.name, str) else ""
        phone = self.phone.strip() if isinstance(self.phone, str) else ""
        if not name or not phone:
            raise ValidationError("Fill name and phone for the loan customer.", field="name" if not name else "phone")
        object.__setattr__(self, "name", name)
        object.__setattr__(self, "phone", phone)

    def to_command(self, **kw) -> Command:
        return build_command(
            LOANS_CUSTOMER_ADD_REQUEST,
            {"name": self.name, "phone": self.phone},
            source_engine="loans",
            **kw,
        )


@dataclass(frozen=True)
class LoanEntryAddRequest:
    """Record one order against a customer's loan balance."""

    customer_id: str
    order_id: str
    amount: object
    date: str
    served_by: str

    def __post_init__(self):
        if not self.customer_id:
            raise ValidationError("Choose a loan customer.", field="customer_id")
        if not self.order_id:
            raise ValidationError("order_id must be non-empty.", field="order_id")
        amount = to_decimal(self.amount, default=None)
        if amount is None or amount < ZERO:
            raise ValidationError("Loan amount must be a non-negative number.", field="amount")
        object.__setattr__(self, "amount", amount)

    def to_command(self, **kw) -> Command:
        return build_command(
            LOANS_ENTRY_ADD_REQUEST,
            {
                "customer_id": self.customer_id,
                "order_id": self.order_id,
                "amount": to_store(self.amount),
                "date": self.date,
                "served_by": self.served_by,
            },
            source_engine="loans",
            **kw,
        )
