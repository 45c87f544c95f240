"""
RMS Settlement Engine — Request Commands
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from core.commands.base import Command, build_command
from core.errors import MissingLoanCustomer, ValidationError
from engines.orders.models import STATUS_LOAN, VALID_STATUSES

SETTLEMENT_ORDER_STATUS_SET_REQUEST = "settlement.order.status.set.request"


@dataclass(frozen=True)
class OrderStatusSetRequest:
    """
    Move an order to pending, paid or loan.

    loan_customer_id is required when status is loan.
    expected_status, when given, must match the stored status at
    commit time or the request fails with StaleOrderState.
    """

    order_id: str
    status: str
    loan_customer_id: Optional[str] = None
    expected_status: Optional[str] = None

    def __post_init__(self):
        if not self.order_id or not isinstance(self.order_id, str):
            raise ValidationError("order_id must be a non-empty string.", field="order_id")
        if self.status not in VALID_STATUSES:
            raise ValidationError(
                f"status '{self.status}' not valid. Must be one of: {sorted(VALID_STATUSES)}",
                field="status",
            )
        if self.expected_status is not None and self.expected_status not in VALID_STATUSES:
            raise ValidationError(
                f"expected_status '{self.expected_status}' not valid.",
                field="expected_status",
            )
        if self.status == STATUS_LOAN and not self.loan_customer_id:
            raise MissingLoanCustomer(self.order_id)

    def to_command(self, **kw) -> Command:
        payload = {"order_id": self.order_id, "status": self.status}
        if self.loan_customer_id:
            payload["loan_customer_id"] = self.loan_customer_id
        if self.expected_status is not None:
            payload["expected_status"] = self.expected_status
        return build_command(
            SETTLEMENT_ORDER_STATUS_SET_REQUEST,
            payload,
            source_engine="settlement",
            **kw,
        )
