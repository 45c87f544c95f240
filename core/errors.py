"""
RMS Core — Error Taxonomy
===========================
Typed errors surfaced to callers of the settlement, ledger,
order and reporting services.

Rules:
- Every error carries a machine-readable code
- ValidationError family: input rejected, no state mutated
- DuplicateOrderLoan is distinct so the UI can explain a skipped entry
- StoreWriteFailure wraps backend failures verbatim; the core never retries
- No error is fatal to the process
"""

from __future__ import annotations


class RmsError(Exception):
    """Base error for RMS operations."""

    code = "RMS_ERROR"


# ══════════════════════════════════════════════════════════════
# VALIDATION
# ══════════════════════════════════════════════════════════════

class ValidationError(RmsError, ValueError):
    """Caller input rejected before any write. Also a ValueError."""

    code = "VALIDATION_FAILED"

    def __init__(self, message: str, *, field: str | None = None):
        self.field = field
        super().__init__(message)


class MissingLoanCustomer(ValidationError):
    """Transition to loan requested without choosing a customer."""

    code = "MISSING_LOAN_CUSTOMER"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(
            f"Order '{order_id}' cannot move to loan without a loan customer.",
            field="loan_customer_id",
        )


class OrderNotFound(ValidationError):
    code = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order '{order_id}' does not exist.", field="order_id")


class ItemNotFound(ValidationError):
    code = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Item '{item_id}' does not exist.", field="item_id")


class LoanCustomerNotFound(ValidationError):
    code = "LOAN_CUSTOMER_NOT_FOUND"

    def __init__(self, customer_id: str):
        self.customer_id = customer_id
        super().__init__(
            f"Loan customer '{customer_id}' does not exist.",
            field="loan_customer_id",
        )


# ══════════════════════════════════════════════════════════════
# STATE MACHINE
# ══════════════════════════════════════════════════════════════

class InvalidTransition(RmsError):
    """Status pair not allowed by the strict transition table."""

    code = "INVALID_TRANSITION"

    def __init__(self, order_id: str, current: str, requested: str):
        self.order_id = order_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Order '{order_id}' cannot move from '{current}' to '{requested}'."
        )


class StaleOrderState(RmsError):
    """Compare-and-swap precondition on the order status failed."""

    code = "STALE_ORDER_STATE"

    def __init__(self, order_id: str, expected: str, actual: str):
        self.order_id = order_id
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Order '{order_id}' status is '{actual}', expected '{expected}'. "
            f"Reload and retry."
        )


# ══════════════════════════════════════════════════════════════
# LEDGER
# ══════════════════════════════════════════════════════════════

class DuplicateOrderLoan(RmsError):
    """The order already has a loan entry somewhere in the ledger."""

    code = "DUPLICATE_ORDER_LOAN"

    def __init__(self, order_id: str, customer_id: str, entry_id: str):
        self.order_id = order_id
        self.customer_id = customer_id
        self.entry_id = entry_id
        super().__init__(
            f"Order '{order_id}' is already on loan to customer "
            f"'{customer_id}' (entry '{entry_id}')."
        )


# ══════════════════════════════════════════════════════════════
# STORE
# ══════════════════════════════════════════════════════════════

class StoreWriteFailure(RmsError):
    """Backend write failed. Message is surfaced verbatim."""

    code = "STORE_WRITE_FAILURE"

    def __init__(self, message: str, *, path: str | None = None):
        self.path = path
        super().__init__(message)


class TransactionConflict(StoreWriteFailure):
    """Optimistic transaction kept losing to concurrent writers."""

    code = "TRANSACTION_CONFLICT"

    def __init__(self, paths: tuple, attempts: int):
        self.paths = paths
        self.attempts = attempts
        super().__init__(
            f"Transaction over {list(paths)} aborted after {attempts} "
            f"conflicting attempts."
        )
