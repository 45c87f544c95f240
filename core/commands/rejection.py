"""
RMS Command Layer — Rejection Model
======================================
Structured rejection reasons returned by engine policies.

A policy returns None (allow) or a RejectionReason (deny). The owning
service turns the reason into a typed error from core.errors, so
callers never see a bare reason object.

Every rejection must be:
- Deterministic (same input → same rejection)
- Machine-readable (code)
- Human-readable (message)
"""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class RejectionReason:
    """
    Structured reason for a denied command.

    Fields:
        code:        Machine-readable code (see ReasonCode).
        message:     Human-readable explanation.
        policy_name: Name of the policy that produced it.
        details:     Extra values the service needs to build the error.
    """

    code: str
    message: str
    policy_name: str
    details: dict = field(default_factory=dict)

    def __post_init__(self):
        if not self.code or not isinstance(self.code, str):
            raise ValueError("code must be a non-empty string.")

        if not self.message or not isinstance(self.message, str):
            raise ValueError("message must be a non-empty string.")

        if not self.policy_name or not isinstance(self.policy_name, str):
            raise ValueError("policy_name must be a non-empty string.")

    def to_dict(self) -> dict:
        return {
            "code": self.code,
            "message": self.message,
            "policy_name": self.policy_name,
            "details": dict(self.details),
        }


class ReasonCode:
    """
    Known rejection codes.

    Convention: SCREAMING_SNAKE_CASE, matching core.errors codes.
    """

    # ── Orders ────────────────────────────────────────────────
    ORDER_NOT_FOUND = "ORDER_NOT_FOUND"
    STALE_ORDER_STATE = "STALE_ORDER_STATE"

    # ── Settlement ────────────────────────────────────────────
    INVALID_TRANSITION = "INVALID_TRANSITION"
    MISSING_LOAN_CUSTOMER = "MISSING_LOAN_CUSTOMER"

    # ── Ledger ────────────────────────────────────────────────
    LOAN_CUSTOMER_NOT_FOUND = "LOAN_CUSTOMER_NOT_FOUND"
    DUPLICATE_ORDER_LOAN = "DUPLICATE_ORDER_LOAN"
