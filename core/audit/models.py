"""
RMS Core Audit — Activity Log Entries
========================================
One entry per staff action (login, item and waiter edits, order
placement, settlement, loan bookkeeping). Entries live under the
store's `log` folder, keyed by entry id:

    log/<entry_id> = {"user_id", "time", "type", "detail"?}

Entries are append-only and frozen once built.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from core.time.timestamps import parse_timestamp

# ══════════════════════════════════════════════════════════════
# ACTIVITY TYPES
# ══════════════════════════════════════════════════════════════

ACTIVITY_LOGIN = "login"
ACTIVITY_WAITER_ADD = "waiter_add"
ACTIVITY_WAITER_UPDATE = "waiter_update"
ACTIVITY_WAITER_RESET_PIN = "waiter_reset_pin"
ACTIVITY_WAITER_DELETE = "waiter_delete"
ACTIVITY_ITEM_ADD = "item_add"
ACTIVITY_ITEM_UPDATE = "item_update"
ACTIVITY_ITEM_DELETE = "item_delete"
ACTIVITY_ORDER_PLACE = "order_place"
ACTIVITY_ORDER_PAID = "order_paid"
ACTIVITY_ORDER_LOAN = "order_loan"
ACTIVITY_ORDER_REOPEN = "order_reopen"
ACTIVITY_LOAN_CUSTOMER_ADD = "loan_customer_add"
ACTIVITY_LOAN_ENTRY_ADD = "loan_entry_add"

SYSTEM_USER = "system"


# ══════════════════════════════════════════════════════════════
# ACTIVITY ENTRY
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ActivityEntry:
    """
    Immutable record of one staff action.

    time is the stored ISO-8601 string; occurred_at parses it.
    Unknown types are kept as-is so entries written by other
    clients still list.
    """

    entry_id: str
    user_id: str
    time: str
    type: str
    detail: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.type:
            raise ValueError("ActivityEntry type must be non-empty.")
        if not self.user_id:
            object.__setattr__(self, "user_id", SYSTEM_USER)

    @property
    def occurred_at(self) -> Optional[datetime]:
        return parse_timestamp(self.time)

    @classmethod
    def from_snapshot(cls, key: str, raw: Any) -> "ActivityEntry":
        raw = raw if isinstance(raw, dict) else {}
        detail = raw.get("detail")
        return cls(
            entry_id=key,
            user_id=str(raw.get("user_id") or raw.get("userId") or SYSTEM_USER),
            time=str(raw.get("time") or ""),
            type=str(raw.get("type") or "unknown"),
            detail=str(detail) if detail not in (None, "") else None,
        )

    def to_snapshot(self) -> dict:
        snapshot = {"user_id": self.user_id, "time": self.time, "type": self.type}
        if self.detail is not None:
            snapshot["detail"] = self.detail
        return snapshot
