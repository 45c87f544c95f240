"""
RMS Core Audit — Pure Activity Functions
===========================================
Building, parsing, ordering and rendering activity entries.
Nothing here touches the store.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Tuple

from core.audit.models import (
    ACTIVITY_ITEM_ADD,
    ACTIVITY_ITEM_DELETE,
    ACTIVITY_ITEM_UPDATE,
    ACTIVITY_LOAN_CUSTOMER_ADD,
    ACTIVITY_LOAN_ENTRY_ADD,
    ACTIVITY_LOGIN,
    ACTIVITY_ORDER_LOAN,
    ACTIVITY_ORDER_PAID,
    ACTIVITY_ORDER_PLACE,
    ACTIVITY_ORDER_REOPEN,
    ACTIVITY_WAITER_ADD,
    ACTIVITY_WAITER_DELETE,
    ACTIVITY_WAITER_RESET_PIN,
    ACTIVITY_WAITER_UPDATE,
    ActivityEntry,
)
from core.time.timestamps import to_iso

RECENT_ACTIVITY_LIMIT = 10

_OLDEST = datetime.min.replace(tzinfo=timezone.utc)

# {actor} is the staff name (or raw id); detail follows when present.
_MESSAGES = {
    ACTIVITY_WAITER_ADD: "{actor} added waiter",
    ACTIVITY_WAITER_UPDATE: "{actor} updated waiter",
    ACTIVITY_WAITER_RESET_PIN: "{actor} reset waiter PIN",
    ACTIVITY_WAITER_DELETE: "{actor} deleted waiter",
    ACTIVITY_ITEM_ADD: "{actor} added item",
    ACTIVITY_ITEM_UPDATE: "{actor} updated item",
    ACTIVITY_ITEM_DELETE: "{actor} deleted item",
    ACTIVITY_ORDER_PLACE: "{actor} placed order",
    ACTIVITY_ORDER_PAID: "{actor} collected payment for",
    ACTIVITY_ORDER_LOAN: "{actor} put on loan",
    ACTIVITY_ORDER_REOPEN: "{actor} reopened",
    ACTIVITY_LOAN_CUSTOMER_ADD: "{actor} added loan customer",
    ACTIVITY_LOAN_ENTRY_ADD: "{actor} recorded loan",
}


def new_activity_id() -> str:
    return f"log-{uuid.uuid4().hex[:12]}"


def create_activity_entry(
    user_id: str,
    activity_type: str,
    occurred_at: datetime,
    detail: Optional[str] = None,
) -> ActivityEntry:
    """Create an immutable activity entry with a fresh id."""
    return ActivityEntry(
        entry_id=new_activity_id(),
        user_id=user_id,
        time=to_iso(occurred_at),
        type=activity_type,
        detail=detail or None,
    )


def parse_activity(raw: Any) -> Tuple[ActivityEntry, ...]:
    """Fold the `log` folder snapshot; non-mapping children are skipped."""
    if not isinstance(raw, dict):
        return ()
    return tuple(
        ActivityEntry.from_snapshot(key, value)
        for key, value in raw.items()
        if isinstance(value, dict)
    )


def recent_activity(
    entries: Iterable[ActivityEntry],
    limit: int = RECENT_ACTIVITY_LIMIT,
) -> Tuple[ActivityEntry, ...]:
    """Newest first; entries with an unreadable time sink to the end."""
    if limit < 0:
        raise ValueError("limit must be non-negative.")
    ordered = sorted(
        entries,
        key=lambda e: (e.occurred_at or _OLDEST, e.entry_id),
        reverse=True,
    )
    return tuple(ordered[:limit])


def render_activity(entry: ActivityEntry, staff_names: Mapping[str, str]) -> str:
    """
    One-line message for an entry.

        render_activity(entry, {"adm": "Ada"})  →  "Ada added item Tea"
    """
    actor = staff_names.get(entry.user_id) or entry.user_id
    if entry.type == ACTIVITY_LOGIN:
        return f"{actor} login"
    template = _MESSAGES.get(entry.type)
    if template is None:
        return f"{actor} {entry.type}"
    return f"{template.format(actor=actor)} {entry.detail or ''}".strip()
