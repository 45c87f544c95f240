"""
RMS Core Audit — Activity Recorder
=====================================
Appends activity entries to the store after a service operation has
committed.

Rules:
1. Record only after the operation's own write has committed
2. One store write per entry: log/<entry_id>
3. A failed log write is logged at ERROR and reported as None
4. NEVER roll back or fail the operation that was already committed
"""

from __future__ import annotations

import logging
from typing import Optional, Tuple

from core.audit.functions import (
    RECENT_ACTIVITY_LIMIT,
    create_activity_entry,
    parse_activity,
    recent_activity,
)
from core.audit.models import ActivityEntry
from core.errors import StoreWriteFailure
from core.store.contracts import StoreProtocol
from core.time.clock import Clock, get_default_clock

logger = logging.getLogger("rms.audit")

LOG_FOLDER = "log"


class ActivityRecorder:
    """Writes and lists activity log entries."""

    def __init__(self, *, store: StoreProtocol, clock: Optional[Clock] = None):
        self._store = store
        self._clock = clock or get_default_clock()

    def record(
        self,
        user_id: str,
        activity_type: str,
        detail: Optional[str] = None,
    ) -> Optional[ActivityEntry]:
        entry = create_activity_entry(user_id, activity_type, self._clock.now_utc(), detail)
        try:
            self._store.write(f"{LOG_FOLDER}/{entry.entry_id}", entry.to_snapshot())
        except StoreWriteFailure as exc:
            logger.error(f"Activity '{activity_type}' by {user_id} not recorded: {exc}")
            return None
        logger.debug(f"Activity {entry.entry_id}: {activity_type} by {user_id}")
        return entry

    def recent(self, limit: int = RECENT_ACTIVITY_LIMIT) -> Tuple[ActivityEntry, ...]:
        return recent_activity(parse_activity(self._store.read(LOG_FOLDER)), limit)
