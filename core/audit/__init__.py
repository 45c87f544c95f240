"""
RMS Core Audit — Public API
==============================
Append-only staff activity log.
"""

from core.audit.functions import (
    RECENT_ACTIVITY_LIMIT,
    create_activity_entry,
    parse_activity,
    recent_activity,
    render_activity,
)
from core.audit.models import ActivityEntry
from core.audit.recorder import LOG_FOLDER, ActivityRecorder

__all__ = [
    "ActivityEntry",
    "ActivityRecorder",
    "LOG_FOLDER",
    "RECENT_ACTIVITY_LIMIT",
    "create_activity_entry",
    "parse_activity",
    "recent_activity",
    "render_activity",
]
