"""
RMS Core Time — Order Timestamp Helpers
=========================================
Order times are stored as ISO-8601 strings in UTC with millisecond
precision and a trailing 'Z' (2024-01-05T09:30:00.000Z).

Parsing is lenient: an offset-less timestamp is taken as UTC, a
bare date is midnight UTC, and anything unparseable yields None so
callers can skip the order instead of failing a whole report.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional


def to_iso(dt: datetime) -> str:
    if dt.tzinfo is None:
        raise ValueError("to_iso requires a timezone-aware datetime.")
    utc = dt.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
