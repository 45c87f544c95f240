"""
RMS Core Time — Public API
============================
Explicit clock protocol and order timestamp helpers.
"""

from core.time.clock import (
    Clock,
    FixedClock,
    SystemClock,
    get_default_clock,
    now_utc,
    set_default_clock,
    use_clock,
)
from core.time.timestamps import parse_timestamp, to_iso

__all__ = [
    "Clock",
    "FixedClock",
    "SystemClock",
    "get_default_clock",
    "set_default_clock",
    "now_utc",
    "use_clock",
    "parse_timestamp",
    "to_iso",
]
