"""
RMS Core Time — Clocks
========================
Order times, command issue times and activity log entries all come
from a Clock. Services take one as a constructor argument and fall
back to the process default.

Stored timestamps carry millisecond precision (see timestamps.to_iso),
so SystemClock drops sub-millisecond digits: a time read back from
the store compares equal to the one that was written.
"""

from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, Protocol


def _require_aware(dt: datetime, owner: str) -> datetime:
    if dt.tzinfo is None:
        raise ValueError(f"{owner} requires a timezone-aware datetime.")
    return dt.astimezone(timezone.utc)


class Clock(Protocol):
    def now_utc(self) -> datetime:
        ...  # pragma: no cover


class SystemClock:
    """Wall clock, UTC, truncated to the millisecond."""

    def now_utc(self) -> datetime:
        now = datetime.now(timezone.utc)
        return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


class FixedClock:
    """
    Pinned clock for tests and replays.

    Usage:
        clock = FixedClock(datetime(2024, 1, 5, 9, 30, tzinfo=timezone.utc))
        clock.advance(60)       # 09:31
        clock.set(other_dt)
    """

    def __init__(self, fixed_dt: datetime) -> None:
        self._current = _require_aware(fixed_dt, "FixedClock")

    def now_utc(self) -> datetime:
        return self._current

    def set(self, dt: datetime) -> None:
        self._current = _require_aware(dt, "FixedClock.set")

    def advance(self, seconds: float) -> None:
        self._current += timedelta(seconds=seconds)


_default_clock: Clock = SystemClock()


def set_default_clock(clock: Clock) -> None:
    global _default_clock
    _default_clock = clock


def get_default_clock() -> Clock:
    return _default_clock


@contextmanager
def use_clock(clock: Clock) -> Iterator[Clock]:
    """Swap the default clock for the duration of a block."""
    previous = get_default_clock()
    set_default_clock(clock)
    try:
        yield clock
    finally:
        set_default_clock(previous)


def now_utc() -> datetime:
    return _default_clock.now_utc()
