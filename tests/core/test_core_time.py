"""
Tests for core.time — Clock protocol and order timestamp helpers.
"""

from datetime import datetime, timedelta, timezone

import pytest

from core.time.clock import (
    FixedClock,
    SystemClock,
    get_default_clock,
    now_utc,
    set_default_clock,
    use_clock,
)
from core.time.timestamps import parse_timestamp, to_iso


# ── Clock Tests ──────────────────────────────────────────────

class TestSystemClock:
    def test_returns_utc_datetime(self):
        dt = SystemClock().now_utc()
        assert dt.tzinfo == timezone.utc

    def test_millisecond_precision(self):
        dt = SystemClock().now_utc()
        assert dt.microsecond % 1000 == 0
        assert parse_timestamp(to_iso(dt)) == dt


class TestFixedClock:
    def test_returns_fixed_time(self):
        fixed = datetime(2024, 1, 5, 9, 30, tzinfo=timezone.utc)
        clock = FixedClock(fixed)
        assert clock.now_utc() == fixed
        assert clock.now_utc() == fixed

    def test_rejects_naive_datetime(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            FixedClock(datetime(2024, 1, 5))

    def test_advance(self):
        fixed = datetime(2024, 1, 5, 9, 30, tzinfo=timezone.utc)
        clock = FixedClock(fixed)
        clock.advance(90)
        assert clock.now_utc() == fixed + timedelta(seconds=90)

    def test_set_normalises_to_utc(self):
        clock = FixedClock(datetime(2024, 1, 5, tzinfo=timezone.utc))
        clock.set(datetime(2024, 1, 5, 12, 0, tzinfo=timezone(timedelta(hours=3))))
        assert clock.now_utc() == datetime(2024, 1, 5, 9, 0, tzinfo=timezone.utc)
        assert clock.now_utc().tzinfo == timezone.utc

    def test_set_rejects_naive(self):
        clock = FixedClock(datetime(2024, 1, 5, tzinfo=timezone.utc))
        with pytest.raises(ValueError, match="timezone-aware"):
            clock.set(datetime(2024, 1, 6))


class TestDefaultClock:
    def test_set_and_get_default(self):
        original = get_default_clock()
        set_default_clock(FixedClock(datetime(2024, 1, 1, tzinfo=timezone.utc)))
        try:
            assert now_utc() == datetime(2024, 1, 1, tzinfo=timezone.utc)
        finally:
            set_default_clock(original)

    def test_use_clock_restores_previous(self):
        original = get_default_clock()
        pinned = FixedClock(datetime(2024, 2, 1, tzinfo=timezone.utc))
        with use_clock(pinned):
            assert get_default_clock() is pinned
            assert now_utc() == datetime(2024, 2, 1, tzinfo=timezone.utc)
        assert get_default_clock() is original


# ── Timestamps ───────────────────────────────────────────────

class TestToIso:
    def test_millisecond_z_format(self):
        dt = datetime(2024, 1, 5, 9, 30, 1, 123456, tzinfo=timezone.utc)
        assert to_iso(dt) == "2024-01-05T09:30:01.123Z"

    def test_converts_to_utc(self):
        eat = timezone(timedelta(hours=3))
        assert to_iso(datetime(2024, 1, 5, 3, 0, tzinfo=eat)) == "2024-01-05T00:00:00.000Z"

    def test_naive_rejected(self):
        with pytest.raises(ValueError, match="timezone-aware"):
            to_iso(datetime(2024, 1, 5))


class TestParseTimestamp:
    def test_z_suffix(self):
        assert parse_timestamp("2024-01-05T09:30:00.000Z") == datetime(
            2024, 1, 5, 9, 30, tzinfo=timezone.utc,
        )

    def test_offset_preserved(self):
        parsed = parse_timestamp("2024-01-05T12:30:00+03:00")
        assert parsed == datetime(2024, 1, 5, 9, 30, tzinfo=timezone.utc)

    def test_naive_taken_as_utc(self):
        assert parse_timestamp("2024-01-05T09:30:00").tzinfo == timezone.utc

    @pytest.mark.parametrize("value", ["", "yesterday", None, 12345, "2024-13-40"])
    def test_unparseable_is_none(self, value):
        assert parse_timestamp(value) is None
