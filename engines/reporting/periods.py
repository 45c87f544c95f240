"""
RMS Reporting Engine — Period Buckets
========================================
Bucket labels per report mode:

    daily    → "2024-01-05"  (UTC calendar date)
    weekly   → "2025-W1"     (ISO-8601 week, number not zero-padded)
    monthly  → "2024-01"
    yearly   → "2024"

Weekly, monthly and yearly buckets use the date in the report
timezone. Daily buckets always use the UTC date.

Rows are ordered by label_sort_key, which equals the plain label sort
for every mode except weekly: week labels are unpadded, so weekly rows
are ordered numerically by (year, week) and 2024-W10 follows 2024-W9.
"""

from __future__ import annotations

import re
from datetime import date, datetime, timedelta, timezone, tzinfo

MODE_DAILY = "daily"
MODE_WEEKLY = "weekly"
MODE_MONTHLY = "monthly"
MODE_YEARLY = "yearly"

REPORT_MODES = (MODE_DAILY, MODE_WEEKLY, MODE_MONTHLY, MODE_YEARLY)

_WEEK_LABEL = re.compile(r"(\d{4})-W(\d{1,2})")


def iso_week(day: date) -> tuple[int, int]:
    """
    (ISO year, ISO week) via the Thursday of the date's week.

    The week belongs to the year its Thursday falls in, so
    2024-12-31 (a Tuesday) is week 1 of 2025.
    """
    thursday = day + timedelta(days=3 - day.weekday())
    week = (thursday.timetuple().tm_yday - 1) // 7 + 1
    return thursday.year, week


def iso_week_label(day: date) -> str:
    year, week = iso_week(day)
    return f"{year}-W{week}"


def bucket_key(instant: datetime, mode: str, tz: tzinfo = timezone.utc) -> str:
    if mode == MODE_DAILY:
        return instant.astimezone(timezone.utc).date().isoformat()

    local = instant.astimezone(tz).date()
    if mode == MODE_WEEKLY:
        return iso_week_label(local)
    if mode == MODE_MONTHLY:
        return f"{local.year:04d}-{local.month:02d}"
    if mode == MODE_YEARLY:
        return f"{local.year:04d}"
    raise ValueError(f"Unknown report mode '{mode}'.")


def label_sort_key(label: str, mode: str):
    """Sort key placing buckets in chronological order."""
    if mode == MODE_WEEKLY:
        match = _WEEK_LABEL.fullmatch(label)
        if match:
            return int(match.group(1)), int(match.group(2))
        return 0, 0
    return label
