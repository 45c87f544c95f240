"""
RMS Reporting Engine — Sales Aggregation
==========================================
Folds orders into period buckets (daily / weekly / monthly / yearly)
with order, item, sales and per-status counts.

Doctrine:
- Pure: same orders + prices + query → same rows
- Sales use live catalog prices; a deleted item counts as 0
- paid + loan + pending == orders_count for every row
- Rows are most recent bucket first
- The grand total is the sum of the rows, never recomputed from orders
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone, tzinfo
from decimal import Decimal
from typing import Iterable, Mapping, Optional, Tuple

from core.config import RmsSettings, load_settings
from core.errors import ValidationError
from core.primitives.money import ZERO
from engines.orders.models import STATUS_LOAN, STATUS_PAID, Order, order_total
from engines.reporting.periods import REPORT_MODES, bucket_key, label_sort_key

logger = logging.getLogger("rms.reporting")

STATUS_FILTER_ALL = "all"
STATUS_FILTERS = (STATUS_FILTER_ALL, STATUS_PAID, STATUS_LOAN)

END_OF_DAY = time(23, 59, 59, 999000)


# ══════════════════════════════════════════════════════════════
# ROW
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class ReportRow:
    label: str
    orders_count: int = 0
    items_count: int = 0
    sales: Decimal = ZERO
    paid: int = 0
    loan: int = 0
    pending: int = 0

    def __add__(self, other: "ReportRow") -> "ReportRow":
        if not isinstance(other, ReportRow):
            return NotImplemented
        return ReportRow(
            label=self.label,
            orders_count=self.orders_count + other.orders_count,
            items_count=self.items_count + other.items_count,
            sales=self.sales + other.sales,
            paid=self.paid + other.paid,
            loan=self.loan + other.loan,
            pending=self.pending + other.pending,
        )

    @classmethod
    def for_order(cls, label: str, order: Order, prices: Mapping[str, Decimal]) -> "ReportRow":
        return cls(
            label=label,
            orders_count=1,
            items_count=order.item_count,
            sales=order_total(order, prices),
            paid=1 if order.status == STATUS_PAID else 0,
            loan=1 if order.status == STATUS_LOAN else 0,
            pending=0 if order.is_settled else 1,
        )


# ══════════════════════════════════════════════════════════════
# QUERY
# ══════════════════════════════════════════════════════════════

def _as_date(value, field: str) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(f"{field} '{value}' is not a YYYY-MM-DD date.", field=field) from None
    raise ValidationError(f"{field} must be a date or YYYY-MM-DD string.", field=field)


@dataclass(frozen=True)
class DateRange:
    """
    Inclusive calendar-day range; either bound may be open.

    Bounds are resolved in the report timezone: start at 00:00:00,
    end at 23:59:59.999 (stored times carry milliseconds).
    """

    start: Optional[date] = None
    end: Optional[date] = None

    def __post_init__(self):
        object.__setattr__(self, "start", _as_date(self.start, "start"))
        object.__setattr__(self, "end", _as_date(self.end, "end"))
        if self.start and self.end and self.start > self.end:
            raise ValidationError(
                f"Report start {self.start} is after end {self.end}.", field="start",
            )

    def bounds(self, tz: tzinfo = timezone.utc) -> Tuple[Optional[datetime], Optional[datetime]]:
        lower = datetime.combine(self.start, time.min, tzinfo=tz) if self.start else None
        upper = datetime.combine(self.end, END_OF_DAY, tzinfo=tz) if self.end else None
        return lower, upper

    def contains(self, instant: datetime, tz: tzinfo = timezone.utc) -> bool:
        lower, upper = self.bounds(tz)
        if lower is not None and instant < lower:
            return False
        if upper is not None and instant > upper:
            return False
        return True


@dataclass(frozen=True)
class ReportQuery:
    mode: str
    start: Optional[date] = None
    end: Optional[date] = None
    status_filter: str = STATUS_FILTER_ALL

    def __post_init__(self):
        if self.mode not in REPORT_MODES:
            raise ValidationError(
                f"mode '{self.mode}' not valid. Must be one of: {list(REPORT_MODES)}",
                field="mode",
            )
        if self.status_filter not in STATUS_FILTERS:
            raise ValidationError(
                f"status_filter '{self.status_filter}' not valid. "
                f"Must be one of: {list(STATUS_FILTERS)}",
                field="status_filter",
            )
        date_range = DateRange(self.start, self.end)
        object.__setattr__(self, "start", date_range.start)
        object.__setattr__(self, "end", date_range.end)

    @property
    def date_range(self) -> DateRange:
        return DateRange(self.start, self.end)


# ══════════════════════════════════════════════════════════════
# AGGREGATION
# ══════════════════════════════════════════════════════════════

def _matches_status(order: Order, status_filter: str) -> bool:
    if status_filter == STATUS_FILTER_ALL:
        return True
    return order.status == status_filter


def aggregate(
    orders: Iterable[Order],
    mode: str,
    *,
    prices: Mapping[str, Decimal],
    date_range: Optional[DateRange] = None,
    status_filter: str = STATUS_FILTER_ALL,
    tz: tzinfo = timezone.utc,
) -> Tuple[ReportRow, ...]:
    """
    Bucket orders by period, most recent bucket first.

    Orders whose time does not parse are left out.
    """
    query = ReportQuery(mode=mode, status_filter=status_filter)
    date_range = date_range or DateRange()

    buckets: dict[str, ReportRow] = {}
    skipped = 0
    for order in orders:
        placed_at = order.placed_at
        if placed_at is None:
            skipped += 1
            continue
        if not date_range.contains(placed_at, tz):
            continue
        if not _matches_status(order, query.status_filter):
            continue

        label = bucket_key(placed_at, query.mode, tz)
        row = ReportRow.for_order(label, order, prices)
        buckets[label] = buckets[label] + row if label in buckets else row

    if skipped:
        logger.debug(f"Report skipped {skipped} orders with unreadable time")

    return tuple(sorted(
        buckets.values(),
        key=lambda r: label_sort_key(r.label, query.mode),
        reverse=True,
    ))


def grand_total(rows: Iterable[ReportRow]) -> ReportRow:
    result = ReportRow(label="Total")
    for row in rows:
        result = result + row
    return result


# ══════════════════════════════════════════════════════════════
# REPORT
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class Report:
    query: ReportQuery
    rows: Tuple[ReportRow, ...]
    total: ReportRow


def build_report(
    view,
    query: ReportQuery,
    *,
    settings: Optional[RmsSettings] = None,
    tz: Optional[tzinfo] = None,
) -> Report:
    """
    Run a query against a read-model view.

    view needs .orders (Order objects) and .prices (item id → Decimal).
    Buckets and date bounds use tz when given, otherwise the
    configured report timezone.
    """
    if tz is None:
        tz = (settings or load_settings()).tzinfo
    rows = aggregate(
        view.orders,
        query.mode,
        prices=view.prices,
        date_range=query.date_range,
        status_filter=query.status_filter,
        tz=tz,
    )
    return Report(query=query, rows=rows, total=grand_total(rows))
