"""
RMS Projections — Restaurant Read Model
===========================================
Live view of orders, catalog, staff and the loan ledger for
dashboards, order lists and reports.

Built from store snapshots:
- orders  → RestaurantView.orders (newest first)
- items   → RestaurantView.items / prices
- users   → RestaurantView.staff / staff_names
- loans   → RestaurantView.ledger
- log     → RestaurantView.activity

Every snapshot produces a NEW frozen view; nothing is mutated in
place. The view only changes after the store has committed, so a
failed write never shows up here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from threading import Lock
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

from core.audit import (
    RECENT_ACTIVITY_LIMIT,
    ActivityEntry,
    parse_activity,
    recent_activity,
    render_activity,
)
from core.errors import ValidationError
from core.primitives.money import ZERO
from core.store.contracts import StoreProtocol
from engines.loans.models import LoanLedger
from engines.orders.models import (
    STATUS_LOAN,
    STATUS_PAID,
    Item,
    Order,
    Staff,
    order_total,
    parse_items,
    parse_orders,
    parse_staff,
)

logger = logging.getLogger("rms.projections")


# ══════════════════════════════════════════════════════════════
# VIEW
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class RestaurantView:
    orders: Tuple[Order, ...] = ()
    items: Mapping[str, Item] = field(default_factory=dict)
    staff: Mapping[str, Staff] = field(default_factory=dict)
    ledger: LoanLedger = field(default_factory=LoanLedger)
    activity: Tuple[ActivityEntry, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "items", MappingProxyType(dict(self.items)))
        object.__setattr__(self, "staff", MappingProxyType(dict(self.staff)))

    @property
    def prices(self) -> Dict[str, Decimal]:
        return {item_id: item.price for item_id, item in self.items.items()}

    @property
    def staff_names(self) -> Dict[str, str]:
        return {staff_id: s.name for staff_id, s in self.staff.items()}

    def order(self, order_id: str) -> Optional[Order]:
        for order in self.orders:
            if order.id == order_id:
                return order
        return None

    def server_name(self, order: Order) -> str:
        """Name of the order's server, or the raw id when the record is gone."""
        member = self.staff.get(order.served_by)
        return member.name if member is not None and member.name else order.served_by


# ══════════════════════════════════════════════════════════════
# READ MODEL
# ══════════════════════════════════════════════════════════════

_FOLDERS: Dict[str, Callable[[RestaurantView, Any], RestaurantView]] = {
    "orders": lambda view, raw: replace(view, orders=parse_orders(raw)),
    "items": lambda view, raw: replace(view, items=parse_items(raw)),
    "users": lambda view, raw: replace(view, staff=parse_staff(raw)),
    "loans": lambda view, raw: replace(view, ledger=LoanLedger.from_snapshot(raw)),
    "log": lambda view, raw: replace(view, activity=parse_activity(raw)),
}


class RestaurantReadModel:
    """
    Subscribes to the store and keeps the latest RestaurantView.

    Usage:
        model = RestaurantReadModel(store)
        model.on_change(lambda view: redraw(view))
        model.view.orders
        model.close()
    """

    projection_name = "restaurant_read_model"

    def __init__(self, store: StoreProtocol) -> None:
        self._view = RestaurantView()
        self._lock = Lock()
        self._callbacks: List[Callable[[RestaurantView], None]] = []
        self._unsubscribers = [
            store.subscribe(collection, self._listener_for(collection))
            for collection in _FOLDERS
        ]

    @property
    def view(self) -> RestaurantView:
        with self._lock:
            return self._view

    def on_change(self, callback: Callable[[RestaurantView], None]) -> Callable[[], None]:
        with self._lock:
            self._callbacks.append(callback)

        def remove() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return remove

    def close(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _listener_for(self, collection: str) -> Callable[[Any], None]:
        fold = _FOLDERS[collection]

        def listener(snapshot: Any) -> None:
            with self._lock:
                self._view = fold(self._view, snapshot)
                view = self._view
                callbacks = list(self._callbacks)
            logger.debug(f"Read model refreshed from '{collection}' snapshot")
            for callback in callbacks:
                callback(view)

        return listener


# ══════════════════════════════════════════════════════════════
# METRICS
# ══════════════════════════════════════════════════════════════

ORDER_STATES = ("all", "active", "done")


@dataclass(frozen=True)
class StatusSummary:
    paid: int = 0
    loan: int = 0
    pending: int = 0

    @property
    def total(self) -> int:
        return self.paid + self.loan + self.pending


@dataclass(frozen=True)
class StaffStats:
    staff_id: str
    name: str
    orders: int = 0
    paid: int = 0
    loan: int = 0
    pending: int = 0


def _summarize(orders) -> Tuple[int, int, int]:
    paid = loan = pending = 0
    for order in orders:
        if order.status == STATUS_PAID:
            paid += 1
        elif order.status == STATUS_LOAN:
            loan += 1
        else:
            pending += 1
    return paid, loan, pending


def status_summary(view: RestaurantView, waiter_id: Optional[str] = None) -> StatusSummary:
    """Per-status order counts, optionally for one waiter only."""
    scoped = [o for o in view.orders if waiter_id is None or o.served_by == waiter_id]
    paid, loan, pending = _summarize(scoped)
    return StatusSummary(paid=paid, loan=loan, pending=pending)


def staff_breakdown(view: RestaurantView) -> Tuple[StaffStats, ...]:
    """One row per waiter, including waiters with no orders."""
    by_server: Dict[str, List[Order]] = {}
    for order in view.orders:
        by_server.setdefault(order.served_by, []).append(order)

    waiters = sorted(
        (s for s in view.staff.values() if s.is_waiter),
        key=lambda s: (s.name.lower(), s.id),
    )
    rows = []
    for waiter in waiters:
        served = by_server.get(waiter.id, [])
        paid, loan, pending = _summarize(served)
        rows.append(StaffStats(
            staff_id=waiter.id,
            name=waiter.name,
            orders=len(served),
            paid=paid,
            loan=loan,
            pending=pending,
        ))
    return tuple(rows)


def search_orders(
    view: RestaurantView,
    text: str = "",
    state: str = "all",
    waiter_id: Optional[str] = None,
) -> Tuple[Order, ...]:
    """
    Case-insensitive match on "<order id> <server name>".

    state: all | active (pending) | done (paid or loan).
    """
    if state not in ORDER_STATES:
        raise ValidationError(
            f"state '{state}' not valid. Must be one of: {list(ORDER_STATES)}",
            field="state",
        )
    needle = (text or "").strip().lower()

    found = []
    for order in view.orders:
        if waiter_id is not None and order.served_by != waiter_id:
            continue
        if state == "active" and order.is_settled:
            continue
        if state == "done" and not order.is_settled:
            continue
        if needle and needle not in f"{order.id} {view.server_name(order)}".lower():
            continue
        found.append(order)
    return tuple(found)


@dataclass(frozen=True)
class DashboardMetrics:
    total_orders: int = 0
    total_items: int = 0
    total_sales: Decimal = ZERO
    top_waiter_id: Optional[str] = None
    top_waiter_name: Optional[str] = None
    waiter_count: int = 0


def dashboard_metrics(view: RestaurantView, waiter_id: Optional[str] = None) -> DashboardMetrics:
    """
    Headline numbers for the dashboard, optionally for one waiter only.

    Sales use live prices. The busiest waiter is the one with the most
    orders in scope; a tie goes to whoever took their first order
    earliest. waiter_count always covers every waiter on staff.
    """
    scoped = [o for o in view.orders if waiter_id is None or o.served_by == waiter_id]
    prices = view.prices

    per_server: Dict[str, int] = {}
    for order in reversed(scoped):
        per_server[order.served_by] = per_server.get(order.served_by, 0) + 1
    top = max(per_server, key=per_server.get) if per_server else None

    top_name = None
    if top is not None:
        member = view.staff.get(top)
        top_name = member.name if member is not None and member.name else top

    return DashboardMetrics(
        total_orders=len(scoped),
        total_items=sum(o.item_count for o in scoped),
        total_sales=sum((order_total(o, prices) for o in scoped), ZERO),
        top_waiter_id=top,
        top_waiter_name=top_name,
        waiter_count=sum(1 for s in view.staff.values() if s.is_waiter),
    )


@dataclass(frozen=True)
class ActivityLine:
    entry_id: str
    time: str
    message: str


def activity_feed(view: RestaurantView, limit: int = RECENT_ACTIVITY_LIMIT) -> Tuple[ActivityLine, ...]:
    """Newest activity first, rendered with current staff names."""
    names = view.staff_names
    return tuple(
        ActivityLine(entry_id=e.entry_id, time=e.time, message=render_activity(e, names))
        for e in recent_activity(view.activity, limit)
    )
