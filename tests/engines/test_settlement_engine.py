"""
RMS Settlement Engine Tests
============================
Tests cover:
- Request validation
- pending / paid / loan transitions and collector bookkeeping
- Loan entry creation (amount, date, served_by snapshot)
- Idempotent re-loan and cross-customer duplicate rejection
- Strict transition table
- Compare-and-swap on expected_status
- Concurrent pending → loan races (threads and forced interleaving)
- The same flow on the Django-backed store
"""

import copy
import threading
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from core.commands.base import Actor
from core.config import RmsSettings
from core.errors import (
    DuplicateOrderLoan,
    InvalidTransition,
    LoanCustomerNotFound,
    MissingLoanCustomer,
    OrderNotFound,
    StaleOrderState,
    ValidationError,
)
from core.store import InMemoryStore
from core.time.clock import FixedClock
from engines.settlement.commands import OrderStatusSetRequest
from engines.settlement.policies import ALLOWED_TRANSITIONS, is_transition_allowed
from engines.settlement.services import SettlementService

NOW = datetime(2024, 1, 5, 18, 0, tzinfo=timezone.utc)
CASHIER = Actor(actor_id="admin-1", name="Ada")
OTHER_CASHIER = Actor(actor_id="admin-2", name="Ben")

SEED = {
    "items": {
        "a": {"name": "Tea", "price": "5"},
        "b": {"name": "Cake", "price": "12.5"},
    },
    "users": {
        "w1": {"name": "Ann", "phone": "0700", "role": "waiter"},
    },
    "orders": {
        "order001": {
            "id": "order001",
            "waiter_id": "w1",
            "time": "2024-01-05T09:30:00.000Z",
            "status": "pending",
            "collector": "",
            "items": {"a": {"qty": 2}, "b": {"qty": 1}},
        },
        "order002": {
            "id": "order002",
            "waiter_id": "w-gone",
            "time": "2024-01-05T10:00:00.000Z",
            "status": "pending",
            "collector": "",
            "items": {"a": {"qty": 1}, "deleted": {"qty": 3}},
        },
    },
    "loans": {
        "cust-x": {"name": "Xena", "phone": "0711"},
        "cust-y": {"name": "Yuri", "phone": "0722"},
    },
}


def _store(**kwargs):
    return InMemoryStore(initial=copy.deepcopy(SEED), **kwargs)


def _service(store, **settings):
    return SettlementService(store=store, clock=FixedClock(NOW), settings=RmsSettings(**settings))


def _loan_entries(store):
    entries = []
    for customer_id, customer in (store.read("loans") or {}).items():
        for entry_id, entry in (customer.get("loans") or {}).items():
            entries.append((customer_id, entry_id, entry))
    return entries


# ══════════════════════════════════════════════════════════════
# REQUEST VALIDATION
# ══════════════════════════════════════════════════════════════

class TestOrderStatusSetRequest:
    def test_valid(self):
        req = OrderStatusSetRequest(order_id="order001", status="paid")
        cmd = req.to_command(actor=CASHIER, issued_at=NOW)
        assert cmd.command_type == "settlement.order.status.set.request"
        assert cmd.payload == {"order_id": "order001", "status": "paid"}

    def test_unknown_status(self):
        with pytest.raises(ValidationError, match="not valid"):
            OrderStatusSetRequest(order_id="order001", status="void")

    def test_empty_order_id(self):
        with pytest.raises(ValidationError, match="order_id"):
            OrderStatusSetRequest(order_id="", status="paid")

    def test_loan_requires_customer(self):
        with pytest.raises(MissingLoanCustomer):
            OrderStatusSetRequest(order_id="order001", status="loan")

    def test_invalid_expected_status(self):
        with pytest.raises(ValidationError, match="expected_status"):
            OrderStatusSetRequest(order_id="order001", status="paid", expected_status="open")

    def test_loan_payload(self):
        req = OrderStatusSetRequest(
            order_id="order001", status="loan", loan_customer_id="cust-x",
            expected_status="pending",
        )
        payload = req.to_command(actor=CASHIER, issued_at=NOW).payload
        assert payload["loan_customer_id"] == "cust-x"
        assert payload["expected_status"] == "pending"


# ══════════════════════════════════════════════════════════════
# TRANSITIONS
# ══════════════════════════════════════════════════════════════

class TestPaidAndPending:
    def test_pending_to_paid_sets_collector(self):
        store = _store()
        result = _service(store).set_status(
            OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER,
        )
        assert result.previous_status == "pending"
        assert result.status == "paid"
        assert result.collector == "Ada"
        assert result.loan_entry is None
        assert store.read("orders/order001/status") == "paid"
        assert store.read("orders/order001/collector") == "Ada"
        assert _loan_entries(store) == []

    def test_back_to_pending_clears_collector(self):
        store = _store()
        service = _service(store)
        service.set_status(OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER)
        result = service.set_status(
            OrderStatusSetRequest(order_id="order001", status="pending"), CASHIER,
        )
        assert result.collector == ""
        assert store.read("orders/order001/collector") == ""
        assert store.read("orders/order001/status") == "pending"

    def test_actor_without_name_collects_as_unknown(self):
        store = _store()
        _service(store).set_status(
            OrderStatusSetRequest(order_id="order001", status="paid"),
            Actor(actor_id="kiosk", name=""),
        )
        assert store.read("orders/order001/collector") == "Unknown"

    def test_other_order_fields_untouched(self):
        store = _store()
        _service(store).set_status(OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER)
        order = store.read("orders/order001")
        assert order["items"] == SEED["orders"]["order001"]["items"]
        assert order["time"] == SEED["orders"]["order001"]["time"]

    def test_unknown_order(self):
        store = _store()
        with pytest.raises(OrderNotFound):
            _service(store).set_status(OrderStatusSetRequest(order_id="order999", status="paid"), CASHIER)
        assert store.read("orders/order999") is None


class TestLoan:
    def test_pending_to_loan_creates_one_entry(self):
        store = _store()
        result = _service(store).set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
            CASHIER,
        )
        assert result.ledger_entry_created is True
        assert result.loan_entry.amount == Decimal("22.5")

        entries = _loan_entries(store)
        assert len(entries) == 1
        customer_id, entry_id, entry = entries[0]
        assert customer_id == "cust-x"
        assert entry_id == result.loan_entry.id
        assert entry == {
            "order_id": "order001",
            "amount": "22.5",
            "date": "2024-01-05T09:30:00.000Z",
            "served_by": "Ann",
        }
        assert store.read("orders/order001/status") == "loan"
        assert store.read("orders/order001/collector") == "Ada"

    def test_missing_staff_and_item_fall_back(self):
        store = _store()
        result = _service(store).set_status(
            OrderStatusSetRequest(order_id="order002", status="loan", loan_customer_id="cust-y"),
            CASHIER,
        )
        assert result.loan_entry.served_by == "w-gone"
        assert result.loan_entry.amount == Decimal("5")

    def test_unknown_customer_writes_nothing(self):
        store = _store()
        with pytest.raises(LoanCustomerNotFound):
            _service(store).set_status(
                OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-z"),
                CASHIER,
            )
        assert store.read("orders/order001/status") == "pending"
        assert _loan_entries(store) == []

    def test_reloan_same_customer_is_idempotent(self):
        store = _store()
        service = _service(store)
        req = OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x")
        first = service.set_status(req, CASHIER)
        second = service.set_status(req, OTHER_CASHIER)

        assert second.ledger_entry_created is False
        assert second.loan_entry == first.loan_entry
        assert len(_loan_entries(store)) == 1
        assert store.read("orders/order001/collector") == "Ben"

    def test_loan_to_other_customer_rejected(self):
        store = _store()
        service = _service(store)
        service.set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
            CASHIER,
        )
        before = store.read("")

        with pytest.raises(DuplicateOrderLoan) as exc_info:
            service.set_status(
                OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-y"),
                OTHER_CASHIER,
            )
        assert exc_info.value.customer_id == "cust-x"
        assert store.read("") == before

    def test_skip_and_rejection_are_logged(self, caplog):
        store = _store()
        service = _service(store)
        req = OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x")
        service.set_status(req, CASHIER)
        with caplog.at_level("WARNING", logger="rms.settlement"):
            service.set_status(req, CASHIER)
            with pytest.raises(DuplicateOrderLoan):
                service.set_status(
                    OrderStatusSetRequest(
                        order_id="order001", status="loan", loan_customer_id="cust-y",
                    ),
                    CASHIER,
                )
        messages = [r.getMessage() for r in caplog.records if r.name == "rms.settlement"]
        assert any("insert skipped" in m for m in messages)
        assert any("already on loan to cust-x" in m for m in messages)

    def test_amount_frozen_after_price_change(self):
        store = _store()
        service = _service(store)
        req = OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x")
        service.set_status(req, CASHIER)
        store.write("items/a/price", "50")
        service.set_status(req, CASHIER)
        [(_, _, entry)] = _loan_entries(store)
        assert entry["amount"] == "22.5"

    def test_reopen_leaves_ledger(self):
        store = _store()
        service = _service(store)
        service.set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
            CASHIER,
        )
        service.set_status(OrderStatusSetRequest(order_id="order001", status="pending"), CASHIER)
        assert store.read("orders/order001/status") == "pending"
        assert len(_loan_entries(store)) == 1


class TestStrictTransitions:
    def test_table(self):
        assert ("pending", "paid") in ALLOWED_TRANSITIONS
        assert ("loan", "pending") not in ALLOWED_TRANSITIONS
        assert is_transition_allowed("loan", "paid", strict=False)
        assert not is_transition_allowed("loan", "paid", strict=True)
        assert is_transition_allowed("loan", "loan", strict=True)

    def test_loan_is_final(self):
        store = _store()
        service = _service(store, strict_transitions=True)
        service.set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
            CASHIER,
        )
        with pytest.raises(InvalidTransition) as exc_info:
            service.set_status(OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER)
        assert exc_info.value.current == "loan"
        assert store.read("orders/order001/status") == "loan"

    def test_paid_to_loan_allowed(self):
        store = _store()
        service = _service(store, strict_transitions=True)
        service.set_status(OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER)
        result = service.set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
            CASHIER,
        )
        assert result.previous_status == "paid"
        assert result.ledger_entry_created

    def test_permissive_by_default(self):
        store = _store()
        service = _service(store)
        service.set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
            CASHIER,
        )
        result = service.set_status(OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER)
        assert result.previous_status == "loan"
        assert store.read("orders/order001/status") == "paid"

    def test_strict_mode_from_django_settings(self, settings):
        settings.RMS_STRICT_TRANSITIONS = True
        store = _store()
        service = SettlementService(store=store, clock=FixedClock(NOW))
        service.set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
            CASHIER,
        )
        with pytest.raises(InvalidTransition):
            service.set_status(OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER)
        assert store.read("orders/order001/status") == "loan"

    def test_django_settings_permissive_by_default(self, settings):
        settings.RMS_STRICT_TRANSITIONS = False
        store = _store()
        service = SettlementService(store=store, clock=FixedClock(NOW))
        service.set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
            CASHIER,
        )
        service.set_status(OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER)
        assert store.read("orders/order001/status") == "paid"


class TestExpectedStatus:
    def test_matching_expectation(self):
        store = _store()
        result = _service(store).set_status(
            OrderStatusSetRequest(order_id="order001", status="paid", expected_status="pending"),
            CASHIER,
        )
        assert result.status == "paid"

    def test_stale_expectation_writes_nothing(self):
        store = _store()
        service = _service(store)
        service.set_status(OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER)
        with pytest.raises(StaleOrderState) as exc_info:
            service.set_status(
                OrderStatusSetRequest(
                    order_id="order001", status="loan", loan_customer_id="cust-x",
                    expected_status="pending",
                ),
                OTHER_CASHIER,
            )
        assert exc_info.value.actual == "paid"
        assert store.read("orders/order001/collector") == "Ada"
        assert _loan_entries(store) == []


class TestActivityLog:
    def _activity(self, store):
        return sorted(
            (entry["type"], entry.get("detail"), entry["user_id"], entry["time"])
            for entry in (store.read("log") or {}).values()
        )

    def test_each_status_change_recorded(self):
        store = _store()
        service = _service(store)
        service.set_status(OrderStatusSetRequest(order_id="order001", status="paid"), CASHIER)
        service.set_status(OrderStatusSetRequest(order_id="order001", status="pending"), OTHER_CASHIER)
        service.set_status(
            OrderStatusSetRequest(order_id="order002", status="loan", loan_customer_id="cust-y"),
            CASHIER,
        )
        assert self._activity(store) == [
            ("order_loan", "order002", "admin-1", "2024-01-05T18:00:00.000Z"),
            ("order_paid", "order001", "admin-1", "2024-01-05T18:00:00.000Z"),
            ("order_reopen", "order001", "admin-2", "2024-01-05T18:00:00.000Z"),
        ]

    def test_rejected_change_not_recorded(self):
        store = _store()
        service = _service(store)
        with pytest.raises(OrderNotFound):
            service.set_status(OrderStatusSetRequest(order_id="order999", status="paid"), CASHIER)
        with pytest.raises(LoanCustomerNotFound):
            service.set_status(
                OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="nobody"),
                CASHIER,
            )
        assert store.read("log") is None


# ══════════════════════════════════════════════════════════════
# CONCURRENCY
# ══════════════════════════════════════════════════════════════

class InterleavingStore(InMemoryStore):
    """Runs a competing operation between a transaction's read and commit."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.interleave = None

    def transaction(self, paths, mutator):
        hook, self.interleave = self.interleave, None
        if hook is None:
            return super().transaction(paths, mutator)

        fired = []

        def interleaved(values):
            if not fired:
                fired.append(True)
                hook()
            return mutator(values)

        return super().transaction(paths, interleaved)


class TestConcurrentLoans:
    def test_forced_interleaving_leaves_one_entry(self):
        store = InterleavingStore(initial=copy.deepcopy(SEED))
        service = _service(store)
        store.interleave = lambda: service.set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-y"),
            OTHER_CASHIER,
        )

        with pytest.raises(DuplicateOrderLoan) as exc_info:
            service.set_status(
                OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
                CASHIER,
            )

        assert exc_info.value.customer_id == "cust-y"
        entries = _loan_entries(store)
        assert [(c, e["order_id"]) for c, _, e in entries] == [("cust-y", "order001")]
        assert store.read("orders/order001/collector") == "Ben"

    def test_threaded_race_leaves_one_entry(self):
        store = _store(max_attempts=100)
        service = _service(store, transaction_max_attempts=100)
        barrier = threading.Barrier(6)
        outcomes = []
        lock = threading.Lock()

        def collector(customer_id, actor):
            barrier.wait()
            try:
                service.set_status(
                    OrderStatusSetRequest(
                        order_id="order001", status="loan", loan_customer_id=customer_id,
                    ),
                    actor,
                )
                outcome = ("ok", customer_id)
            except DuplicateOrderLoan as exc:
                outcome = ("duplicate", exc.customer_id)
            with lock:
                outcomes.append(outcome)

        threads = [
            threading.Thread(target=collector, args=(cid, actor))
            for cid, actor in [("cust-x", CASHIER), ("cust-y", OTHER_CASHIER)] * 3
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        entries = _loan_entries(store)
        assert len(entries) == 1
        winner = entries[0][0]
        assert len(outcomes) == 6
        for kind, customer_id in outcomes:
            # losers either re-loaned to the winner or were told who won
            assert customer_id == winner
        assert sum(1 for kind, _ in outcomes if kind == "duplicate") == 3


# ══════════════════════════════════════════════════════════════
# DATABASE STORE
# ══════════════════════════════════════════════════════════════

@pytest.mark.django_db(transaction=True)
class TestSettlementOnDbStore:
    def _seed(self):
        from core.store_db.provider import DbStore

        store = DbStore(root="rms")
        for collection, docs in SEED.items():
            store.write(collection, copy.deepcopy(docs))
        return store

    def test_loan_then_duplicate(self):
        store = self._seed()
        service = _service(store)
        result = service.set_status(
            OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-x"),
            CASHIER,
        )
        assert store.read(f"loans/cust-x/loans/{result.loan_entry.id}/amount") == "22.5"

        with pytest.raises(DuplicateOrderLoan):
            service.set_status(
                OrderStatusSetRequest(order_id="order001", status="loan", loan_customer_id="cust-y"),
                OTHER_CASHIER,
            )
        assert store.read("loans/cust-y/loans") is None
        assert store.read("orders/order001/collector") == "Ada"
