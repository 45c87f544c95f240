"""
Tests for core.store_db — StoreProtocol on the Django ORM.
"""

from __future__ import annotations

import pytest

from core.config import RmsSettings
from core.store_db.models import StoreCollection, StoreDocument
from core.store_db.provider import DbStore

pytestmark = pytest.mark.django_db(transaction=True)


def _store() -> DbStore:
    return DbStore.from_settings(RmsSettings(store_root="rms"))


class TestDbStoreReadWrite:
    def test_document_round_trip(self) -> None:
        store = _store()
        store.write("items/i1", {"name": "Tea", "price": "2.50"})

        assert store.read("items/i1") == {"name": "Tea", "price": "2.50"}
        assert store.read("items/i1/price") == "2.50"
        assert store.read("items") == {"i1": {"name": "Tea", "price": "2.50"}}

    def test_collections_are_namespaced_by_root(self) -> None:
        _store().write("items/i1", {"name": "Tea"})
        assert StoreCollection.objects.filter(name="rms/items").exists()
        assert DbStore(root="other").read("items") is None

    def test_read_root_lists_collections(self) -> None:
        store = _store()
        store.write("items/i1", {"name": "Tea"})
        store.write("users/w1", {"name": "Ann", "role": "waiter"})
        assert store.read("") == {
            "items": {"i1": {"name": "Tea"}},
            "users": {"w1": {"name": "Ann", "role": "waiter"}},
        }

    def test_nested_write_bumps_document_version(self) -> None:
        store = _store()
        store.write("orders/order001", {"id": "order001", "status": "pending"})
        store.write("orders/order001/status", "paid")

        doc = StoreDocument.objects.get(collection_id="rms/orders", key="order001")
        assert doc.value["status"] == "paid"
        assert doc.version == 2

    def test_update_merges_fields(self) -> None:
        store = _store()
        store.write("items/i1", {"name": "Tea", "price": "2", "stock": 4})
        store.update("items/i1", {"name": "Green Tea", "price": "3"})
        assert store.read("items/i1") == {"name": "Green Tea", "price": "3", "stock": 4}

    def test_write_none_deletes_document(self) -> None:
        store = _store()
        store.write("items/i1", {"name": "Tea"})
        store.write("items/i1", None)
        assert store.read("items/i1") is None
        assert store.read("items") is None

    def test_collection_write_replaces_documents(self) -> None:
        store = _store()
        store.write("items/i1", {"name": "Tea"})
        store.write("items", {"i2": {"name": "Coffee"}})
        assert store.read("items") == {"i2": {"name": "Coffee"}}

    def test_root_write_rejected(self) -> None:
        with pytest.raises(ValueError, match="collection"):
            _store().write("", {"items": {}})


class TestDbStoreSubscribe:
    def test_listener_receives_snapshot_after_commit(self) -> None:
        store = _store()
        seen = []
        store.subscribe("orders", seen.append)
        store.write("orders/order001", {"id": "order001"})

        assert seen[0] is None
        assert seen[-1] == {"order001": {"id": "order001"}}

    def test_unsubscribe(self) -> None:
        store = _store()
        seen = []
        unsubscribe = store.subscribe("orders", seen.append)
        unsubscribe()
        store.write("orders/order001", {"id": "order001"})
        assert seen == [None]


class TestDbStoreTransaction:
    def test_transaction_commits_all_writes(self) -> None:
        store = _store()
        store.write("orders/order001", {"id": "order001", "status": "pending"})
        store.write("loans/c1", {"name": "Bo", "phone": "1"})

        def mutator(values):
            assert values["orders/order001"]["status"] == "pending"
            assert values["loans"] == {"c1": {"name": "Bo", "phone": "1"}}
            return {
                "orders/order001/status": "loan",
                "loans/c1/loans/e1": {"order_id": "order001", "amount": "10"},
            }

        store.transaction(["orders/order001", "loans"], mutator)

        assert store.read("orders/order001/status") == "loan"
        assert store.read("loans/c1/loans/e1/amount") == "10"

    def test_mutator_failure_rolls_back(self) -> None:
        store = _store()
        store.write("orders/order001", {"id": "order001", "status": "pending"})

        def mutator(values):
            raise LookupError("abort")

        with pytest.raises(LookupError):
            store.transaction(["orders/order001"], mutator)
        assert store.read("orders/order001/status") == "pending"

    def test_write_outside_declared_paths_rejected(self) -> None:
        store = _store()
        with pytest.raises(ValueError, match="outside"):
            store.transaction(["orders"], lambda values: {"loans/c1": {"name": "x"}})
        assert store.read("loans") is None

    def test_collection_revision_increments(self) -> None:
        store = _store()
        store.transaction(["orders"], lambda values: {"orders/order001": {"id": "order001"}})
        store.transaction(["orders"], lambda values: {"orders/order002": {"id": "order002"}})
        assert StoreCollection.objects.get(name="rms/orders").revision == 2
