"""
RMS Store DB — StoreProtocol on the Django ORM
=================================================
Path model:
    ""                        → every collection under the root
    "<collection>"            → {key: document} for the collection
    "<collection>/<key>"      → one document
    "<collection>/<key>/..."  → a node nested inside the document JSON

Atomicity:
    Every write runs inside transaction.atomic() after locking the
    touched collection rows with select_for_update(). A transaction's
    mutator runs while those locks are held, so concurrent settlement
    attempts on the same collections execute one after another and the
    second one sees the first one's writes.

Listeners are notified via transaction.on_commit() — never before
the data is durable.
"""

from __future__ import annotations

import copy
import logging
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from django.db import DatabaseError, IntegrityError, transaction
from django.db.models import F

from core.config import load_settings
from core.errors import StoreWriteFailure
from core.store.listeners import ListenerRegistry, notify
from core.store.paths import get_in, is_under, join, normalize, set_in, split
from core.store_db.models import StoreCollection, StoreDocument

logger = logging.getLogger("rms.store")


class DbStore:
    """Django-backed document store implementing StoreProtocol."""

    def __init__(self, *, root: str = ""):
        self._root = normalize(root)
        self._listeners = ListenerRegistry()

    @classmethod
    def from_settings(cls, settings=None) -> "DbStore":
        return cls(root=(settings or load_settings()).store_root)

    # ── Reads ──────────────────────────────────────────────────

    def read(self, path: str = "") -> Any:
        segments = split(path)
        if not segments:
            prefix = f"{self._root}/" if self._root else ""
            tree = {}
            for name in StoreCollection.objects.values_list("name", flat=True):
                if prefix and not name.startswith(prefix):
                    continue
                short = name[len(prefix):]
                if "/" in short:
                    continue
                value = self._read_collection(name)
                if value is not None:
                    tree[short] = value
            return tree or None

        collection = self._collection_name(segments[0])
        if len(segments) == 1:
            return self._read_collection(collection)

        doc = (
            StoreDocument.objects.filter(collection_id=collection, key=segments[1])
            .values_list("value", flat=True)
            .first()
        )
        if doc is None:
            return None
        return copy.deepcopy(get_in(doc, segments[2:]))

    def subscribe(self, path: str, listener: Callable[[Any], None]) -> Callable[[], None]:
        token = self._listeners.add(path, listener)
        notify([(normalize(path), listener)], self.read)

        def unsubscribe() -> None:
            self._listeners.remove(token)

        return unsubscribe

    # ── Writes ─────────────────────────────────────────────────

    def write(self, path: str, value: Any) -> None:
        self._run({normalize(path): value})

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        if not isinstance(fields, Mapping) or not fields:
            raise ValueError("update() requires a non-empty mapping of fields.")
        self._run({join(path, key): value for key, value in fields.items()})

    def transaction(
        self,
        paths: Iterable[str],
        mutator: Callable[[Dict[str, Any]], Optional[Mapping[str, Any]]],
    ) -> Dict[str, Any]:
        declared = tuple(normalize(p) for p in paths)
        if not declared:
            raise ValueError("transaction() requires at least one path.")
        if any(not p for p in declared):
            raise ValueError("transaction() paths must name a collection.")

        collections = {self._collection_name(split(p)[0]) for p in declared}

        try:
            with transaction.atomic():
                self._lock_collections(collections)
                values = {p: self.read(p) for p in declared}
                writes = self._checked_writes(declared, mutator(values))
                self._apply(writes)
                transaction.on_commit(lambda: self._notify(writes))
        except DatabaseError as exc:
            logger.error(f"Store transaction over {list(declared)} failed: {exc}")
            raise StoreWriteFailure(str(exc), path=declared[0]) from exc

        return writes

    # ── Internals ──────────────────────────────────────────────

    def _collection_name(self, segment: str) -> str:
        return join(self._root, segment)

    def _read_collection(self, collection: str) -> Optional[dict]:
        rows = StoreDocument.objects.filter(collection_id=collection).values_list("key", "value")
        tree = {key: value for key, value in rows}
        return tree or None

    def _ensure_collection(self, name: str) -> None:
        if StoreCollection.objects.filter(name=name).exists():
            return
        try:
            with transaction.atomic():
                StoreCollection.objects.create(name=name)
        except IntegrityError:
            # created concurrently; the row now exists
            logger.debug(f"Collection '{name}' created concurrently")

    def _lock_collections(self, names: Iterable[str]) -> None:
        ordered = sorted(set(names))
        for name in ordered:
            self._ensure_collection(name)
        list(
            StoreCollection.objects.select_for_update()
            .filter(name__in=ordered)
            .order_by("name")
        )

    @staticmethod
    def _checked_writes(declared, writes) -> Dict[str, Any]:
        if writes is None:
            return {}
        if not isinstance(writes, Mapping):
            raise TypeError("Transaction mutator must return a mapping or None.")
        checked = {}
        for path, value in writes.items():
            path = normalize(path)
            if not any(is_under(path, d) for d in declared):
                raise ValueError(
                    f"Transaction write '{path}' is outside the declared "
                    f"paths {list(declared)}."
                )
            checked[path] = value
        return checked

    def _run(self, writes: Dict[str, Any]) -> None:
        if any(not split(p) for p in writes):
            raise ValueError("Writes must target a collection or below.")
        collections = {self._collection_name(split(p)[0]) for p in writes}
        try:
            with transaction.atomic():
                self._lock_collections(collections)
                self._apply(writes)
                transaction.on_commit(lambda: self._notify(writes))
        except DatabaseError as exc:
            logger.error(f"Store write to {list(writes)} failed: {exc}")
            raise StoreWriteFailure(str(exc), path=next(iter(writes))) from exc

    def _apply(self, writes: Dict[str, Any]) -> None:
        for path, value in writes.items():
            segments = split(path)
            collection = self._collection_name(segments[0])

            if len(segments) == 1:
                StoreDocument.objects.filter(collection_id=collection).delete()
                if value is not None:
                    if not isinstance(value, dict):
                        raise ValueError(f"Collection '{segments[0]}' can only hold a mapping.")
                    StoreDocument.objects.bulk_create([
                        StoreDocument(collection_id=collection, key=key, value=doc)
                        for key, doc in value.items()
                        if doc is not None
                    ])
            else:
                self._write_document(collection, segments[1], segments[2:], value)

            StoreCollection.objects.filter(name=collection).update(
                revision=F("revision") + 1,
            )

    def _write_document(self, collection: str, key: str, inner: tuple, value: Any) -> None:
        doc = StoreDocument.objects.filter(collection_id=collection, key=key).first()

        if inner:
            current = copy.deepcopy(doc.value) if doc is not None else {}
            if not isinstance(current, dict):
                current = {}
            value = set_in(current, inner, copy.deepcopy(value))
            if not value:
                value = None

        if value is None:
            if doc is not None:
                doc.delete()
            return

        if doc is None:
            StoreDocument.objects.create(collection_id=collection, key=key, value=value)
        else:
            StoreDocument.objects.filter(pk=doc.pk).update(
                value=value, version=F("version") + 1,
            )

    def _notify(self, writes: Dict[str, Any]) -> None:
        subscriptions = self._listeners.matching(writes.keys())
        if subscriptions:
            notify(subscriptions, self.read)
