"""
RMS Store — In-Memory Implementation
======================================
Process-local StoreProtocol implementation backed by a nested dict.

Used by tests and by single-process deployments. Thread-safe.

Concurrency model (optimistic):
- Every committed write bumps a global revision and is recorded
  in a write log as (revision, path).
- A transaction snapshots its declared paths, runs the mutator
  WITHOUT holding the lock, then re-acquires the lock and checks
  the write log for any overlapping write committed since the
  snapshot. On conflict the mutator is re-run against fresh state.
- After max_attempts conflicting runs, TransactionConflict is raised.

Listeners are notified after the lock is released.
"""

from __future__ import annotations

import copy
import logging
from collections import Counter
from threading import RLock
from typing import Any, Callable, Dict, Iterable, Mapping, Optional

from core.config import load_settings
from core.errors import TransactionConflict
from core.store.listeners import ListenerRegistry, notify
from core.store.paths import get_in, is_under, join, normalize, overlaps, set_in, split

logger = logging.getLogger("rms.store")


class InMemoryStore:
    """In-memory JSON tree store with optimistic transactions."""

    def __init__(
        self,
        *,
        root: str = "",
        max_attempts: int = 5,
        initial: Optional[dict] = None,
    ):
        if not isinstance(max_attempts, int) or max_attempts < 1:
            raise ValueError("max_attempts must be a positive integer.")
        self._root = normalize(root)
        self._max_attempts = max_attempts
        self._tree: dict = {}
        self._revision = 0
        self._write_log: list[tuple[int, str]] = []
        self._inflight: Counter = Counter()
        self._lock = RLock()
        self._listeners = ListenerRegistry()

        if initial:
            set_in(self._tree, split(self._root), copy.deepcopy(initial))

    @classmethod
    def from_settings(cls, settings=None, initial: Optional[dict] = None) -> "InMemoryStore":
        settings = settings or load_settings()
        return cls(
            root=settings.store_root,
            max_attempts=settings.transaction_max_attempts,
            initial=initial,
        )

    # ── Reads ──────────────────────────────────────────────────

    @property
    def revision(self) -> int:
        with self._lock:
            return self._revision

    def read(self, path: str = "") -> Any:
        return self._read_full(self._full(path))

    def subscribe(self, path: str, listener: Callable[[Any], None]) -> Callable[[], None]:
        full = self._full(path)
        token = self._listeners.add(full, listener)
        notify([(full, listener)], self._read_full)

        def unsubscribe() -> None:
            self._listeners.remove(token)

        return unsubscribe

    # ── Writes ─────────────────────────────────────────────────

    def write(self, path: str, value: Any) -> None:
        self._commit({self._full(path): copy.deepcopy(value)})

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        if not isinstance(fields, Mapping) or not fields:
            raise ValueError("update() requires a non-empty mapping of fields.")
        base = self._full(path)
        self._commit({
            join(base, key): copy.deepcopy(value)
            for key, value in fields.items()
        })

    def transaction(
        self,
        paths: Iterable[str],
        mutator: Callable[[Dict[str, Any]], Optional[Mapping[str, Any]]],
    ) -> Dict[str, Any]:
        declared = tuple(normalize(p) for p in paths)
        if not declared:
            raise ValueError("transaction() requires at least one path.")
        declared_full = [self._full(p) for p in declared]

        for attempt in range(1, self._max_attempts + 1):
            with self._lock:
                start = self._revision
                self._inflight[start] += 1
                values = {
                    p: copy.deepcopy(get_in(self._tree, split(full)))
                    for p, full in zip(declared, declared_full)
                }

            try:
                writes = self._checked_writes(declared, mutator(values))
                full_writes = {self._full(p): copy.deepcopy(v) for p, v in writes.items()}

                with self._lock:
                    if self._conflicts_since(start, declared_full):
                        logger.debug(
                            f"Transaction over {list(declared)} conflicted "
                            f"(attempt {attempt}/{self._max_attempts})"
                        )
                        continue
                    self._apply(full_writes)
            finally:
                self._release(start)

            self._notify(full_writes)
            return writes

        logger.warning(
            f"Transaction over {list(declared)} gave up after "
            f"{self._max_attempts} attempts"
        )
        raise TransactionConflict(declared, self._max_attempts)

    # ── Internals ──────────────────────────────────────────────

    def _full(self, path: str) -> str:
        return join(self._root, path)

    def _read_full(self, full_path: str) -> Any:
        with self._lock:
            return copy.deepcopy(get_in(self._tree, split(full_path)))

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

    def _conflicts_since(self, revision: int, full_paths: list[str]) -> bool:
        for rev, written in reversed(self._write_log):
            if rev <= revision:
                break
            if any(overlaps(written, p) for p in full_paths):
                return True
        return False

    def _apply(self, full_writes: Dict[str, Any]) -> None:
        for full_path, value in full_writes.items():
            set_in(self._tree, split(full_path), value)
            self._revision += 1
            self._write_log.append((self._revision, full_path))

    def _release(self, start: int) -> None:
        with self._lock:
            self._inflight[start] -= 1
            if self._inflight[start] <= 0:
                del self._inflight[start]
            if not self._inflight:
                self._write_log.clear()
            else:
                oldest = min(self._inflight)
                self._write_log = [e for e in self._write_log if e[0] > oldest]

    def _commit(self, full_writes: Dict[str, Any]) -> None:
        with self._lock:
            self._apply(full_writes)
            if not self._inflight:
                self._write_log.clear()
        self._notify(full_writes)

    def _notify(self, full_writes: Dict[str, Any]) -> None:
        if not full_writes:
            return
        subscriptions = self._listeners.matching(full_writes.keys())
        if subscriptions:
            notify(subscriptions, self._read_full)
