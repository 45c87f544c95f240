"""
RMS Store — Collaborator Contract
===================================
The core talks to its real-time data store only through this protocol.

Primitives:
- read(path)                    → deep copy of the node (None if absent)
- subscribe(path, listener)     → push full snapshots; returns unsubscribe
- write(path, value)            → single-path set/replace (None deletes)
- update(path, fields)          → multi-field merge at one path
- transaction(paths, mutator)   → atomic read-validate-write over paths

Transaction contract:
    mutator(values: {path: value}) → {path: new_value}

    The mutator may be invoked more than once (on conflict it is
    re-run against fresh state) and must be safe to re-run. Raising from the mutator aborts the transaction with
    nothing written. Every returned write path must lie under one of
    the declared paths.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, Mapping, Optional, Protocol

Listener = Callable[[Any], None]
Unsubscribe = Callable[[], None]
Mutator = Callable[[Dict[str, Any]], Optional[Mapping[str, Any]]]


class StoreProtocol(Protocol):
    def read(self, path: str) -> Any:
        ...

    def subscribe(self, path: str, listener: Listener) -> Unsubscribe:
        ...

    def write(self, path: str, value: Any) -> None:
        ...

    def update(self, path: str, fields: Mapping[str, Any]) -> None:
        ...

    def transaction(self, paths: Iterable[str], mutator: Mutator) -> Dict[str, Any]:
        ...
