"""
RMS Store — Snapshot Listeners
================================
Tracks which listeners watch which paths and pushes snapshots to them.

Dispatch behavior:
1. Select listeners whose path overlaps a changed path
2. Call each with the full snapshot at its own path
3. Catch listener exceptions per listener
4. Log the failure
5. Continue with the next listener
6. NEVER undo the committed write

Thread-safe. In-memory only.
"""

import itertools
import logging
from threading import Lock
from typing import Any, Callable, Iterable

from core.store.paths import normalize, overlaps

logger = logging.getLogger("rms.store")


class ListenerRegistry:
    """Registry of (path, listener) subscriptions keyed by a token."""

    def __init__(self):
        self._listeners: dict[int, tuple[str, Callable]] = {}
        self._tokens = itertools.count(1)
        self._lock = Lock()

    def add(self, path: str, listener: Callable) -> int:
        if not callable(listener):
            raise ValueError(f"Listener must be callable, got {type(listener)}.")
        path = normalize(path)
        with self._lock:
            token = next(self._tokens)
            self._listeners[token] = (path, listener)
        logger.debug(f"Listener {token} subscribed to '{path or '/'}'")
        return token

    def remove(self, token: int) -> None:
        with self._lock:
            self._listeners.pop(token, None)

    def matching(self, changed_paths: Iterable[str]) -> list[tuple[str, Callable]]:
        changed = [normalize(p) for p in changed_paths]
        with self._lock:
            entries = sorted(self._listeners.items())
        return [
            (path, listener)
            for _, (path, listener) in entries
            if any(overlaps(path, c) for c in changed)
        ]

    def __len__(self) -> int:
        with self._lock:
            return len(self._listeners)


def notify(
    subscriptions: list[tuple[str, Callable]],
    read: Callable[[str], Any],
) -> dict:
    """
    Push the current snapshot to each subscription.

    This function NEVER raises. Failures are logged and counted.
    """
    result = {"notified": 0, "failed": 0, "failures": []}

    for path, listener in subscriptions:
        listener_name = getattr(listener, "__qualname__", str(listener))
        try:
            listener(read(path))
            result["notified"] += 1
        except Exception as exc:
            result["failed"] += 1
            result["failures"].append({
                "listener": listener_name,
                "path": path,
                "error": str(exc),
                "error_type": type(exc).__name__,
            })
            logger.error(
                f"Listener failed: {listener_name} on '{path or '/'}': {exc}",
                exc_info=True,
            )

    return result
