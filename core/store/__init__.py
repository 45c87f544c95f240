"""
RMS Store — Public API
========================
Collaborator contract for the real-time data store plus the
in-memory implementation. The Django-backed implementation
lives in core.store_db.
"""

from core.store.contracts import Listener, Mutator, StoreProtocol, Unsubscribe
from core.store.memory import InMemoryStore

__all__ = [
    "StoreProtocol",
    "Listener",
    "Mutator",
    "Unsubscribe",
    "InMemoryStore",
]
