"""
Client-side state layer.

Durable local storage, the keyed persistent store built on it, the session
manager and the access gate that scopes everything by the logged-in owner.
"""

from .context import BrowserContext
from .gate import AccessGate, GateDecision, Navigator
from .persistent import PersistentEntry, PersistentStore, effective_key
from .session import Session, SessionManager, SessionState
from .storage import JsonFileBackend, MemoryBackend, StorageArea, StorageBackend, StorageEvent
from .views import MountGuard

__all__ = [
    "AccessGate",
    "BrowserContext",
    "GateDecision",
    "JsonFileBackend",
    "MemoryBackend",
    "MountGuard",
    "Navigator",
    "PersistentEntry",
    "PersistentStore",
    "Session",
    "SessionManager",
    "SessionState",
    "StorageArea",
    "StorageBackend",
    "StorageEvent",
    "effective_key",
]
