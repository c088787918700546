"""
Durable local storage for the client state layer.

A ``StorageBackend`` is one origin's key/value string store (the browser's
``localStorage``). Every ``StorageArea`` opened on it is one tab. A mutation
made through one area is announced as a ``StorageEvent`` to the listeners of
every other area on the same backend, never to the writer itself.

Delivery follows the event loop: with a running asyncio loop the event is
scheduled with ``call_soon`` so it fires after the writer's turn completes;
without one it is delivered synchronously.
"""

from __future__ import annotations

import asyncio
import json
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from ..utils.exceptions import StorageQuotaExceeded
from ..utils.fileio import atomic_write_json
from ..utils.logger import get_logger

logger = get_logger(__name__)

StorageListener = Callable[["StorageEvent"], None]


@dataclass(frozen=True)
class StorageEvent:
    """A change to one slot. ``key`` is None when the whole area was cleared."""

    key: Optional[str]
    old_value: Optional[str]
    new_value: Optional[str]


def _deliver(listener: StorageListener, event: StorageEvent) -> None:
    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        listener(event)
        return
    loop.call_soon(listener, event)


class StorageBackend:
    """Base key/value string store with change fan-out to areas."""

    def __init__(self, quota_bytes: Optional[int] = None):
        self.quota_bytes = quota_bytes
        self._lock = threading.RLock()
        self._areas: List[StorageArea] = []

    # -- subclass hooks -------------------------------------------------

    def _items(self) -> Dict[str, str]:
        raise NotImplementedError

    def _commit(self) -> None:
        """Persist the current mapping. No-op for in-memory backends."""

    # -- synchronous string API ----------------------------------------

    def get(self, key: str) -> Optional[str]:
        with self._lock:
            return self._items().get(key)

    def keys(self) -> List[str]:
        with self._lock:
            return list(self._items().keys())

    def set(self, key: str, value: str, origin: Optional["StorageArea"] = None) -> None:
        if not isinstance(value, str):
            raise TypeError("storage values must be strings")
        with self._lock:
            items = self._items()
            old = items.get(key)
            if old == value:
                return
            self._check_quota(items, key, value)
            items[key] = value
            try:
                self._commit()
            except OSError:
                if old is None:
                    items.pop(key, None)
                else:
                    items[key] = old
                raise
        self._broadcast(StorageEvent(key, old, value), origin)

    def remove(self, key: str, origin: Optional["StorageArea"] = None) -> None:
        with self._lock:
            items = self._items()
            if key not in items:
                return
            old = items.pop(key)
            self._commit()
        self._broadcast(StorageEvent(key, old, None), origin)

    def clear(self, origin: Optional["StorageArea"] = None) -> None:
        with self._lock:
            items = self._items()
            if not items:
                return
            items.clear()
            self._commit()
        self._broadcast(StorageEvent(None, None, None), origin)

    def used_bytes(self) -> int:
        with self._lock:
            return sum(len(k) + len(v) for k, v in self._items().items())

    def _check_quota(self, items: Dict[str, str], key: str, value: str) -> None:
        if self.quota_bytes is None:
            return
        current = sum(len(k) + len(v) for k, v in items.items() if k != key)
        if current + len(key) + len(value) > self.quota_bytes:
            raise StorageQuotaExceeded(
                f"Storing {key!r} would exceed the {self.quota_bytes} byte quota"
            )

    # -- areas ----------------------------------------------------------

    def open_area(self) -> "StorageArea":
        area = StorageArea(self)
        with self._lock:
            self._areas.append(area)
        return area

    def _detach(self, area: "StorageArea") -> None:
        with self._lock:
            if area in self._areas:
                self._areas.remove(area)

    def _broadcast(self, event: StorageEvent, origin: Optional["StorageArea"]) -> None:
        with self._lock:
            targets = [a for a in self._areas if a is not origin]
        for area in targets:
            area._dispatch(event)


class MemoryBackend(StorageBackend):
    """In-process backend; lives as long as the object."""

    def __init__(self, quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes)
        self._data: Dict[str, str] = {}

    def _items(self) -> Dict[str, str]:
        return self._data


class JsonFileBackend(StorageBackend):
    """Backend persisted to a single JSON file.

    The whole mapping is rewritten atomically on every mutation, so a fresh
    backend opened on the same path (a page reload, a new process) sees every
    slot written before.
    """

    def __init__(self, path, quota_bytes: Optional[int] = None):
        super().__init__(quota_bytes)
        self.path = Path(path)
        self._data = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Local storage file unreadable, starting empty", path=str(self.path), error=str(e))
            return {}
        if not isinstance(raw, dict):
            logger.warning("Local storage file is not a mapping, starting empty", path=str(self.path))
            return {}
        return {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _items(self) -> Dict[str, str]:
        return self._data

    def _commit(self) -> None:
        atomic_write_json(self.path, self._data)


class StorageArea:
    """One tab's view of a backend, mirroring the ``localStorage`` API."""

    def __init__(self, backend: StorageBackend):
        self.backend = backend
        self._listeners: List[Tuple[Optional[str], StorageListener]] = []
        self._closed = False

    def get_item(self, key: str) -> Optional[str]:
        return self.backend.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.backend.set(key, value, origin=self)

    def remove_item(self, key: str) -> None:
        self.backend.remove(key, origin=self)

    def clear(self) -> None:
        self.backend.clear(origin=self)

    def keys(self) -> List[str]:
        return self.backend.keys()

    def add_listener(self, listener: StorageListener, key: Optional[str] = None) -> Callable[[], None]:
        """Listen for changes made by other areas.

        With ``key`` set only that slot's changes (and whole-area clears) are
        delivered. Returns a callable that removes the listener.
        """
        entry = (key, listener)
        self._listeners.append(entry)

        def unsubscribe() -> None:
            if entry in self._listeners:
                self._listeners.remove(entry)

        return unsubscribe

    def close(self) -> None:
        self._closed = True
        self._listeners.clear()
        self.backend._detach(self)

    def _dispatch(self, event: StorageEvent) -> None:
        if self._closed:
            return
        for key, listener in list(self._listeners):
            if key is None or event.key is None or event.key == key:
                _deliver(listener, event)
