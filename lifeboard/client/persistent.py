"""
Keyed persistent store.

A ``PersistentEntry`` associates one base key, optionally namespaced by an
owner id, with one JSON-serializable value. The value is read from durable
storage when the entry opens (or its owner changes), written back on every
write, and kept in sync with changes other tabs make to the same slot.

Durability is best-effort: corrupt slots, unserializable values and quota
errors are logged and healed locally, never raised to the caller.
"""

from __future__ import annotations

import copy
import json
from typing import TYPE_CHECKING, Any, Callable, Generic, List, Optional, TypeVar

from ..utils.exceptions import StorageError
from ..utils.logger import get_logger
from .storage import StorageArea, StorageEvent

if TYPE_CHECKING:
    from .session import SessionManager

logger = get_logger(__name__)

T = TypeVar("T")

KEY_SEPARATOR = "_"


def effective_key(base_key: str, owner_id: Optional[str] = None, separator: str = KEY_SEPARATOR) -> str:
    """Storage address for ``base_key`` as seen by ``owner_id``."""
    if owner_id:
        return f"{owner_id}{separator}{base_key}"
    return base_key


class PersistentEntry(Generic[T]):
    """One keyed value mirrored into a storage area.

    An entry opened with an owner id is owner-scoped: while it has no owner
    (after logout) it holds the initial value and never touches storage, so a
    late write cannot land in the shared non-namespaced slot.
    """

    def __init__(
        self,
        area: StorageArea,
        base_key: str,
        initial_value: T,
        owner_id: Optional[str] = None,
        owner_scoped: Optional[bool] = None,
        separator: str = KEY_SEPARATOR,
    ):
        self.base_key = base_key
        self._area = area
        self._initial = copy.deepcopy(initial_value)
        self._separator = separator
        self._owner_id = owner_id or None
        self._owner_scoped = bool(self._owner_id) if owner_scoped is None else owner_scoped
        self._value: T = self._initial_copy()
        self._observers: List[Callable[[T], None]] = []
        self._cleanups: List[Callable[[], None]] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._closed = False
        self._load()
        self._listen()

    # -- public API -----------------------------------------------------

    @property
    def value(self) -> T:
        return self._value

    @property
    def owner_id(self) -> Optional[str]:
        return self._owner_id

    @property
    def owner_scoped(self) -> bool:
        return self._owner_scoped

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def key(self) -> Optional[str]:
        """Current effective key, or None for a scoped entry without owner."""
        if self._owner_scoped and not self._owner_id:
            return None
        return effective_key(self.base_key, self._owner_id, self._separator)

    def write(self, value: Any) -> None:
        """Replace the value, or apply ``value(previous)`` when callable."""
        if self._closed:
            logger.debug("Write to closed entry ignored", base_key=self.base_key)
            return
        # Owner is read now, not when the caller obtained the entry
        key = self.key
        if key is None:
            logger.debug("Write to owner-scoped entry without owner skipped", base_key=self.base_key)
            return
        new_value = value(self._value) if callable(value) else value
        self._set_value(new_value)
        self._persist(key, new_value)

    def set_owner(self, owner_id: Optional[str]) -> None:
        """Re-point the entry at another owner's slot (login, logout, switch)."""
        owner_id = owner_id or None
        if owner_id == self._owner_id or self._closed:
            return
        if owner_id:
            self._owner_scoped = True
        self._owner_id = owner_id
        self._stop_listening()
        self._load()
        self._listen()

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Call ``callback(value)`` whenever the value changes."""
        self._observers.append(callback)

        def unsubscribe() -> None:
            if callback in self._observers:
                self._observers.remove(callback)

        return unsubscribe

    def close(self) -> None:
        """Unmount: stop syncing and ignore further writes."""
        if self._closed:
            return
        self._closed = True
        self._stop_listening()
        self._observers.clear()
        for cleanup in self._cleanups:
            cleanup()
        self._cleanups.clear()

    def __enter__(self) -> "PersistentEntry[T]":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"PersistentEntry(key={self.key!r}, value={self._value!r})"

    # -- internals ------------------------------------------------------

    def _initial_copy(self) -> T:
        return copy.deepcopy(self._initial)

    def _set_value(self, value: T) -> None:
        self._value = value
        for observer in list(self._observers):
            observer(value)

    def _load(self) -> None:
        key = self.key
        if key is None:
            self._set_value(self._initial_copy())
            return
        raw = self._area.get_item(key)
        if raw is None:
            value = self._initial_copy()
            self._persist(key, value)
        else:
            try:
                value = json.loads(raw)
            except ValueError:
                logger.warning("Corrupt persistent entry reset to initial value", key=key)
                value = self._initial_copy()
                self._persist(key, value)
        self._set_value(value)

    def _persist(self, key: str, value: Any) -> bool:
        try:
            serialized = json.dumps(value)
        except (TypeError, ValueError) as e:
            logger.error("Value is not JSON-serializable, kept in memory only", key=key, error=str(e))
            return False
        try:
            self._area.set_item(key, serialized)
        except (StorageError, OSError) as e:
            logger.error("Failed to write persistent entry, kept in memory only", key=key, error=str(e))
            return False
        return True

    def _listen(self) -> None:
        key = self.key
        if key is not None:
            self._unsubscribe = self._area.add_listener(self._on_storage_event, key=key)

    def _stop_listening(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _on_storage_event(self, event: StorageEvent) -> None:
        key = self.key
        if self._closed or key is None:
            return
        if event.key is not None and event.key != key:
            return
        if event.new_value is None:
            self._set_value(self._initial_copy())
            return
        try:
            value = json.loads(event.new_value)
        except ValueError:
            logger.warning("Unparsable value from another tab, reset to initial value", key=key)
            value = self._initial_copy()
        self._set_value(value)


class PersistentStore:
    """Factory for entries sharing one storage area."""

    def __init__(self, area: StorageArea, separator: str = KEY_SEPARATOR):
        self.area = area
        self.separator = separator

    def open(
        self,
        base_key: str,
        initial_value: T,
        owner_id: Optional[str] = None,
        owner_scoped: Optional[bool] = None,
    ) -> PersistentEntry[T]:
        return PersistentEntry(
            self.area,
            base_key,
            initial_value,
            owner_id=owner_id,
            owner_scoped=owner_scoped,
            separator=self.separator,
        )

    def open_owned(self, base_key: str, initial_value: T, session: "SessionManager") -> PersistentEntry[T]:
        """Open an owner-scoped entry that follows the session's owner id."""
        entry = self.open(base_key, initial_value, owner_id=session.owner_id, owner_scoped=True)
        unsubscribe = session.subscribe(lambda manager: entry.set_owner(manager.owner_id))
        entry._cleanups.append(unsubscribe)
        return entry
