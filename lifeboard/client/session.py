"""
Session manager: the client's record of who is logged in.

States::

    UNRESOLVED --resolve()--> ANONYMOUS <--login/register/logout--> AUTHENTICATED

The authenticated identity is mirrored into durable storage under a fixed
key so a reload resolves straight to AUTHENTICATED without a network call.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from ..utils.exceptions import InvalidInputError, LifeboardError
from ..utils.logger import get_logger
from .api import CredentialClient
from .storage import StorageArea, StorageEvent

logger = get_logger(__name__)

SESSION_STORAGE_KEY = "currentUser"
MIN_PASSWORD_LENGTH = 6


class SessionState(str, Enum):
    UNRESOLVED = "unresolved"
    ANONYMOUS = "anonymous"
    AUTHENTICATED = "authenticated"


@dataclass(frozen=True)
class Session:
    """The authenticated identity."""

    owner_id: str
    email: str
    created_at: str
    token: Optional[str] = None

    @classmethod
    def from_record(cls, record: Any) -> "Session":
        """Build from the wire/storage shape ``{id, email, createdAt, token?}``."""
        if not isinstance(record, dict):
            raise ValueError("session record must be an object")
        owner_id = record.get("id")
        email = record.get("email")
        if not isinstance(owner_id, str) or not owner_id:
            raise ValueError("session record has no id")
        if not isinstance(email, str) or not email:
            raise ValueError("session record has no email")
        token = record.get("token")
        return cls(
            owner_id=owner_id,
            email=email,
            created_at=str(record.get("createdAt") or ""),
            token=token if isinstance(token, str) and token else None,
        )

    def to_record(self) -> Dict[str, Any]:
        record = {"id": self.owner_id, "email": self.email, "createdAt": self.created_at}
        if self.token:
            record["token"] = self.token
        return record


SessionListener = Callable[["SessionManager"], None]


class SessionManager:
    """Tracks the current identity and exposes login/register/logout."""

    def __init__(
        self,
        area: StorageArea,
        credentials: CredentialClient,
        storage_key: str = SESSION_STORAGE_KEY,
        min_password_length: int = MIN_PASSWORD_LENGTH,
        follow_other_tabs: bool = True,
    ):
        self._area = area
        self._credentials = credentials
        self.storage_key = storage_key
        self.min_password_length = min_password_length
        self._state = SessionState.UNRESOLVED
        self._session: Optional[Session] = None
        self._listeners: List[SessionListener] = []
        # Bumped by every login/register/logout; only the latest call may apply its result
        self._generation = 0
        self._unsubscribe_storage = None
        if follow_other_tabs:
            self._unsubscribe_storage = area.add_listener(self._on_storage_event, key=storage_key)

    # -- state ----------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def owner_id(self) -> Optional[str]:
        return self._session.owner_id if self._session else None

    @property
    def token(self) -> Optional[str]:
        return self._session.token if self._session else None

    @property
    def is_resolved(self) -> bool:
        return self._state is not SessionState.UNRESOLVED

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Call ``listener(manager)`` after every state transition."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- operations -----------------------------------------------------

    def resolve(self) -> SessionState:
        """Restore a persisted session, if any. Idempotent once resolved."""
        if self.is_resolved:
            return self._state
        session = self._read_persisted()
        if session:
            self._apply(session)
        else:
            self._apply(None)
        logger.debug("Session resolved", state=self._state.value)
        return self._state

    async def login(self, email: str, password: str) -> Session:
        self._validate(email, password)
        ticket = self._next_generation()
        try:
            record = await self._credentials.login(email.strip(), password)
        except LifeboardError as e:
            self._fail(ticket, "login", e)
            raise
        return self._succeed(ticket, "login", record)

    async def register(self, email: str, password: str) -> Session:
        self._validate(email, password)
        if len(password) < self.min_password_length:
            raise InvalidInputError(
                f"Password must be at least {self.min_password_length} characters long"
            )
        ticket = self._next_generation()
        try:
            record = await self._credentials.register(email.strip(), password)
        except LifeboardError as e:
            self._fail(ticket, "register", e)
            raise
        return self._succeed(ticket, "register", record)

    def logout(self, navigate: Optional[Callable[[], None]] = None) -> None:
        """Forget the session.

        ``navigate`` runs before the identity is cleared so owner-scoped
        views are left before anything reacts to the missing owner.
        """
        self._next_generation()
        if navigate is not None:
            navigate()
        owner_id = self.owner_id
        self._area.remove_item(self.storage_key)
        self._apply(None)
        logger.info("Logged out", owner_id=owner_id)

    def close(self) -> None:
        if self._unsubscribe_storage:
            self._unsubscribe_storage()
            self._unsubscribe_storage = None
        self._listeners.clear()

    # -- internals ------------------------------------------------------

    def _validate(self, email: str, password: str) -> None:
        if not email or not email.strip() or not password:
            raise InvalidInputError("Email and password are required")

    def _next_generation(self) -> int:
        self._generation += 1
        return self._generation

    def _succeed(self, ticket: int, action: str, record: Dict[str, Any]) -> Session:
        try:
            session = Session.from_record(record)
        except ValueError as e:
            raise LifeboardError("The server returned an invalid identity.") from e
        if ticket != self._generation:
            logger.info("Discarding superseded result", action=action, owner_id=session.owner_id)
            return session
        self._area.set_item(self.storage_key, json.dumps(session.to_record()))
        self._apply(session)
        logger.info("Authenticated", action=action, owner_id=session.owner_id)
        return session

    def _fail(self, ticket: int, action: str, error: LifeboardError) -> None:
        logger.warning("Authentication failed", action=action, error=error.message, error_type=type(error).__name__)
        if ticket != self._generation:
            return
        self._area.remove_item(self.storage_key)
        self._apply(None)

    def _read_persisted(self) -> Optional[Session]:
        raw = self._area.get_item(self.storage_key)
        if raw is None:
            return None
        try:
            return Session.from_record(json.loads(raw))
        except ValueError as e:
            logger.warning("Discarding malformed persisted session", error=str(e))
            self._area.remove_item(self.storage_key)
            return None

    def _apply(self, session: Optional[Session]) -> None:
        new_state = SessionState.AUTHENTICATED if session else SessionState.ANONYMOUS
        if new_state is self._state and session == self._session:
            return
        self._session = session
        self._state = new_state
        for listener in list(self._listeners):
            listener(self)

    def _on_storage_event(self, event: StorageEvent) -> None:
        # Another tab logged in or out
        if not self.is_resolved:
            return
        if event.key is None or event.new_value is None:
            self._next_generation()
            self._apply(None)
            return
        try:
            session = Session.from_record(json.loads(event.new_value))
        except ValueError:
            logger.warning("Ignoring malformed session written by another tab")
            return
        self._next_generation()
        self._apply(session)
