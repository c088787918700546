"""
Composition root for one browser tab.

A ``BrowserContext`` owns the tab's storage area, navigator, session manager
and service clients. Tabs of the same origin share one ``StorageBackend``.
"""

from __future__ import annotations

from typing import Any, Optional
from urllib.parse import parse_qs, urlsplit

import httpx

from ..resources.models import RESOURCE_KINDS
from ..utils.config import ClientSettings, AuthSettings
from ..utils.exceptions import InvalidInputError
from .api import ApiClient, CredentialClient, ResourceClient, SuggestionClient
from .gate import AccessGate, Navigator
from .persistent import PersistentEntry, PersistentStore
from .session import Session, SessionManager, SessionState
from .storage import StorageBackend


class BrowserContext:
    """One tab: storage area, router, session and clients wired together."""

    def __init__(
        self,
        backend: StorageBackend,
        settings: Optional[ClientSettings] = None,
        auth_settings: Optional[AuthSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        path: str = "/",
    ):
        self.settings = settings or ClientSettings()
        auth_settings = auth_settings or AuthSettings()
        self.storage = backend.open_area()
        self.navigator = Navigator(path)
        self.api = ApiClient(self.settings.api_base_url, transport=transport)
        self.session = SessionManager(
            self.storage,
            CredentialClient(self.api),
            storage_key=self.settings.session_storage_key,
            min_password_length=auth_settings.min_password_length,
        )
        self.api.set_token_provider(lambda: self.session.token)
        self.store = PersistentStore(self.storage, separator=self.settings.key_separator)

    def start(self):
        """Resolve the persisted session (page load)."""
        return self.session.resolve()

    def gate(self) -> AccessGate:
        return AccessGate(
            self.session,
            self.navigator,
            login_path=self.settings.login_path,
            redirect_param=self.settings.redirect_param,
        )

    def login_destination(self) -> str:
        """Where a successful login lands: the ``redirect`` target or home."""
        query = parse_qs(urlsplit(self.navigator.current_path).query)
        targets = query.get(self.settings.redirect_param) or []
        target = targets[0] if targets else ""
        # Only same-origin paths
        if target.startswith("/") and not target.startswith("//"):
            return target
        return self.settings.home_path

    async def login(self, email: str, password: str) -> Session:
        """Log in from the login view and forward to the requested page."""
        return await self._enter(self.session.login, email, password)

    async def register(self, email: str, password: str) -> Session:
        return await self._enter(self.session.register, email, password)

    async def _enter(self, attempt, email: str, password: str) -> Session:
        destination = self.login_destination()
        if self.session.state is SessionState.AUTHENTICATED:
            self.navigator.push(destination)
            return self.session.session
        result = await attempt(email, password)
        # A superseded attempt does not navigate
        if self.session.session == result:
            self.navigator.push(destination)
        return result

    def open_owned(self, base_key: str, initial_value: Any) -> PersistentEntry:
        """Owner-scoped entry that follows this tab's session."""
        return self.store.open_owned(base_key, initial_value, self.session)

    def resources(self, kind: str) -> ResourceClient:
        resource = RESOURCE_KINDS.get(kind)
        if resource is None:
            raise InvalidInputError(f"Unknown resource kind {kind!r}")
        return ResourceClient(self.api, resource.path, label=resource.label)

    def suggestions(self) -> SuggestionClient:
        return SuggestionClient(self.api)

    def logout(self, destination: str = "/") -> None:
        """Leave the current view, then drop the session."""
        self.session.logout(navigate=lambda: self.navigator.push(destination))

    async def aclose(self) -> None:
        self.session.close()
        self.storage.close()
        await self.api.aclose()
