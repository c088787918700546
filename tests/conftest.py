"""Shared fixtures: isolated settings, app, and in-process browser tabs."""

from unittest.mock import MagicMock

import httpx
import pytest
from fastapi.testclient import TestClient

from lifeboard.client import BrowserContext, MemoryBackend
from lifeboard.suggestions import SuggestionService
from lifeboard.utils.config import AuthSettings, ClientSettings, Settings, StorageSettings, LoggingSettings
from lifeboard_web import create_app


@pytest.fixture
def settings(tmp_path):
    """Settings writing into a temp data dir, with cheap bcrypt."""
    return Settings(
        storage=StorageSettings(data_dir=str(tmp_path / "data")),
        auth=AuthSettings(bcrypt_rounds=4),
        logging=LoggingSettings(file_path=None),
    )


@pytest.fixture
def suggestion_service():
    service = MagicMock(spec=SuggestionService)
    service.suggest.return_value = ["Water the plants", "Call grandma", "Plan the weekend"]
    return service


@pytest.fixture
def app(settings, suggestion_service):
    return create_app(settings, suggestion_service=suggestion_service)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def backend():
    return MemoryBackend()


@pytest.fixture
def make_tab(app, settings):
    """Build a BrowserContext talking to the in-process app.

    Call inside a running event loop; the caller closes it with ``aclose()``.
    """

    def factory(backend, path="/"):
        return BrowserContext(
            backend,
            settings=ClientSettings(api_base_url="http://testserver"),
            auth_settings=settings.auth,
            transport=httpx.ASGITransport(app=app),
            path=path,
        )

    return factory


class FakeCredentials:
    """Stand-in for CredentialClient that records calls."""

    def __init__(self):
        self.calls = []
        self.users = {}
        self.error = None

    def _record(self, email):
        return {
            "id": self.users.setdefault(email, f"user-{len(self.users) + 1}"),
            "email": email,
            "createdAt": "2026-01-01T00:00:00Z",
            "token": f"token-{email}",
        }

    async def login(self, email, password):
        self.calls.append(("login", email))
        if self.error is not None:
            raise self.error
        return self._record(email)

    async def register(self, email, password):
        self.calls.append(("register", email))
        if self.error is not None:
            raise self.error
        return self._record(email)


@pytest.fixture
def credentials():
    return FakeCredentials()
