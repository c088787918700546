"""
HTTP clients for the collaborator services.

Every call suspends the caller until the response arrives. Failures are
raised as typed ``LifeboardError`` subclasses carrying a message fit for
display; there is no automatic retry.
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import httpx

from ..utils.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidInputError,
    LifeboardError,
    NotFoundError,
    ServiceError,
    SuggestionUnavailableError,
    TransportError,
)
from ..utils.logger import get_logger

logger = get_logger(__name__)

GENERIC_SERVER_MESSAGE = "Something went wrong on our side. Please try again."
GENERIC_TRANSPORT_MESSAGE = "Could not reach the server. Check your connection and try again."

_STATUS_ERRORS = {
    400: InvalidInputError,
    401: AuthenticationError,
    404: NotFoundError,
    409: ConflictError,
    503: SuggestionUnavailableError,
}


def _extract_error_message(response: httpx.Response, fallback: str) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
        detail = payload.get("detail")
        if isinstance(detail, str) and detail:
            return detail
    return fallback


def error_for_response(response: httpx.Response, fallback: str = "Request failed") -> LifeboardError:
    """Translate a non-success response into a typed error."""
    status = response.status_code
    error_cls = _STATUS_ERRORS.get(status)
    if error_cls is not None:
        return error_cls(_extract_error_message(response, fallback), status_code=status)
    if status >= 500:
        return ServiceError(GENERIC_SERVER_MESSAGE, status_code=status)
    return LifeboardError(_extract_error_message(response, fallback), status_code=status)


class ApiClient:
    """Thin async JSON client bound to one base URL."""

    def __init__(
        self,
        base_url: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
    ):
        self._http = httpx.AsyncClient(base_url=base_url, transport=transport)
        self._token_provider = token_provider

    def set_token_provider(self, provider: Optional[Callable[[], Optional[str]]]) -> None:
        self._token_provider = provider

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        fallback: str = "Request failed",
    ) -> Any:
        headers = {}
        token = self._token_provider() if self._token_provider else None
        if token:
            headers["Authorization"] = f"Bearer {token}"
        try:
            response = await self._http.request(method, path, json=json, params=params, headers=headers)
        except httpx.RequestError as e:
            logger.warning("Request failed to reach server", method=method, path=path, error=str(e))
            raise TransportError(GENERIC_TRANSPORT_MESSAGE) from e

        if response.is_success:
            if not response.content:
                return None
            try:
                return response.json()
            except ValueError as e:
                raise ServiceError("The server returned invalid data.") from e

        error = error_for_response(response, fallback)
        logger.info("Request rejected", method=method, path=path, status=response.status_code)
        raise error

    async def aclose(self) -> None:
        await self._http.aclose()


class CredentialClient:
    """Client for ``/auth``."""

    def __init__(self, api: ApiClient):
        self._api = api

    async def login(self, email: str, password: str) -> Dict[str, Any]:
        """Return the identity record (plus token when issued)."""
        data = await self._api.request(
            "POST", "/auth/login", json={"email": email, "password": password}, fallback="Login failed"
        )
        return self._identity(data)

    async def register(self, email: str, password: str) -> Dict[str, Any]:
        data = await self._api.request(
            "POST", "/auth/register", json={"email": email, "password": password}, fallback="Registration failed"
        )
        return self._identity(data)

    @staticmethod
    def _identity(data: Any) -> Dict[str, Any]:
        if not isinstance(data, dict) or not isinstance(data.get("user"), dict):
            raise ServiceError("The server returned invalid data.")
        record = dict(data["user"])
        if data.get("token"):
            record["token"] = data["token"]
        return record


class ResourceClient:
    """Owner-scoped CRUD against one resource endpoint (e.g. ``/todos``)."""

    def __init__(self, api: ApiClient, path: str, label: Optional[str] = None):
        self._api = api
        self.path = "/" + path.strip("/")
        self.label = label or self.path.strip("/").rstrip("s").capitalize()

    async def list(self, owner_id: str) -> List[Dict[str, Any]]:
        return await self._call("GET", self.path, params={"ownerId": owner_id})

    async def create(self, owner_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("POST", self.path, json={**fields, "ownerId": owner_id})

    async def update(self, record_id: str, owner_id: str, fields: Dict[str, Any]) -> Dict[str, Any]:
        return await self._call("PUT", f"{self.path}/{record_id}", json={**fields, "ownerId": owner_id})

    async def delete(self, record_id: str, owner_id: str) -> None:
        await self._call("DELETE", f"{self.path}/{record_id}", params={"ownerId": owner_id})

    async def _call(self, method: str, path: str, **kwargs) -> Any:
        try:
            return await self._api.request(method, path, **kwargs)
        except AuthenticationError as e:
            raise AuthenticationError("Please log in to continue.") from e
        except NotFoundError as e:
            raise NotFoundError(f"{self.label} not found.") from e


class SuggestionClient:
    """Client for ``/ai/suggestions``."""

    def __init__(self, api: ApiClient):
        self._api = api

    async def suggest(self, kind: str, existing_entries: str) -> List[str]:
        data = await self._api.request(
            "POST",
            "/ai/suggestions",
            json={"type": kind, "existingEntries": existing_entries},
            fallback="Could not fetch suggestions.",
        )
        suggestions = data.get("suggestions") if isinstance(data, dict) else None
        return [s for s in suggestions or [] if isinstance(s, str)]
