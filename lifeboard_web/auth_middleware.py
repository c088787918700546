"""
Auth "middleware" helpers.

We expose require_login() as a FastAPI dependency that:
- Reads the session token from cookie or Authorization header
- Validates it via the credential service
- Returns the authenticated user object

and authorize_owner() for the owner-scoped resource routes.
"""

from typing import Optional

from fastapi import Request

from lifeboard.auth.models import User
from lifeboard.auth.service import CredentialService
from lifeboard.utils.exceptions import AuthenticationError


def get_credentials(request: Request) -> CredentialService:
    return request.app.state.credentials


def extract_token(request: Request) -> Optional[str]:
    # Prefer cookie for browser flows
    token = request.cookies.get(request.app.state.settings.auth.cookie_name)
    if token:
        return token
    # Fallback to Authorization: Bearer <token>
    auth_header = request.headers.get("Authorization")
    if auth_header and auth_header.lower().startswith("bearer "):
        return auth_header[7:].strip() or None
    return None


async def require_login(request: Request) -> User:
    """
    Dependency for token-protected routes.

    Raises 401 if the session is missing or invalid.
    """
    user = get_credentials(request).validate_session(extract_token(request))
    if not user:
        raise AuthenticationError("Not authenticated")
    return user


def authorize_owner(request: Request, owner_id: str) -> None:
    """Enforce that the caller's session belongs to ``owner_id``.

    Only active when ``auth.require_session`` is enabled; otherwise the
    ownerId parameter alone scopes the request.
    """
    if not request.app.state.settings.auth.require_session:
        return
    user = get_credentials(request).validate_session(extract_token(request))
    if not user or user.id != owner_id:
        raise AuthenticationError("Not authenticated")
