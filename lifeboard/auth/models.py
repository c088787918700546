"""
Auth models.

Users and sessions are persisted as JSON under the data directory.
Passwords exist only as bcrypt hashes and are never returned to clients.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict
from uuid import uuid4

from pydantic import BaseModel, EmailStr, Field


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(BaseModel):
    """Stored user record."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    email: EmailStr
    password_hash: str
    created_at: datetime = Field(default_factory=_utcnow)

    def public(self) -> Dict[str, Any]:
        """Identity record as sent to clients: ``{id, email, createdAt}``."""
        return {
            "id": self.id,
            "email": self.email,
            "createdAt": self.created_at.isoformat().replace("+00:00", "Z"),
        }


class SessionRecord(BaseModel):
    """Server-side session (opaque token)."""

    id: str = Field(default_factory=lambda: uuid4().hex)
    user_id: str
    token: str
    expires_at: datetime
