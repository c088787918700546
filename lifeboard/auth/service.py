"""
Credential service.

- Email/password users with bcrypt hashes
- Opaque session tokens with a fixed expiry
- JSON-backed persistence in <data_dir>/users.json and <data_dir>/sessions.json
"""

from __future__ import annotations

import json
import secrets
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional

import bcrypt

from ..utils.exceptions import ConflictError, InvalidInputError, ServiceError
from ..utils.fileio import atomic_write_json
from ..utils.logger import get_logger
from .models import SessionRecord, User

logger = get_logger(__name__)

USERS_FILENAME = "users.json"
SESSIONS_FILENAME = "sessions.json"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its hash."""
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


class CredentialService:
    """Verifies and stores hashed credentials, issues identity records."""

    def __init__(
        self,
        data_dir,
        min_password_length: int = 6,
        session_expiry_days: int = 7,
        bcrypt_rounds: int = 12,
    ):
        self.data_dir = Path(data_dir)
        self.users_file = self.data_dir / USERS_FILENAME
        self.sessions_file = self.data_dir / SESSIONS_FILENAME
        self.min_password_length = min_password_length
        self.session_expiry = timedelta(days=session_expiry_days)
        self.bcrypt_rounds = bcrypt_rounds
        self._lock = threading.Lock()

    # -- persistence ----------------------------------------------------

    def _load_users(self) -> List[User]:
        if not self.users_file.exists():
            return []
        try:
            raw = json.loads(self.users_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            # Refuse to continue: the next save would drop every account
            logger.error("Users file unreadable", path=str(self.users_file), error=str(e))
            raise ServiceError("Failed to load users")
        if not isinstance(raw, dict):
            logger.error("Users file is not a mapping", path=str(self.users_file))
            raise ServiceError("Failed to load users")
        return [User(**item) for item in raw.get("users", [])]

    def _save_users(self, users: List[User]) -> None:
        atomic_write_json(self.users_file, {"users": [u.model_dump(mode="json") for u in users]})

    def _load_sessions(self) -> Dict[str, SessionRecord]:
        if not self.sessions_file.exists():
            return {}
        try:
            raw = json.loads(self.sessions_file.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError):
            return {}
        out: Dict[str, SessionRecord] = {}
        for token, data in raw.get("sessions", {}).items():
            try:
                out[token] = SessionRecord(**data)
            except ValueError:
                continue
        return out

    def _save_sessions(self, sessions: Dict[str, SessionRecord]) -> None:
        atomic_write_json(
            self.sessions_file,
            {"sessions": {token: s.model_dump(mode="json") for token, s in sessions.items()}},
        )

    # -- users ----------------------------------------------------------

    def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.strip().lower()
        return next((u for u in self._load_users() if u.email.lower() == wanted), None)

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return next((u for u in self._load_users() if u.id == user_id), None)

    def create_user(self, email: str, password: str) -> User:
        """
        Create a new user.

        - Password must meet the minimum length.
        - Email must be unique (case-insensitive) and is stored lowercased.
        """
        if not email or not password:
            raise InvalidInputError("Email and password are required")
        if len(password) < self.min_password_length:
            raise InvalidInputError(
                f"Password must be at least {self.min_password_length} characters long"
            )
        email = email.strip().lower()
        with self._lock:
            users = self._load_users()
            if any(u.email.lower() == email for u in users):
                raise ConflictError("User already exists with this email")
            user = User(email=email, password_hash=hash_password(password, self.bcrypt_rounds))
            users.append(user)
            self._save_users(users)
        logger.info("User registered", user_id=user.id)
        return user

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Return user if credentials are valid, else None."""
        user = self.get_user_by_email(email)
        if not user or not verify_password(password, user.password_hash):
            logger.info("Login rejected")
            return None
        return user

    # -- sessions -------------------------------------------------------

    def create_session(self, user_id: str) -> str:
        """Create a new session and return its opaque token."""
        token = secrets.token_urlsafe(32)
        with self._lock:
            sessions = self._load_sessions()
            sessions[token] = SessionRecord(
                user_id=user_id, token=token, expires_at=_utcnow() + self.session_expiry
            )
            self._save_sessions(sessions)
        return token

    def validate_session(self, token: Optional[str]) -> Optional[User]:
        """Return the user behind a live token, or None."""
        if not token:
            return None
        with self._lock:
            sessions = self._load_sessions()
            session = sessions.get(token)
            if not session:
                return None
            if _utcnow() > _aware(session.expires_at):
                del sessions[token]
                self._save_sessions(sessions)
                return None
        user = self.get_user_by_id(session.user_id)
        if not user:
            self.logout(token)
            return None
        return user

    def logout(self, token: Optional[str]) -> None:
        """Invalidate a session token (idempotent)."""
        if not token:
            return
        with self._lock:
            sessions = self._load_sessions()
            if token in sessions:
                del sessions[token]
                self._save_sessions(sessions)
