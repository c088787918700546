"""Credential service: users, password hashes and session tokens"""

from .models import SessionRecord, User
from .service import CredentialService

__all__ = ["CredentialService", "SessionRecord", "User"]
