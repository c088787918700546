"""Custom exceptions for the Lifeboard dashboard"""

from typing import Optional


class LifeboardError(Exception):
    """Base exception for Lifeboard

    Every error carries a human-readable ``message`` that the UI layer can
    show as-is, the HTTP status the web layer answers with, and whether a
    manual retry of the same action may succeed.
    """

    status_code: int = 500
    retryable: bool = False

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(message)


class InvalidInputError(LifeboardError):
    """Malformed input caught before any network or storage call"""
    status_code = 400


class AuthenticationError(LifeboardError):
    """Missing session or invalid credentials"""
    status_code = 401


class NotFoundError(LifeboardError):
    """Record does not exist for this owner"""
    status_code = 404


class ConflictError(LifeboardError):
    """Record already exists (e.g. duplicate email)"""
    status_code = 409


class ServiceError(LifeboardError):
    """Server-side fault (5xx)"""
    status_code = 500
    retryable = True


class TransportError(LifeboardError):
    """Network failure talking to the server"""
    status_code = 503
    retryable = True


class SuggestionUnavailableError(LifeboardError):
    """Suggestion provider is not configured or failed"""
    status_code = 503
    retryable = True


class StorageError(LifeboardError):
    """Durable local storage failure. Healed locally, never user-facing."""
    pass


class StorageQuotaExceeded(StorageError):
    """Write would exceed the storage quota"""
    pass


class ConfigError(LifeboardError):
    """Configuration error"""
    pass
