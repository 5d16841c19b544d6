"""Exception types and error categories for vault synchronization."""

from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorCategory(Enum):
    """Category attached to every operation outcome."""

    NONE = "none"
    NETWORK = "network"
    AUTH_FAILURE = "auth_failure"
    NOT_FOUND = "not_found"
    UNKNOWN = "unknown"
    VALIDATION = "validation"


class SyncError(Exception):
    """Base exception for sync operations."""

    category = ErrorCategory.UNKNOWN

    def __init__(self, message: str, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(SyncError):
    """Raised when required configuration is missing before an operation."""

    category = ErrorCategory.VALIDATION


class NetworkError(SyncError):
    """Raised when the remote cannot be reached (CORS relay, DNS, transport)."""

    category = ErrorCategory.NETWORK


class AuthError(SyncError):
    """Raised when the remote rejects the access token (401/403)."""

    category = ErrorCategory.AUTH_FAILURE


class NotFoundError(SyncError):
    """Raised when the remote repository does not exist (404)."""

    category = ErrorCategory.NOT_FOUND


class EngineError(SyncError):
    """Raised for any other failure reported by git."""
    pass


class PushRejectedError(SyncError):
    """Raised when a push completes but the remote did not accept every ref."""

    def __init__(self, errors: list[str]) -> None:
        detail = ", ".join(errors) if errors else "unknown error"
        super().__init__(f"Push failed: {detail}")
        self.errors = list(errors)


class SettingsError(SyncError):
    """Raised when the settings file cannot be read or written."""
    pass
