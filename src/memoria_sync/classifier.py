"""Map failures from git operations to user-facing messages.

This is a best-effort heuristic. Anything that doesn't match a known
pattern is shown with its raw message.
"""

from __future__ import annotations

import re
import socket
from dataclasses import dataclass
from typing import Optional

from git import GitCommandError

from .errors import (
    AuthError,
    EngineError,
    ErrorCategory,
    NetworkError,
    NotFoundError,
    SyncError,
)

CORS_MESSAGE = (
    "Network error: the server could not be reached. This is usually a CORS "
    "policy or network problem. Try setting a CORS proxy in the settings "
    "(e.g. https://cors.isomorphic-git.org), or leave the proxy empty when "
    "running on desktop."
)
AUTH_MESSAGE = (
    "Authentication failed. The access token is invalid, expired, or lacks the "
    "'repo' scope. If the repository belongs to an organization, check its SSO "
    "authorization."
)
NOT_FOUND_MESSAGE = "Repository not found. Please check the URL."
DNS_MESSAGE = "Server not found. Check the URL or your internet connection."

_HTTP_STATUS_RE = re.compile(r"returned error:\s*(\d{3})")
_REPO_NOT_FOUND_RE = re.compile(r"repository '.*' not found", re.IGNORECASE)
_STDERR_RE = re.compile(r"stderr: '(.*)'", re.DOTALL)


@dataclass(frozen=True)
class ClassifiedError:
    """Category and message for a failure."""

    category: ErrorCategory
    message: str

    def to_exception(self, details: Optional[str] = None) -> SyncError:
        """Typed exception matching the category."""
        error_cls = {
            ErrorCategory.NETWORK: NetworkError,
            ErrorCategory.AUTH_FAILURE: AuthError,
            ErrorCategory.NOT_FOUND: NotFoundError,
        }.get(self.category, EngineError)
        return error_cls(self.message, details)


def raw_message(exc: BaseException) -> str:
    """The most useful text of an exception.

    For git command failures this is the stripped stderr rather than the
    whole ``Cmd('git') failed ...`` block.
    """
    if isinstance(exc, SyncError):
        return exc.message
    if isinstance(exc, GitCommandError):
        match = _STDERR_RE.search(str(exc))
        if match and match.group(1).strip():
            return match.group(1).strip()
    return str(exc) or exc.__class__.__name__


def _error_text(exc: BaseException) -> str:
    parts = [str(exc)]
    stderr = getattr(exc, "stderr", None)
    if isinstance(stderr, bytes):
        stderr = stderr.decode("utf-8", errors="replace")
    if stderr:
        parts.append(str(stderr))
    return "\n".join(parts)


def http_status(exc: BaseException) -> Optional[int]:
    """HTTP status code carried by, or reported in, a failure."""
    # GitCommandError.status is the process exit code, not an HTTP status
    value = getattr(exc, "status_code", None)
    if isinstance(value, int):
        return value

    response = getattr(exc, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value

    text = _error_text(exc)
    match = _HTTP_STATUS_RE.search(text)
    if match:
        return int(match.group(1))
    if "authentication failed" in text.lower():
        return 401
    if _REPO_NOT_FOUND_RE.search(text):
        return 404
    return None


def is_dns_failure(exc: BaseException) -> bool:
    if isinstance(exc, socket.gaierror):
        return True
    if getattr(exc, "code", None) == "ENOTFOUND":
        return True
    return "could not resolve host" in _error_text(exc).lower()


def classify_error(exc: BaseException) -> ClassifiedError:
    """
    Classify a failure from a sync operation.

    Checks, in order: "failed to fetch" (network/CORS), HTTP 401/403
    (authentication), HTTP 404 (not found), DNS resolution failure
    (network), and finally falls back to the raw message.

    Args:
        exc: Any exception raised during an operation

    Returns:
        ClassifiedError with category and message
    """
    if isinstance(exc, SyncError) and exc.category is ErrorCategory.VALIDATION:
        return ClassifiedError(exc.category, exc.message)

    if "failed to fetch" in _error_text(exc).lower():
        return ClassifiedError(ErrorCategory.NETWORK, CORS_MESSAGE)

    status = http_status(exc)
    if status in (401, 403):
        return ClassifiedError(ErrorCategory.AUTH_FAILURE, AUTH_MESSAGE)
    if status == 404:
        return ClassifiedError(ErrorCategory.NOT_FOUND, NOT_FOUND_MESSAGE)

    if is_dns_failure(exc):
        return ClassifiedError(ErrorCategory.NETWORK, DNS_MESSAGE)

    return ClassifiedError(ErrorCategory.UNKNOWN, raw_message(exc))
