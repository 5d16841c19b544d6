"""
Memoria Sync - keep an Obsidian vault in sync with a remote Git repository.
"""

from .classifier import ClassifiedError, classify_error
from .engine import GitEngine
from .errors import (
    # Exceptions
    SyncError,
    ValidationError,
    NetworkError,
    AuthError,
    NotFoundError,
    EngineError,
    PushRejectedError,
    SettingsError,
    ErrorCategory,
)
from .models import (
    # Data classes
    Author,
    ChangeStatusEntry,
    Credentials,
    DirListing,
    OperationOutcome,
    PushResult,
    RemoteInfo,
)
from .orchestrator import SyncOrchestrator, is_empty_clone, render_commit_message
from .settings import SettingsStore, SyncConfiguration
from .transport import TransportParams, effective_url, resolve_transport

__version__ = "0.1.0"

__all__ = [
    # Core
    "SyncOrchestrator",
    "GitEngine",
    "SettingsStore",
    "SyncConfiguration",
    "resolve_transport",
    "effective_url",
    "classify_error",
    "is_empty_clone",
    "render_commit_message",

    # Exceptions
    "SyncError",
    "ValidationError",
    "NetworkError",
    "AuthError",
    "NotFoundError",
    "EngineError",
    "PushRejectedError",
    "SettingsError",
    "ErrorCategory",

    # Data classes
    "Author",
    "ChangeStatusEntry",
    "ClassifiedError",
    "Credentials",
    "DirListing",
    "OperationOutcome",
    "PushResult",
    "RemoteInfo",
    "TransportParams",
]
