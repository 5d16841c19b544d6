"""Value objects passed between the orchestrator, the engine and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .errors import ErrorCategory, SyncError


@dataclass(frozen=True)
class Credentials:
    """Username/password pair handed to the remote."""

    username: str
    password: str


@dataclass(frozen=True)
class Author:
    """Identity recorded on commits and merge commits."""

    name: str
    email: str


@dataclass(frozen=True)
class ChangeStatusEntry:
    """One row of the status matrix.

    ``head`` is 0 (absent) or 1 (present in HEAD).
    ``workdir`` is 0 (absent), 1 (identical to HEAD) or 2 (differs from HEAD).
    ``stage`` is 0 (absent), 1 (identical to HEAD), 2 (identical to the
    working tree) or 3 (differs from both).
    """

    filepath: str
    head: int
    workdir: int
    stage: int

    @property
    def is_clean(self) -> bool:
        return (self.head, self.workdir, self.stage) == (1, 1, 1)

    @property
    def is_deleted(self) -> bool:
        """File is gone from the working tree."""
        return self.workdir == 0


@dataclass
class PushResult:
    """What the remote reported for a push."""

    ok: bool
    errors: list[str] = field(default_factory=list)


@dataclass
class RemoteInfo:
    """Branches advertised by the remote."""

    heads: dict[str, str] = field(default_factory=dict)

    def has_branch(self, name: str) -> bool:
        return name in self.heads


@dataclass
class DirListing:
    """Top-level entries of the working directory."""

    files: list[str] = field(default_factory=list)
    folders: list[str] = field(default_factory=list)


@dataclass
class OperationOutcome:
    """Result of a single sync operation, consumed by the CLI."""

    success: bool
    message: str
    error_category: ErrorCategory = ErrorCategory.NONE
    commit_sha: Optional[str] = None
    error: Optional[SyncError] = None
    data: Any = None

    @classmethod
    def ok(cls, message: str, **kwargs: Any) -> "OperationOutcome":
        return cls(success=True, message=message, **kwargs)

    @classmethod
    def failed(
        cls, message: str, category: ErrorCategory, error: Optional[SyncError] = None
    ) -> "OperationOutcome":
        return cls(success=False, message=message, error_category=category, error=error)
