"""Sync orchestration: the init / clone / commit / push / pull flow."""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from .classifier import classify_error
from .engine import METADATA_DIR, GitEngine
from .errors import ErrorCategory, PushRejectedError, SyncError, ValidationError
from .models import Author, DirListing, OperationOutcome
from .notices import Notice, NullNotifier, Notifier
from .settings import SettingsStore, SyncConfiguration
from .transport import resolve_transport

logger = logging.getLogger(__name__)

INITIAL_BACKUP_MESSAGE = "Initial Obsidian notes backup"
MANUAL_COMMIT_MESSAGE = "Manual commit & push"
SHORT_SHA_LENGTH = 7

MISSING_CREDENTIALS = "Please set the repository URL and access token (PAT) in the settings."
REPOSITORY_EXISTS = "A Git repository already exists in this vault. Use pull to update it."


def is_empty_clone(listing: DirListing) -> bool:
    """A freshly cloned empty remote leaves only the metadata folder behind."""
    return (
        len(listing.files) == 0
        and len(listing.folders) == 1
        and listing.folders[0].endswith(METADATA_DIR)
    )


def render_commit_message(template: str, now: datetime) -> str:
    """Substitute ``{date}`` and ``{time}`` with locale-formatted values."""
    return (
        template
        .replace("{date}", now.strftime("%x"))
        .replace("{time}", now.strftime("%X"))
    )


class SyncOrchestrator:
    """Runs sync operations for one vault.

    Settings are re-read from the store at the start of every operation.
    Every operation returns an ``OperationOutcome``; exceptions never
    escape.
    """

    def __init__(
        self,
        vault_path: Union[str, Path],
        settings: SettingsStore,
        engine: Optional[GitEngine] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.vault_path = Path(vault_path)
        self.settings = settings
        self.engine = engine or GitEngine()
        self.notifier = notifier or NullNotifier()
        self.clock = clock or datetime.now

    def _notify(self, notice: Notice) -> None:
        self.notifier.notify(notice)

    def _failure(self, label: str, exc: BaseException) -> OperationOutcome:
        logger.error(f"{label} failed: {exc}", exc_info=not isinstance(exc, SyncError))
        classified = classify_error(exc)
        error = exc if isinstance(exc, SyncError) else classified.to_exception(str(exc))
        message = f"{label} error: {classified.message}"
        self._notify(Notice.error(message))
        return OperationOutcome.failed(message, classified.category, error)

    def _load(self) -> SyncConfiguration:
        return self.settings.load()

    def _require_credentials(self, config: SyncConfiguration) -> None:
        if not config.has_remote_credentials:
            raise ValidationError(MISSING_CREDENTIALS)

    def _validation_failure(self, exc: ValidationError) -> OperationOutcome:
        self._notify(Notice.error(exc.message))
        return OperationOutcome.failed(exc.message, ErrorCategory.VALIDATION, exc)

    def repository_exists(self) -> bool:
        """Advisory check; may be stale by the time an action runs."""
        return self.engine.repository_exists(self.vault_path)

    def init(self) -> OperationOutcome:
        """Create a new repository in the vault."""
        self._notify(Notice.progress("Initializing Git repository..."))
        try:
            config = self._load()
            self.engine.init(self.vault_path, config.effective_branch)
        except Exception as e:
            return self._failure("Init", e)

        message = "Git repository initialized successfully!"
        self._notify(Notice.success(message))
        return OperationOutcome.ok(message)

    def clone(self) -> OperationOutcome:
        """
        Clone the configured branch (shallow, single branch) into the vault.

        When the clone leaves nothing but the metadata folder, the remote was
        empty: the vault contents are committed and pushed right away.
        Refused when the vault already has a repository.
        """
        try:
            config = self._load()
            self._require_credentials(config)
            if self.repository_exists():
                raise ValidationError(REPOSITORY_EXISTS)
        except ValidationError as e:
            return self._validation_failure(e)
        except Exception as e:
            return self._failure("Clone", e)

        self._notify(Notice.progress("Cloning repository..."))
        try:
            self.engine.clone(
                self.vault_path,
                resolve_transport(config),
                ref=config.effective_branch,
                depth=1,
                single_branch=True,
            )
            self._notify(Notice.success("Repository cloned successfully!"))
            listing = self.engine.list_dir(self.vault_path)
        except Exception as e:
            return self._failure("Clone", e)

        outcome = OperationOutcome.ok("Repository cloned successfully!")
        if is_empty_clone(listing):
            logger.info("Cloned an empty repository, creating the initial commit")
            self._notify(Notice.progress("Cloned an empty repository. Creating the first commit..."))
            commit_outcome = self.commit_all(INITIAL_BACKUP_MESSAGE)
            push_outcome = self.push()
            outcome.data = {"commit": commit_outcome, "push": push_outcome}
        return outcome

    def commit_all(self, message: Optional[str] = None) -> OperationOutcome:
        """
        Stage every changed file and create a single commit.

        A file is changed when its (head, workdir, stage) triple is anything
        other than (1, 1, 1). No commit is made when nothing changed.

        Args:
            message: Overrides the configured template; placeholders apply
                to both

        Returns:
            OperationOutcome with the short commit sha on success
        """
        self._notify(Notice.progress("Committing changes..."))
        try:
            config = self._load()
            matrix = self.engine.status_matrix(self.vault_path)
            dirty = [entry for entry in matrix if not entry.is_clean]

            if not dirty:
                notice = "No new changes to commit."
                self._notify(Notice.progress(notice))
                return OperationOutcome.ok(notice)

            self.engine.stage(self.vault_path, dirty)

            template = message or config.effective_commit_message
            commit_message = render_commit_message(template, self.clock())
            author = Author(config.author_name, config.author_email)
            sha = self.engine.commit(self.vault_path, commit_message, author)
        except Exception as e:
            return self._failure("Commit", e)

        short_sha = sha[:SHORT_SHA_LENGTH]
        notice = f"Changes committed successfully! Commit: {short_sha}"
        self._notify(Notice.success(notice))
        return OperationOutcome.ok(notice, commit_sha=short_sha, data=[e.filepath for e in dirty])

    def push(self) -> OperationOutcome:
        """Push the configured branch; a not-ok result counts as failure."""
        try:
            config = self._load()
            self._require_credentials(config)
        except ValidationError as e:
            return self._validation_failure(e)
        except Exception as e:
            return self._failure("Push", e)

        self._notify(Notice.progress("Pushing changes..."))
        try:
            result = self.engine.push(
                self.vault_path, resolve_transport(config), config.effective_branch
            )
            if not result.ok:
                raise PushRejectedError(result.errors)
        except Exception as e:
            return self._failure("Push", e)

        message = "Changes pushed successfully!"
        self._notify(Notice.success(message))
        return OperationOutcome.ok(message)

    def pull(self) -> OperationOutcome:
        """Fetch and merge the configured branch."""
        try:
            config = self._load()
            self._require_credentials(config)
        except ValidationError as e:
            return self._validation_failure(e)
        except Exception as e:
            return self._failure("Pull", e)

        self._notify(Notice.progress("Pulling changes..."))
        try:
            self.engine.pull(
                self.vault_path,
                resolve_transport(config),
                config.effective_branch,
                Author(config.author_name, config.author_email),
            )
        except Exception as e:
            return self._failure("Pull", e)

        message = "Changes pulled and merged successfully!"
        self._notify(Notice.success(message))
        return OperationOutcome.ok(message)

    def commit_and_push(self, message: Optional[str] = MANUAL_COMMIT_MESSAGE) -> tuple[OperationOutcome, OperationOutcome]:
        """Commit then push, as two independent operations.

        A failed push does not undo the commit. The push is skipped only if
        the commit itself failed.
        """
        commit_outcome = self.commit_all(message)
        if not commit_outcome.success:
            skipped = OperationOutcome.failed(
                "Push skipped: commit failed", commit_outcome.error_category, commit_outcome.error
            )
            return commit_outcome, skipped
        return commit_outcome, self.push()

    def test_connection(self) -> OperationOutcome:
        """Query the remote's branches without changing anything."""
        try:
            config = self._load()
            self._require_credentials(config)
        except ValidationError as e:
            return self._validation_failure(e)
        except Exception as e:
            return self._failure("Connection test", e)

        self._notify(Notice.progress("Testing connection..."))
        branch = config.effective_branch
        try:
            info = self.engine.get_remote_info(resolve_transport(config))
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            classified = classify_error(e)
            message = f"Error: {classified.message}"
            self._notify(Notice.error(message))
            return OperationOutcome.failed(message, classified.category, classified.to_exception(str(e)))

        message = "Connection and authentication successful!"
        if info.has_branch(branch):
            message += f" Branch '{branch}' found on the remote."
        else:
            message += f" WARNING: branch '{branch}' was not found on the remote!"
        self._notify(Notice.success(message))
        return OperationOutcome.ok(message, data=info)
