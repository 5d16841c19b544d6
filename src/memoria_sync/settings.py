"""Settings persistence for memoria-sync.

Settings are stored as a flat JSON object using the same camelCase keys as
the Obsidian plugin data file, so an existing ``data.json`` can be pointed
at directly. Loading merges the stored values over the defaults; every field
update is written back immediately.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Optional, Union

from .errors import SettingsError

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
DEFAULT_COMMIT_MESSAGE = "Obsidian notes updated - {date} {time}"

DEFAULT_SETTINGS_PATH = Path("~/.config/memoria-sync/settings.json")

# Dataclass field -> key in the JSON file
FIELD_KEYS = {
    "repo_url": "repoUrl",
    "access_token": "pat",
    "branch_name": "branchName",
    "commit_message": "commitMessage",
    "author_name": "authorName",
    "author_email": "authorEmail",
    "cors_proxy": "corsProxy",
    "initial_warning_shown": "initialWarningShown",
}

# Fields whose text value is stripped on update
_TRIMMED_FIELDS = {"repo_url", "access_token", "cors_proxy", "branch_name"}


@dataclass
class SyncConfiguration:
    """User configuration for one vault."""

    repo_url: str = ""
    access_token: str = ""
    branch_name: str = DEFAULT_BRANCH
    commit_message: str = DEFAULT_COMMIT_MESSAGE
    author_name: str = "Memoria Sync"
    author_email: str = "memoria@example.com"
    cors_proxy: str = ""
    initial_warning_shown: bool = False

    @property
    def has_remote_credentials(self) -> bool:
        """Both the repository URL and the access token are set."""
        return bool(self.repo_url) and bool(self.access_token)

    @property
    def effective_branch(self) -> str:
        return self.branch_name or DEFAULT_BRANCH

    @property
    def effective_commit_message(self) -> str:
        return self.commit_message or DEFAULT_COMMIT_MESSAGE

    def to_dict(self) -> dict[str, Any]:
        """Serialize using the on-disk key names."""
        return {FIELD_KEYS[name]: value for name, value in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "SyncConfiguration":
        """Shallow-merge stored data over the defaults.

        Accepts both the on-disk camelCase keys and the attribute names.
        Unknown keys are ignored.
        """
        config = cls()
        if not data:
            return config

        by_key = {key: name for name, key in FIELD_KEYS.items()}
        for key, value in data.items():
            name = by_key.get(key, key if key in FIELD_KEYS else None)
            if name is None:
                logger.debug(f"Ignoring unknown settings key: {key}")
                continue
            setattr(config, name, value)
        return config


def normalize_value(name: str, value: Any) -> Any:
    """Apply the per-field rules used when a user edits a setting."""
    if name not in FIELD_KEYS:
        raise SettingsError(
            f"Unknown setting: {name}",
            f"Valid settings: {', '.join(sorted(FIELD_KEYS))}"
        )

    if name == "initial_warning_shown":
        if isinstance(value, str):
            return value.strip().lower() in ("1", "true", "yes", "on")
        return bool(value)

    value = "" if value is None else str(value)
    if name in _TRIMMED_FIELDS:
        value = value.strip()
    if name == "branch_name" and not value:
        return DEFAULT_BRANCH
    if name == "commit_message" and not value:
        return DEFAULT_COMMIT_MESSAGE
    return value


class SettingsStore:
    """Reads and writes ``SyncConfiguration`` to a JSON file."""

    def __init__(self, path: Union[str, Path, None] = None) -> None:
        if path is None:
            path = os.environ.get("MEMORIA_SYNC_SETTINGS") or DEFAULT_SETTINGS_PATH
        self.path = Path(path).expanduser()

    def load(self) -> SyncConfiguration:
        """Load settings, falling back to defaults when no file exists."""
        if not self.path.exists():
            logger.debug(f"No settings file at {self.path}, using defaults")
            return SyncConfiguration()

        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise SettingsError(
                f"Failed to read settings: {self.path}",
                str(e)
            ) from e

        if not isinstance(data, dict):
            raise SettingsError(
                f"Settings file is not a JSON object: {self.path}",
                "Delete the file to start over with defaults"
            )
        return SyncConfiguration.from_dict(data)

    def save(self, config: SyncConfiguration) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "w", encoding="utf-8") as f:
                json.dump(config.to_dict(), f, indent=2)
        except OSError as e:
            raise SettingsError(
                f"Failed to write settings: {self.path}",
                str(e)
            ) from e
        logger.debug(f"Saved settings to {self.path}")

    def update(self, name: str, value: Any) -> SyncConfiguration:
        """Change one field and persist immediately.

        Args:
            name: Attribute name (``branch_name``) or file key (``branchName``)
            value: New value, normalized per field

        Returns:
            The updated configuration

        Raises:
            SettingsError: If the field is unknown or the file can't be written
        """
        by_key = {key: attr for attr, key in FIELD_KEYS.items()}
        name = by_key.get(name, name)

        config = self.load()
        setattr(config, name, normalize_value(name, value))
        self.save(config)
        logger.info(f"Updated setting: {name}")
        return config
