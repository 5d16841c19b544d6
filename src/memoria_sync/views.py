"""Declarative descriptions of what the user interface shows.

The CLI renders these; nothing here depends on a UI toolkit.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from .settings import SyncConfiguration


@dataclass(frozen=True)
class ActionSpec:
    id: str
    label: str
    tooltip: str = ""
    primary: bool = True


@dataclass(frozen=True)
class StatusView:
    repo_present: bool
    description: str
    actions: list[ActionSpec] = field(default_factory=list)

    @property
    def action_ids(self) -> list[str]:
        return [action.id for action in self.actions]


@dataclass(frozen=True)
class SettingField:
    name: str
    label: str
    description: str
    placeholder: str = ""
    secret: bool = False
    section: str = "Connection"


REPO_PRESENT_ACTIONS = [
    ActionSpec("commit", "Commit changes"),
    ActionSpec("push", "Push"),
    ActionSpec("pull", "Pull"),
]

REPO_ABSENT_ACTIONS = [
    ActionSpec("clone", "Clone remote repository",
               tooltip="Clones the repository from the URL in the settings."),
    ActionSpec("init", "Initialize new local repository",
               tooltip="Starts a new Git repository in this vault.", primary=False),
]

SETTINGS_FIELDS = [
    SettingField(
        "repo_url", "Git repository URL",
        "Full URL of the remote repository your notes are backed up to.",
        placeholder="https://github.com/user/repo.git",
    ),
    SettingField(
        "access_token", "Access token (PAT)",
        "Personal access token created on your Git service (GitHub, GitLab, ...).",
        placeholder="ghp_xxxxxxxxxxxxxxxxxxxx", secret=True,
    ),
    SettingField(
        "cors_proxy", "CORS proxy",
        "Relay used to work around 'failed to fetch' network errors, usually "
        "needed on mobile. E.g. https://cors.isomorphic-git.org",
        placeholder="Optional",
    ),
    SettingField(
        "branch_name", "Target branch",
        "Branch that all Git operations use.", section="Operations",
    ),
    SettingField(
        "commit_message", "Default commit message",
        "You can use the {date} and {time} placeholders.", section="Operations",
    ),
    SettingField(
        "author_name", "Author name",
        "Name recorded on commits.", section="Operations",
    ),
    SettingField(
        "author_email", "Author email",
        "Email recorded on commits.", section="Operations",
    ),
]

FIRST_RUN_TITLE = "Important: keep your notes safe"
FIRST_RUN_MESSAGE = (
    "This tool versions your notes with Git. To minimize the risk of data "
    "loss, follow the setup instructions carefully and take a manual backup "
    "of your existing notes before relying on sync."
)


def build_status_view(repo_present: bool) -> StatusView:
    """Pick the action set for the current repository state."""
    if repo_present:
        return StatusView(
            repo_present=True,
            description="A Git repository exists in this vault.",
            actions=list(REPO_PRESENT_ACTIONS),
        )
    return StatusView(
        repo_present=False,
        description="There is no Git repository in this vault.",
        actions=list(REPO_ABSENT_ACTIONS),
    )


def display_value(config: SyncConfiguration, setting: SettingField) -> str:
    value = getattr(config, setting.name)
    if setting.secret and value:
        return "*" * 8 + value[-4:] if len(value) > 8 else "*" * len(value)
    return str(value)
