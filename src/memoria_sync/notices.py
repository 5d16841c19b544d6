"""Transient and persistent notices shown to the user."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

# Display durations in milliseconds; 0 means the notice stays until dismissed
DEFAULT_DURATION = 5000
ERROR_DURATION = 10000
PERSISTENT = 0

_STYLES = {
    "info": "blue",
    "success": "green",
    "warning": "yellow",
    "error": "red",
}


@dataclass(frozen=True)
class Notice:
    message: str
    level: str = "info"
    duration: int = DEFAULT_DURATION
    title: Optional[str] = None

    @classmethod
    def progress(cls, message: str) -> "Notice":
        return cls(message, "info")

    @classmethod
    def success(cls, message: str) -> "Notice":
        return cls(message, "success")

    @classmethod
    def error(cls, message: str) -> "Notice":
        return cls(message, "error", ERROR_DURATION)


class Notifier(Protocol):
    def notify(self, notice: Notice) -> None:
        ...


class ConsoleNotifier:
    """Prints notices to a rich console.

    Persistent notices are rendered as a panel so they stand out from the
    progress lines.
    """

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def notify(self, notice: Notice) -> None:
        style = _STYLES.get(notice.level, "white")
        if notice.duration == PERSISTENT:
            self.console.print(Panel(Text(notice.message), title=notice.title, border_style=style))
        else:
            self.console.print(f"[{style}]{escape(notice.message)}[/{style}]")


class NullNotifier:
    def notify(self, notice: Notice) -> None:
        pass
