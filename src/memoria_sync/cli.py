"""CLI entry point for Memoria Sync."""

import logging
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.traceback import install as install_traceback

from . import __version__
from .errors import SettingsError
from .models import OperationOutcome
from .notices import PERSISTENT, ConsoleNotifier, Notice
from .orchestrator import MANUAL_COMMIT_MESSAGE, SyncOrchestrator
from .settings import FIELD_KEYS, SettingsStore
from .views import (
    FIRST_RUN_MESSAGE,
    FIRST_RUN_TITLE,
    SETTINGS_FIELDS,
    build_status_view,
    display_value,
)

install_traceback()
console = Console()


def get_vault_path(vault_path: str) -> Path:
    """Resolve the vault path and make sure it exists."""
    path = Path(vault_path).expanduser().resolve()
    if not path.exists():
        console.print(f"[red]Error: Vault path does not exist: {path}[/red]")
        sys.exit(1)
    return path


def load_or_exit(store: SettingsStore):
    try:
        return store.load()
    except SettingsError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        if e.details:
            console.print(f"[yellow]{e.details}[/yellow]")
        sys.exit(1)


def show_first_run_warning(store: SettingsStore, notifier: ConsoleNotifier) -> None:
    config = load_or_exit(store)
    if config.initial_warning_shown:
        return
    notifier.notify(Notice(FIRST_RUN_MESSAGE, "warning", PERSISTENT, title=FIRST_RUN_TITLE))
    try:
        store.update("initial_warning_shown", True)
    except SettingsError as e:
        console.print(f"[yellow]Could not save settings: {e.message}[/yellow]")


def finish(*outcomes: OperationOutcome) -> None:
    """Exit non-zero if any outcome failed."""
    if any(not outcome.success for outcome in outcomes):
        sys.exit(1)


@click.group()
@click.version_option(version=__version__, prog_name="memoria-sync")
@click.option("--vault-path", "-v", default=".", envvar="MEMORIA_SYNC_VAULT",
              show_default=True, help="Path to Obsidian vault")
@click.option("--settings", "settings_path", type=click.Path(dir_okay=False),
              envvar="MEMORIA_SYNC_SETTINGS", help="Path to settings JSON file")
@click.option("--verbose", is_flag=True, help="Enable verbose logging")
@click.pass_context
def cli(ctx: click.Context, vault_path: str, settings_path: str | None, verbose: bool) -> None:
    """Sync an Obsidian vault with a remote Git repository."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    store = SettingsStore(settings_path)
    notifier = ConsoleNotifier(console)

    ctx.ensure_object(dict)
    ctx.obj["vault_path"] = vault_path
    ctx.obj["verbose"] = verbose
    ctx.obj["store"] = store
    ctx.obj["notifier"] = notifier

    if ctx.invoked_subcommand is not None:
        show_first_run_warning(store, notifier)


def get_orchestrator(ctx: click.Context) -> SyncOrchestrator:
    vault = get_vault_path(ctx.obj["vault_path"])
    return SyncOrchestrator(vault, ctx.obj["store"], notifier=ctx.obj["notifier"])


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show repository state and the actions available."""
    orchestrator = get_orchestrator(ctx)
    view = build_status_view(orchestrator.repository_exists())

    console.print(f"\n[bold]Vault:[/bold] {orchestrator.vault_path}")
    console.print(f"[bold]Current status:[/bold] {view.description}")
    console.print("\n[bold]Available actions:[/bold]")
    for action in view.actions:
        style = "green" if action.primary else "blue"
        line = f"  • [{style}]memoria-sync {action.id}[/{style}] - {action.label}"
        if action.tooltip:
            line += f" ({action.tooltip})"
        console.print(line)


@cli.command()
@click.pass_context
def init(ctx: click.Context) -> None:
    """Initialize a new Git repository in the vault."""
    orchestrator = get_orchestrator(ctx)
    if orchestrator.repository_exists():
        console.print(f"[yellow]Vault already initialized: {orchestrator.vault_path}[/yellow]")
        return
    finish(orchestrator.init())


@cli.command()
@click.pass_context
def clone(ctx: click.Context) -> None:
    """Clone the configured remote repository into the vault."""
    orchestrator = get_orchestrator(ctx)
    finish(orchestrator.clone())


@cli.command()
@click.option("--message", "-m", default=None, help="Commit message (defaults to the template)")
@click.pass_context
def commit(ctx: click.Context, message: str | None) -> None:
    """Commit all changed files."""
    orchestrator = get_orchestrator(ctx)
    finish(orchestrator.commit_all(message))


@cli.command()
@click.pass_context
def push(ctx: click.Context) -> None:
    """Push committed changes to the remote."""
    orchestrator = get_orchestrator(ctx)
    finish(orchestrator.push())


@cli.command()
@click.pass_context
def pull(ctx: click.Context) -> None:
    """Pull the latest changes from the remote."""
    orchestrator = get_orchestrator(ctx)
    finish(orchestrator.pull())


@cli.command(name="sync")
@click.option("--message", "-m", default=MANUAL_COMMIT_MESSAGE, help="Commit message")
@click.pass_context
def sync(ctx: click.Context, message: str) -> None:
    """Commit all changes and push them."""
    orchestrator = get_orchestrator(ctx)
    finish(*orchestrator.commit_and_push(message))


@cli.command(name="test-connection")
@click.pass_context
def test_connection(ctx: click.Context) -> None:
    """Check the URL and token against the remote."""
    orchestrator = get_orchestrator(ctx)
    finish(orchestrator.test_connection())


@cli.group()
def config() -> None:
    """View and edit settings."""


@config.command(name="show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Show current settings."""
    store = ctx.obj["store"]
    current = load_or_exit(store)

    table = Table(title=f"Settings ({store.path})")
    table.add_column("Key")
    table.add_column("Setting")
    table.add_column("Value")
    for setting in SETTINGS_FIELDS:
        table.add_row(FIELD_KEYS[setting.name], setting.label, display_value(current, setting))
    console.print(table)


@config.command(name="set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Change a setting (e.g. `config set branchName main`)."""
    store = ctx.obj["store"]
    try:
        updated = store.update(key, value)
    except SettingsError as e:
        console.print(f"[red]Error: {e.message}[/red]")
        if e.details:
            console.print(f"[yellow]{e.details}[/yellow]")
        sys.exit(1)

    for setting in SETTINGS_FIELDS:
        if key in (setting.name, FIELD_KEYS[setting.name]):
            console.print(f"[green]{setting.label}: {display_value(updated, setting)}[/green]")
            return
    console.print(f"[green]Updated {key}[/green]")


def main() -> None:
    """Entry point for the CLI."""
    cli()


if __name__ == "__main__":
    main()
