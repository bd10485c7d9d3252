#!/usr/bin/env python3
"""CLI entry point for sync-my-exts."""

import argparse
import logging
import sys
from collections.abc import Callable
from pathlib import Path

import keyring.errors
import requests
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .core.auth import OAuthFlow
from .core.client import GitHubClient
from .core.credentials import CredentialStore
from .core.editor import VSCodeEditor
from .core.operations import SyncOperations
from .core.prompts import ConsolePrompter
from .errors import SyncError
from .models.config import SyncConfig, SyncResult, default_config_path

console = Console()

LOGGED_OUT_COMMANDS = ["login"]
LOGGED_IN_COMMANDS = [
    "sync-extensions",
    "import-extensions",
    "sync-settings",
    "import-settings",
    "logout",
    "change-repository",
]


class Context:
    """Collaborators shared by one command invocation."""

    def __init__(self, config_path: Path, verbose: bool = False) -> None:
        self.config_path = config_path
        self.config = SyncConfig.load(config_path)
        self.session = requests.Session()
        self.prompter = ConsolePrompter(console)
        self.credentials = CredentialStore(
            client_factory=lambda token: GitHubClient(token, self.config.api_url, self.session)
        )
        _configure_logging(verbose or self.config.verbose)

    def operations(self) -> SyncOperations:
        return SyncOperations(
            self.config,
            self.config_path,
            self.credentials,
            self.prompter,
            VSCodeEditor(),
            self.session,
        )

    def oauth(self) -> OAuthFlow:
        return OAuthFlow(self.config, self.config_path, self.credentials, self.prompter, self.session)


def _configure_logging(verbose: bool) -> None:
    if not verbose:
        return
    logging.basicConfig(
        level=logging.DEBUG,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )
    # Keep third-party chatter out of the trace
    logging.getLogger("urllib3").setLevel(logging.INFO)


def _print_results(results: list[SyncResult]) -> int:
    failed = 0
    for result in results:
        if not result.success:
            failed += 1
            console.print(f"[red]FAILED: {result.filepath}")
            console.print(f"        {escape(result.message)}")
        elif result.skipped:
            console.print(f"[dim]{result.filepath}: {result.message}[/dim]")
        else:
            console.print(f"[green]{result.filepath}: {result.message}")
    return 0 if failed == 0 else 1


def _guarded(label: str, action: Callable[[], int]) -> int:
    """Run a command, turning any sync failure into one error line."""
    try:
        return action()
    except (SyncError, keyring.errors.KeyringError) as e:
        console.print(f"[red]{label} failed: {escape(str(e))}")
        return 1


def cmd_login(ctx: Context) -> int:
    """Log in to GitHub."""
    return _guarded("Login", lambda: 0 if ctx.oauth().login() else 1)


def cmd_logout(ctx: Context) -> int:
    """Log out of GitHub."""

    def run() -> int:
        ctx.oauth().logout()
        return 0

    return _guarded("Logout", run)


def cmd_change_repository(ctx: Context) -> int:
    """Change the sync repository."""

    def run() -> int:
        if ctx.operations().change_repository() is None:
            console.print("[yellow]Repository unchanged")
        return 0

    return _guarded("Changing repository", run)


def cmd_sync_extensions(ctx: Context) -> int:
    """Upload the extension list."""

    def run() -> int:
        result = ctx.operations().sync_extensions()
        console.print(f"[green]{result.message}")
        return 0

    return _guarded("Sync", run)


def cmd_import_extensions(ctx: Context) -> int:
    """Install extensions from the uploaded list."""

    def run() -> int:
        report = ctx.operations().import_extensions()
        if not report.installed and not report.failed:
            console.print("[yellow]No extensions selected")
            return 0
        console.print(
            f"\n[bold]Summary:[/bold] {len(report.installed)} installed, {len(report.failed)} failed"
        )
        return 0

    return _guarded("Import", run)


def cmd_sync_settings(ctx: Context) -> int:
    """Upload settings files."""
    return _guarded("Settings sync", lambda: _print_results(ctx.operations().sync_settings()))


def cmd_import_settings(ctx: Context) -> int:
    """Restore settings files."""
    return _guarded("Settings import", lambda: _print_results(ctx.operations().import_settings()))


def cmd_status(ctx: Context) -> int:
    """Show login state and the commands available in it."""
    logged_in = ctx.credentials.is_valid()
    user = ctx.credentials.get_user() if logged_in else None

    if logged_in:
        who = user.login if user else "unknown user"
        console.print(f"[bold]GitHub:[/bold] [green]logged in as {who}")
    else:
        console.print("[bold]GitHub:[/bold] [yellow]not logged in")
    console.print(f"[bold]Repository:[/bold] {ctx.config.repository or '[dim]not set[/dim]'}")

    console.print("\n[bold]Available commands:[/bold]")
    for name in LOGGED_IN_COMMANDS if logged_in else LOGGED_OUT_COMMANDS:
        console.print(f"  sync-my-exts {name}")
    return 0


def cmd_show_config(ctx: Context) -> int:
    """Show the configuration file and its values."""
    console.print(f"\n[bold]Config file:[/bold] {ctx.config_path}")

    table = Table()
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in ctx.config.to_dict().items():
        if key == "clientSecret" and value:
            value = "********"
        table.add_row(key, str(value) if value != "" else "[dim]not set")
    console.print(table)
    return 0


COMMANDS: dict[str, tuple[str, Callable[[Context], int]]] = {
    "login": ("Log in to GitHub", cmd_login),
    "logout": ("Log out of GitHub", cmd_logout),
    "change-repository": ("Change the GitHub repository used for sync", cmd_change_repository),
    "sync-extensions": ("Upload the installed extension list", cmd_sync_extensions),
    "import-extensions": ("Install extensions from the uploaded list", cmd_import_extensions),
    "sync-settings": ("Upload user settings", cmd_sync_settings),
    "import-settings": ("Restore user settings from GitHub", cmd_import_settings),
    "status": ("Show login state and available commands", cmd_status),
    "show-config": ("Show configuration values", cmd_show_config),
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sync-my-exts",
        description="Sync editor extensions and settings through a GitHub repository",
    )
    parser.add_argument("--config", type=Path, help="Configuration file (default: ~/.config/sync-my-exts/config.yaml)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Trace HTTP calls and login steps")

    subparsers = parser.add_subparsers(dest="command", help="Command to run")
    for name, (help_text, _) in COMMANDS.items():
        subparsers.add_parser(name, help=help_text)
    return parser


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command not in COMMANDS:
        parser.print_help()
        return 1

    try:
        ctx = Context(args.config or default_config_path(), verbose=args.verbose)
    except SyncError as e:
        console.print(f"[red]Loading configuration failed: {escape(str(e))}")
        return 1

    _, handler = COMMANDS[args.command]
    return handler(ctx)


if __name__ == "__main__":
    sys.exit(main())
