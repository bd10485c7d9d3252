"""Console interaction: prompts, picklists, notifications and progress."""

import logging
import webbrowser
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from rich.console import Console
from rich.markup import escape
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.prompt import Prompt
from rich.table import Table

from ..models.snapshot import ExtensionInfo

logger = logging.getLogger(__name__)


def parse_selection(text: str, count: int) -> list[int]:
    """Turn "1,3-5" or "all" into sorted zero-based indices.

    Raises:
        ValueError: On tokens that are not numbers or ranges within 1..count
    """
    text = text.strip().lower()
    if text in ("all", "*"):
        return list(range(count))

    selected: set[int] = set()
    for token in text.replace(" ", ",").split(","):
        if not token:
            continue
        start_s, sep, end_s = token.partition("-")
        start = int(start_s)
        end = int(end_s) if sep else start
        if start < 1 or end > count or start > end:
            raise ValueError(f"Selection {token!r} is outside 1-{count}")
        selected.update(range(start - 1, end))
    return sorted(selected)


class ConsolePrompter:
    """Terminal stand-in for the editor's input boxes and notifications."""

    def __init__(
        self,
        console: Console | None = None,
        opener: Callable[[str], bool] = webbrowser.open,
    ) -> None:
        self.console = console or Console()
        self.opener = opener

    def ask(
        self,
        prompt: str,
        placeholder: str = "",
        password: bool = False,
        default: str | None = None,
    ) -> str | None:
        """Ask for one line of input.

        Returns:
            The stripped answer, or None when the user gave nothing
            (empty line, end of input or Ctrl-C)
        """
        label = f"{prompt} [dim]({placeholder})[/dim]" if placeholder else prompt
        try:
            if default:
                answer = Prompt.ask(label, console=self.console, password=password, default=default)
            else:
                answer = Prompt.ask(label, console=self.console, password=password)
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return None
        answer = (answer or "").strip()
        return answer or None

    def pick_many(self, extensions: list[ExtensionInfo], title: str) -> list[ExtensionInfo]:
        """Let the user choose any number of extensions from a numbered table."""
        if not extensions:
            return []

        table = Table(title=title)
        table.add_column("#", justify="right")
        table.add_column("Name", style="cyan")
        table.add_column("ID", style="blue")
        table.add_column("Version")
        table.add_column("Description", style="dim")
        for i, ext in enumerate(extensions, start=1):
            description = ext.description or ""
            if len(description) > 50:
                description = description[:50] + "..."
            table.add_row(str(i), ext.name, ext.id, ext.version, description)
        self.console.print(table)

        while True:
            answer = self.ask("Extensions to install", placeholder="e.g. 1,3-5 or all")
            if answer is None:
                return []
            try:
                return [extensions[i] for i in parse_selection(answer, len(extensions))]
            except ValueError as e:
                self.console.print(f"[yellow]{escape(str(e))}")

    def open_url(self, url: str) -> None:
        """Open a URL in the default browser; never fails the caller."""
        self.console.print(f"Opening [link={url}]{url}[/link]")
        try:
            if not self.opener(url):
                self.console.print("[yellow]Could not open a browser. Visit the URL above manually.")
        except webbrowser.Error as e:
            logger.debug("Browser launch failed: %s", e)
            self.console.print("[yellow]Could not open a browser. Visit the URL above manually.")

    def info(self, message: str) -> None:
        self.console.print(f"[green]{escape(message)}")

    def warn(self, message: str) -> None:
        self.console.print(f"[yellow]{escape(message)}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]{escape(message)}")

    @contextmanager
    def progress(self, title: str, total: int) -> Iterator[Callable[[str], None]]:
        """Show a progress bar; yields a callback taking a status message.

        Each call starts a new step; the bar counts a step as done when the
        next one starts or the block exits.
        """
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=self.console,
        ) as progress:
            task = progress.add_task(title, total=total)
            started = False

            def report(message: str) -> None:
                nonlocal started
                if started:
                    progress.advance(task)
                started = True
                progress.update(task, description=message)

            yield report
            if started:
                progress.advance(task)
