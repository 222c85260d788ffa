"""Terminal rendering: logging setup and the progress event reporter."""

from __future__ import annotations

import json
import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TaskProgressColumn, TextColumn

from sitesync_core.orchestrator import events
from sitesync_core.orchestrator.orphans import OrphanRecord

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
}


class JsonFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        data = {
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            data["exc"] = self.formatException(record.exc_info)
        return json.dumps(data)


def setup_logging(level: str = "info", fmt: str = "text", console: Console | None = None) -> None:
    """Configure the root logger once per CLI invocation."""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    if fmt == "json":
        handler: logging.Handler = logging.StreamHandler()
        handler.setFormatter(JsonFormatter())
    else:
        handler = RichHandler(
            console=console or Console(stderr=True),
            show_path=False,
            rich_tracebacks=True,
        )
        handler.setFormatter(logging.Formatter("%(message)s"))

    root.addHandler(handler)
    root.setLevel(_LEVELS.get(level, logging.INFO))
    # Reduce noise from chatty libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)


def print_orphans(console: Console, orphans: tuple[OrphanRecord, ...]) -> None:
    if not orphans:
        return
    console.print(f"[yellow]{len(orphans)} orphaned upload(s):[/yellow]")
    for o in orphans:
        expiry = "unknown" if o.expiry is None else f"epoch {o.expiry}"
        console.print(f"  {o.path}  [dim]{o.content_locator}[/dim]  expires {expiry}")


class RichReporter:
    """Renders the orchestrator's event stream.

    Upload progress is a rich progress bar; every other event is one line.
    ``events`` holds the current attempt only, so a long watch session does
    not accumulate history.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()
        self.events: list[events.ProgressEvent] = []
        self._progress: Progress | None = None
        self._task = None

    def _stop_progress(self) -> None:
        if self._progress is not None:
            self._progress.stop()
            self._progress = None
            self._task = None

    def __call__(self, event: events.ProgressEvent) -> None:
        if isinstance(event, events.Scanning):
            self.events.clear()
        self.events.append(event)
        if isinstance(event, events.Uploading):
            if self._progress is None:
                self._progress = Progress(
                    TextColumn("[bold]Uploading[/bold]"),
                    BarColumn(),
                    TaskProgressColumn(),
                    console=self.console,
                    transient=True,
                )
                self._progress.start()
                self._task = self._progress.add_task("upload", total=event.total)
            self._progress.update(self._task, completed=event.done, total=event.total)
            return

        self._stop_progress()
        if isinstance(event, events.Scanning):
            self.console.print(f"[bold]Scanning[/bold] {event.directory}...")
        elif isinstance(event, events.Diffing):
            self.console.print(
                f"[bold]Diffing[/bold] {event.local_count} local vs "
                f"{event.remote_count} remote"
            )
        elif isinstance(event, events.Committing):
            self.console.print(f"[bold]Committing[/bold] {event.mutations} mutation(s)")
        elif isinstance(event, events.Warning):
            self.console.print(f"[yellow]warn:[/yellow] {event.message}")
        elif isinstance(event, events.Done):
            self.console.print(
                f"[green]Done[/green] +{event.added} ~{event.updated} -{event.deleted}"
            )
        elif isinstance(event, events.Failed):
            self.console.print(f"[red]Failed:[/red] {event.reason}")
