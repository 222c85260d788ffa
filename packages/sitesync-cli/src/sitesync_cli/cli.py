"""CLI entry point for sitesync."""

from __future__ import annotations

import asyncio
import json
import threading
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from sitesync_core.config import SiteSyncConfig, load_config
from sitesync_core.config.loader import DEFAULT_CONFIG_TEMPLATE
from sitesync_core.errors import CommitError, ConfigError, PathRejected, SiteSyncError
from sitesync_core.ledgers import create_ledger
from sitesync_core.orchestrator import SyncOrchestrator, SyncOutcome
from sitesync_core.paths import validate_resource_path
from sitesync_core.scan import DirectoryScanner, resolve_project_root
from sitesync_core.state import DeploymentState, append_orphans, load_state, save_state
from sitesync_core.stores import create_content_store
from sitesync_core.watch import SiteWatcher
from sitesync_cli.render import RichReporter, print_orphans, setup_logging

app = typer.Typer(
    name="sitesync",
    help="Incremental content-addressed deployment for static sites.",
)

config_app = typer.Typer(help="Manage sitesync configuration.")
app.add_typer(config_app, name="config")

console = Console()

# Global state
_config: SiteSyncConfig | None = None


def _get_config() -> SiteSyncConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to sitesync.yaml")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Global options."""
    global _config
    try:
        _config = load_config(config)
    except ConfigError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    level = "debug" if verbose else _config.log_level
    setup_logging(level, _config.log_format)


def _orchestrator(cfg: SiteSyncConfig) -> SyncOrchestrator:
    return SyncOrchestrator(
        content_store=create_content_store(cfg.store),
        ledger=create_ledger(cfg.ledger),
        config=cfg,
        on_event=RichReporter(console),
    )


def _require_dir(directory: str) -> Path:
    path = Path(directory)
    if not path.is_dir():
        rprint(f"[red]Error:[/red] not a directory: {directory}")
        raise typer.Exit(1)
    return path


def _report_failure(
    e: SiteSyncError, project_dir: Path, cfg: SiteSyncConfig, collection_id: str | None
) -> None:
    rprint(f"[red]Error:[/red] {e}")
    orphans = getattr(e, "orphans", ())
    if orphans:
        print_orphans(console, orphans)
        path = append_orphans(
            project_dir, orphans, collection_id=collection_id, reason=str(e), config=cfg.state
        )
        rprint(f"[dim]Orphans recorded in {path}[/dim]")


def _summarize(outcome: SyncOutcome) -> None:
    table = Table(title="Sync Summary")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="green")
    table.add_row("Collection", outcome.collection_id or "-")
    table.add_row("Added", str(len(outcome.diff.added)))
    table.add_row("Updated", str(len(outcome.diff.updated)))
    table.add_row("Deleted", str(len(outcome.diff.deleted)))
    table.add_row("Unchanged", str(len(outcome.diff.unchanged)))
    table.add_row("Skipped", str(len(outcome.plan.skipped)))
    table.add_row("Rejected paths", str(len(outcome.rejected)))
    rprint(table)


def _save_outcome(
    project_dir: Path, cfg: SiteSyncConfig, outcome: SyncOutcome, name: str
) -> None:
    if outcome.collection_id is None or outcome.capability_id is None:
        return
    path = save_state(
        project_dir,
        DeploymentState(
            collection_id=outcome.collection_id,
            capability_id=outcome.capability_id,
            name=name,
            network=cfg.ledger.network,
            file_count=outcome.file_count,
            total_size=outcome.total_size,
        ),
        cfg.state,
    )
    rprint(f"[green]State saved:[/green] {path}")


@app.command()
def validate(
    paths: list[str] = typer.Argument(..., help="Paths to check"),
) -> None:
    """Check resource paths against the path validator."""
    any_rejected = False
    for raw in paths:
        try:
            validate_resource_path(raw)
            rprint(f"[green]OK[/green]       {raw}")
        except PathRejected as e:
            any_rejected = True
            rprint(f"[red]REJECTED[/red] {raw}: {e.reason}")
    if any_rejected:
        raise typer.Exit(1)


@app.command()
def scan(
    directory: str = typer.Argument(..., help="Directory to scan"),
    as_json: Annotated[bool, typer.Option("--json", help="Print JSON")] = False,
) -> None:
    """Scan a directory and list the files that would be deployed."""
    cfg = _get_config()
    root = _require_dir(directory)
    try:
        result = DirectoryScanner(cfg.scan).scan_sync(root)
    except SiteSyncError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(
            {
                "files": [r.model_dump() for r in result.files.values()],
                "rejected": [{"path": e.raw, "reason": e.reason} for e in result.rejected],
                "ignored": result.ignored,
                "total_size": result.total_size,
            },
            indent=2,
        ))
        return

    table = Table(title=f"Files ({len(result.files)})")
    table.add_column("Path", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Type", style="green")
    table.add_column("Hash", style="dim")
    for r in result.files.values():
        table.add_row(r.path, str(r.size), r.content_type, r.hash[:12])
    rprint(table)
    for e in result.rejected:
        rprint(f"  [yellow]rejected:[/yellow] {e.raw!r}: {e.reason}")
    rprint(f"[dim]{result.ignored} ignored, {result.total_size} bytes total[/dim]")


@app.command()
def deploy(
    directory: str = typer.Argument(..., help="Directory to deploy"),
    name: Annotated[str, typer.Option("--name", "-n", help="Site name")] = "",
    force: Annotated[
        bool, typer.Option("--force", help="Create a new collection even if one is recorded")
    ] = False,
) -> None:
    """Deploy a directory as a brand-new collection."""
    cfg = _get_config()
    root = _require_dir(directory)
    project_dir = resolve_project_root(root, cfg.scan)
    site_name = name or root.resolve().name

    try:
        existing = load_state(project_dir, cfg.state)
    except SiteSyncError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    if existing is not None and not force:
        rprint(
            f"[yellow]Already deployed to {existing.collection_id}.[/yellow] "
            "Use `sitesync sync` to update it, or --force for a new collection."
        )
        raise typer.Exit(1)

    orchestrator = _orchestrator(cfg)
    try:
        outcome = asyncio.run(orchestrator.deploy(root, site_name))
    except KeyboardInterrupt:
        # A commit already under way runs to completion; keep its ids
        if orchestrator.outcome is not None:
            _save_outcome(project_dir, cfg, orchestrator.outcome, site_name)
        raise
    except CommitError as e:
        _report_failure(e, project_dir, cfg, e.collection_id)
        # The collection exists; record it so a later sync can finish the job
        if e.collection_id and e.capability_id:
            save_state(
                project_dir,
                DeploymentState(
                    collection_id=e.collection_id,
                    capability_id=e.capability_id,
                    name=site_name,
                    network=cfg.ledger.network,
                ),
                cfg.state,
            )
        raise typer.Exit(1)
    except SiteSyncError as e:
        _report_failure(e, project_dir, cfg, None)
        raise typer.Exit(1)

    _summarize(outcome)
    _save_outcome(project_dir, cfg, outcome, site_name)


def _resolve_ids(
    project_dir: Path, cfg: SiteSyncConfig, collection: str | None, capability: str | None
) -> tuple[str, str, str]:
    if collection and capability:
        return collection, capability, collection
    state = load_state(project_dir, cfg.state)
    if state is None:
        rprint(
            "[red]Error:[/red] no deployment recorded; "
            "pass --collection and --capability or run `sitesync deploy` first."
        )
        raise typer.Exit(1)
    return collection or state.collection_id, capability or state.capability_id, state.name


def _run_sync(
    cfg: SiteSyncConfig, root: Path, project_dir: Path,
    collection_id: str, capability_id: str, name: str,
    orchestrator: SyncOrchestrator | None = None,
) -> bool:
    orchestrator = orchestrator or _orchestrator(cfg)
    try:
        outcome = asyncio.run(orchestrator.sync(root, collection_id, capability_id))
    except KeyboardInterrupt:
        if orchestrator.outcome is not None:
            _save_outcome(project_dir, cfg, orchestrator.outcome, name)
        raise
    except SiteSyncError as e:
        _report_failure(e, project_dir, cfg, collection_id)
        return False
    _summarize(outcome)
    if outcome.diff.has_changes:
        _save_outcome(project_dir, cfg, outcome, name)
    return True


@app.command()
def sync(
    directory: str = typer.Argument(..., help="Directory to sync"),
    collection: Annotated[
        str | None, typer.Option("--collection", help="Collection id")
    ] = None,
    capability: Annotated[
        str | None, typer.Option("--capability", help="Capability id")
    ] = None,
) -> None:
    """Incrementally update an existing collection from a directory."""
    cfg = _get_config()
    root = _require_dir(directory)
    project_dir = resolve_project_root(root, cfg.scan)
    try:
        collection_id, capability_id, name = _resolve_ids(
            project_dir, cfg, collection, capability
        )
    except SiteSyncError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    if not _run_sync(cfg, root, project_dir, collection_id, capability_id, name):
        raise typer.Exit(1)


@app.command()
def watch(
    directory: str = typer.Argument(..., help="Directory to watch"),
    collection: Annotated[
        str | None, typer.Option("--collection", help="Collection id")
    ] = None,
    capability: Annotated[
        str | None, typer.Option("--capability", help="Capability id")
    ] = None,
) -> None:
    """Watch a directory and sync whenever it changes."""
    cfg = _get_config()
    root = _require_dir(directory)
    project_dir = resolve_project_root(root, cfg.scan)
    try:
        collection_id, capability_id, name = _resolve_ids(
            project_dir, cfg, collection, capability
        )
    except SiteSyncError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    orchestrator = _orchestrator(cfg)
    # Timer threads may overlap; one sync at a time
    busy = threading.Lock()

    def _on_change(changed: set[str]) -> None:
        rprint(f"[dim]{len(changed)} change(s) detected[/dim]")
        with busy:
            _run_sync(cfg, root, project_dir, collection_id, capability_id, name, orchestrator)

    watcher = SiteWatcher(root, _on_change, debounce_seconds=cfg.watch.debounce_seconds)
    rprint(f"[bold]Watching[/bold] {root} -> {collection_id} (Ctrl+C to stop)")
    watcher.start()
    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        pass
    finally:
        watcher.stop()


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default sitesync.yaml in current directory."""
    target = Path("sitesync.yaml")
    if target.exists() and not force:
        rprint("[yellow]sitesync.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")
