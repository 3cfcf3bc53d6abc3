"""Shared plumbing for CLI commands."""

from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import TrackerConfig
from ..storage.cache import CacheHandle, CacheStore
from ..sync.engine import SyncReport

console = Console()


def fail(message: str) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"❌ [red]Error: {escape(message)}[/red]")
    raise typer.Exit(1)


def load_config(require_token: bool = False) -> TrackerConfig:
    """Read and validate configuration, exiting on invalid settings."""
    config = TrackerConfig()
    try:
        config.validate(require_token=require_token)
    except ValueError as e:
        fail(str(e))
    return config


def open_cache(
    org: str, repo: str, state_dir: str | None, config: TrackerConfig
) -> CacheHandle:
    """Build the cache handle for a repository."""
    store = CacheStore(Path(state_dir) if state_dir else config.state_dir)
    return CacheHandle(store=store, owner=org, repo=repo)


def print_sync_report(report: SyncReport) -> None:
    """Render a sync report as a summary table plus per-epic details."""
    if report.nothing_to_sync:
        console.print("ℹ️  No epics need syncing.")
        return

    table = Table(title="Sync Results")
    table.add_column("Result", style="cyan")
    table.add_column("Count", justify="right", style="green")
    table.add_row("Synced", str(report.synced_count))
    table.add_row("Failed", str(report.failed_count))
    table.add_row("Skipped (rate limited)", str(report.skipped_count))
    console.print(table)

    for name in report.synced:
        console.print(f"  ✅ [green]Synced {escape(name)}[/green]")
    for name, error in report.failed:
        console.print(f"  ❌ [red]Failed {escape(name)}: {escape(error)}[/red]")
    if report.rate_limited:
        console.print(
            "⚠️  [yellow]GitHub rate limit reached; remaining epics were not "
            "attempted[/yellow]"
        )
    if not report.persisted:
        console.print(
            "⚠️  [yellow]Remote updates completed but dirty flags were not "
            f"saved: {escape(report.persist_error or '')}[/yellow]"
        )
        console.print(
            "⚠️  [yellow]The next sync will push these epics again.[/yellow]"
        )
    if report.still_dirty:
        console.print(
            "🔁 Still dirty, will retry on next sync: "
            + ", ".join(escape(name) for name in report.still_dirty)
        )
