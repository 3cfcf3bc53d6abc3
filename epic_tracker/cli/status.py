"""CLI commands that inspect the cache and commit history."""

import typer
from rich.markup import escape
from rich.table import Table

from ..exceptions import CorruptCacheError
from ..storage.cache import get_dirty_epics
from ..tracking.completion import find_completed
from ..utils.date_parser import validate_since_parameters
from ..utils.log_setup import setup_logging
from .helpers import console, load_config, open_cache
from .options import (
    LAST_DAYS_OPTION,
    LAST_WEEKS_OPTION,
    ORG_OPTION,
    PATH_OPTION,
    REPO_OPTION,
    SINCE_OPTION,
    STATE_DIR_OPTION,
    VERBOSE_OPTION,
)


def status(
    org: str = ORG_OPTION,
    repo: str = REPO_OPTION,
    state_dir: str | None = STATE_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Show cached epics and which ones are waiting to be synced."""
    setup_logging(verbose)
    handle = open_cache(org, repo, state_dir, load_config())

    try:
        cache = handle.load()
    except CorruptCacheError as e:
        console.print(f"❌ [red]{escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"📁 Cache location: {handle.path}")

    if not cache.epics:
        console.print("No epics found in cache.")
        return

    table = Table(title=f"Epics for {org}/{repo}")
    table.add_column("Epic", style="cyan", justify="right")
    table.add_column("Title")
    table.add_column("State")
    table.add_column("Tasks", justify="right")
    table.add_column("Journey", justify="right")
    table.add_column("Dirty", style="yellow")

    for epic in cache.epics:
        closed = sum(1 for sub in epic.sub_issues if sub.state == "closed")
        title = epic.title[:50] + "..." if len(epic.title) > 50 else epic.title
        table.add_row(
            f"#{epic.number}" if epic.number else "new",
            escape(title),
            epic.state,
            f"{closed}/{len(epic.sub_issues)}",
            str(len(epic.journey)),
            "yes" if epic.dirty else "",
        )

    console.print(table)
    dirty = len(get_dirty_epics(cache))
    console.print(f"📊 {len(cache.epics)} epic(s), {dirty} waiting to sync")


def detect(
    path: str = PATH_OPTION,
    since: str | None = SINCE_OPTION,
    last_days: int | None = LAST_DAYS_OPTION,
    last_weeks: int | None = LAST_WEEKS_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """List task completions referenced by recent commit messages.

    Looks for 'closes #N', 'fixes #N', 'resolves #N' or 'completes #N'.
    Defaults to commits from the last day.

    Examples:
        epic-tracker detect --path . --last-days 7
        epic-tracker detect --since 2024-01-01T00:00:00Z
    """
    setup_logging(verbose)
    try:
        start = validate_since_parameters(
            since=since, last_days=last_days, last_weeks=last_weeks
        )
    except ValueError as e:
        console.print(f"❌ Date validation error: {escape(str(e))}")
        raise typer.Exit(1)

    events = find_completed(start, path)
    if not events:
        console.print("No completed tasks found.")
        return

    table = Table(title="Completed Tasks")
    table.add_column("Commit", style="cyan")
    table.add_column("Issue", justify="right", style="green")
    table.add_column("Keyword")
    table.add_column("Message")

    for event in events:
        commit = event.commit
        subject = commit.message.splitlines()[0] if commit and commit.message else ""
        table.add_row(
            commit.short_hash if commit else "",
            f"#{event.issue_number}",
            event.keyword,
            escape(subject[:60]),
        )

    console.print(table)
    console.print(f"Found {len(events)} completed task reference(s)")
