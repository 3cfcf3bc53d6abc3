"""CLI commands that push cached epics to GitHub."""

import typer
from rich.markup import escape

from ..config import TrackerConfig
from ..exceptions import CacheWriteError, CorruptCacheError
from ..github_client.client import GitHubClient
from ..storage.cache import CacheHandle
from ..sync.engine import SyncEngine, SyncReport
from ..tracking.reconcile import apply_completed_tasks
from ..utils.log_setup import setup_logging
from .helpers import console, fail, load_config, open_cache, print_sync_report
from .options import (
    ORG_OPTION,
    PATH_OPTION,
    REPO_OPTION,
    STATE_DIR_OPTION,
    TOKEN_OPTION,
    VERBOSE_OPTION,
)


def _run_sync(handle: CacheHandle, config: TrackerConfig, token: str | None) -> None:
    try:
        client = GitHubClient(
            handle.owner,
            handle.repo,
            token=token or config.github_token,
            timeout=config.timeout,
        )
    except ValueError as e:
        fail(str(e))

    engine = SyncEngine(handle, client, retry_delay=config.retry_delay)
    try:
        report: SyncReport = engine.sync()
    except CorruptCacheError as e:
        console.print(f"❌ [red]{escape(str(e))}[/red]")
        console.print("The cache file was left untouched; repair or remove it.")
        raise typer.Exit(1)

    print_sync_report(report)
    if not report.ok:
        raise typer.Exit(1)
    if not report.nothing_to_sync:
        console.print("✨ [green]All dirty epics synced.[/green]")


def sync(
    org: str = ORG_OPTION,
    repo: str = REPO_OPTION,
    state_dir: str | None = STATE_DIR_OPTION,
    token: str | None = TOKEN_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Push every dirty epic in the local cache to GitHub.

    Epics without an issue number are created; the rest are updated. Exits
    with status 1 when any epic failed, was skipped because of rate limiting,
    or when the cache could not be saved afterwards.

    Examples:
        epic-tracker sync --org myorg --repo myrepo
    """
    setup_logging(verbose)
    config = load_config()

    if not config.auto_update_epics:
        console.print("⚠️  [yellow]Epic auto-updates disabled in config[/yellow]")
        return

    console.print(f"🔄 Syncing epics for {org}/{repo}...")
    _run_sync(open_cache(org, repo, state_dir, config), config, token)


def land(
    org: str = ORG_OPTION,
    repo: str = REPO_OPTION,
    path: str = PATH_OPTION,
    state_dir: str | None = STATE_DIR_OPTION,
    token: str | None = TOKEN_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Record task completions from recent commits, then sync dirty epics.

    Intended for idle hooks: commits since the last scan that close a cached
    sub-issue add a task_complete entry to its epic before the sync runs.

    Examples:
        epic-tracker land --org myorg --repo myrepo --path .
    """
    setup_logging(verbose)
    config = load_config()
    handle = open_cache(org, repo, state_dir, config)

    console.print("🛬 Landing the plane...")

    if config.track_completions:
        try:
            summary = apply_completed_tasks(handle, path)
        except CorruptCacheError as e:
            console.print(f"❌ [red]{escape(str(e))}[/red]")
            console.print("The cache file was left untouched; repair or remove it.")
            raise typer.Exit(1)
        except CacheWriteError as e:
            fail(str(e))

        if summary.total == 0:
            console.print("No completed tasks found.")
        for event in summary.recorded:
            console.print(f"  ✅ Recorded completion of #{event.issue_number}")
        for event in summary.unmatched:
            console.print(
                f"  ⚠️  [yellow]Issue #{event.issue_number} is not a task of a "
                "cached epic[/yellow]"
            )

    if not config.auto_update_epics:
        console.print("⚠️  [yellow]Epic auto-updates disabled in config[/yellow]")
        return

    _run_sync(handle, config, token)
