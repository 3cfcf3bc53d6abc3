"""CLI commands that append journey entries to cached epics."""

from collections.abc import Callable
from typing import TypeVar

import typer
from rich.markup import escape

from ..exceptions import (
    CacheWriteError,
    CorruptCacheError,
    NotFoundError,
    ValidationError,
)
from ..models import JourneyEntry
from ..tracking.journey import (
    add_entry,
    record_skill_invocation,
    record_task_completion,
)
from ..utils.log_setup import setup_logging
from .helpers import console, fail, load_config, open_cache
from .options import (
    AGENT_OPTION,
    EPIC_OPTION,
    EVENT_OPTION,
    MESSAGE_OPTION,
    NARRATION_OPTION,
    OPTIONAL_EPIC_OPTION,
    ORG_OPTION,
    PLAN_FILE_OPTION,
    REPO_OPTION,
    STATE_DIR_OPTION,
    TASK_OPTION,
    TITLE_OPTION,
    VERBOSE_OPTION,
)

T = TypeVar("T")


def _run(operation: Callable[[], T]) -> T:
    try:
        return operation()
    except (ValidationError, NotFoundError, CacheWriteError) as e:
        fail(str(e))
    except CorruptCacheError as e:
        console.print(f"❌ [red]{escape(str(e))}[/red]")
        console.print("The cache file was left untouched; repair or remove it.")
        raise typer.Exit(1)


def _record(epic: int, operation: Callable[[], JourneyEntry]) -> None:
    entry = _run(operation)
    console.print(
        f"✅ Added journey entry to epic #{epic}: {escape(entry.message)}"
    )
    console.print("Epic marked for sync.")


def journey(
    org: str = ORG_OPTION,
    repo: str = REPO_OPTION,
    epic: int = EPIC_OPTION,
    event: str = EVENT_OPTION,
    message: str = MESSAGE_OPTION,
    agent: str | None = AGENT_OPTION,
    state_dir: str | None = STATE_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Append a journey entry to a cached epic and mark it dirty.

    Examples:
        epic-tracker journey --org myorg --repo myrepo --epic 42 \\
            --event task_started --message "Started task 2"
    """
    setup_logging(verbose)
    handle = open_cache(org, repo, state_dir, load_config())
    entry = {"event": event, "message": message, "agent": agent}
    _record(epic, lambda: add_entry(epic, entry, handle))


def complete_task(
    org: str = ORG_OPTION,
    repo: str = REPO_OPTION,
    epic: int = EPIC_OPTION,
    task: int = TASK_OPTION,
    title: str = TITLE_OPTION,
    agent: str | None = AGENT_OPTION,
    state_dir: str | None = STATE_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Record that a task of an epic is complete.

    Examples:
        epic-tracker complete-task --org myorg --repo myrepo --epic 42 \\
            --task 1 --title "Build parser" --agent agent-1
    """
    setup_logging(verbose)
    handle = open_cache(org, repo, state_dir, load_config())
    agent_info = {"name": agent} if agent else None
    _record(
        epic,
        lambda: record_task_completion(epic, task, title, agent_info, handle),
    )


def skill(
    org: str = ORG_OPTION,
    repo: str = REPO_OPTION,
    text: str | None = NARRATION_OPTION,
    epic: int | None = OPTIONAL_EPIC_OPTION,
    plan_file: str | None = PLAN_FILE_OPTION,
    state_dir: str | None = STATE_DIR_OPTION,
    verbose: bool = VERBOSE_OPTION,
) -> None:
    """Record a skill invocation found in agent narration.

    The narration is read from --text, or from standard input when --text is
    omitted, so the command can be wired to a session message hook. The epic
    is given with --epic or looked up from the plan document with --plan-file.

    Examples:
        echo "I'm using the executing-plans skill" | epic-tracker skill \\
            --org myorg --repo myrepo --plan-file docs/plans/parser.md
    """
    setup_logging(verbose)
    if epic is None and not plan_file:
        fail("Provide --epic or --plan-file")

    handle = open_cache(org, repo, state_dir, load_config())
    if text is None:
        text = typer.get_text_stream("stdin").read()

    entry = _run(
        lambda: record_skill_invocation(
            text, handle, epic_number=epic, plan_file=plan_file
        )
    )
    if entry is None:
        console.print("No tracked skill invocation linked to a cached epic.")
        return

    skill_id = entry.metadata.get("skill") if entry.metadata else None
    console.print(f"✅ Recorded {escape(str(skill_id))}: {escape(entry.message)}")
    console.print("Epic marked for sync.")
