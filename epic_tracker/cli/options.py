"""Standardized CLI option definitions for consistent shorthand mappings.

This module provides centralized option definitions to ensure consistent
shorthand options across all commands and prevent future drift.
"""

import typer

# Core options - used across most commands
ORG_OPTION = typer.Option(..., "--org", "-o", help="Repository owner (user or org)")

REPO_OPTION = typer.Option(..., "--repo", "-r", help="GitHub repository name")

STATE_DIR_OPTION = typer.Option(
    None,
    "--state-dir",
    help=(
        "Cache root directory "
        "(default: EPIC_TRACKER_STATE_DIR or ~/.epic-tracker/cache)"
    ),
)

TOKEN_OPTION = typer.Option(
    None, "--token", help="GitHub token (default: GITHUB_TOKEN env var)"
)

VERBOSE_OPTION = typer.Option(False, "--verbose", "-v", help="Show debug logging")

# Journey options
EPIC_OPTION = typer.Option(..., "--epic", "-e", help="Epic issue number")

EVENT_OPTION = typer.Option(
    ..., "--event", help="Short event tag, e.g. task_started"
)

MESSAGE_OPTION = typer.Option(..., "--message", "-m", help="Journey entry message")

AGENT_OPTION = typer.Option(None, "--agent", "-a", help="Agent or actor name")

TASK_OPTION = typer.Option(..., "--task", "-t", help="Task number within the epic")

TITLE_OPTION = typer.Option(..., "--title", help="Task title")

# Commit scan options
PATH_OPTION = typer.Option(".", "--path", "-p", help="Path inside a git working tree")

SINCE_OPTION = typer.Option(
    None, "--since", help="Scan commits after this date (e.g. 2024-01-01T10:00:00Z)"
)

LAST_DAYS_OPTION = typer.Option(
    None, "--last-days", help="Scan commits from the last N days"
)

LAST_WEEKS_OPTION = typer.Option(
    None, "--last-weeks", help="Scan commits from the last N weeks"
)

# Skill hook options
NARRATION_OPTION = typer.Option(
    None, "--text", help="Narration to scan (default: read standard input)"
)

OPTIONAL_EPIC_OPTION = typer.Option(None, "--epic", "-e", help="Epic issue number")

PLAN_FILE_OPTION = typer.Option(
    None, "--plan-file", help="Plan document path used to find the epic"
)
