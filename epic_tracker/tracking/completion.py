"""Detect task completion from commit messages.

Only the first ``<keyword> #<number>`` pair in a message is reported. The
pattern is intentionally narrow and deterministic.
"""

import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from ..models import Commit, CompletionEvent
from ..utils.date_parser import parse_timestamp
from ..vcs import DEFAULT_TIMEOUT, read_commits

COMPLETION_PATTERN = re.compile(
    r"(closes|fixes|resolves|completes)\s*#(\d+)", re.IGNORECASE
)


def detect_from_message(message: Any) -> CompletionEvent | None:
    """Extract the first completion keyword and issue number from a message.

    Args:
        message: Commit message text

    Returns:
        CompletionEvent, or None when the message has no completion reference
    """
    if not isinstance(message, str):
        return None

    match = COMPLETION_PATTERN.search(message)
    if match is None:
        return None

    # only the leftmost pair counts, even when it names no real issue
    issue_number = int(match.group(2))
    if issue_number == 0:
        return None

    return CompletionEvent(
        issue_number=issue_number,
        keyword=match.group(1).lower(),
    )


@dataclass(frozen=True)
class CommitHistory:
    """Restartable view of the commits after a point in time.

    Every iteration re-reads the repository, so the sequence can be walked
    more than once and reflects commits made in between.
    """

    repo_path: Path
    since: datetime
    timeout: int = DEFAULT_TIMEOUT

    def __iter__(self) -> Iterator[Commit]:
        return read_commits(self.repo_path, self.since, timeout=self.timeout)


def recent_commits(since: datetime | str, repo_path: str | Path) -> CommitHistory:
    """Commits strictly after ``since`` in ``repo_path``, oldest first.

    Yields nothing when the path is not a git repository.

    Raises:
        ValueError: If ``since`` is a string that cannot be parsed
    """
    return CommitHistory(repo_path=Path(repo_path), since=parse_timestamp(since))


def find_completed(
    since: datetime | str, repo_path: str | Path
) -> list[CompletionEvent]:
    """Completion events from commits after ``since``, in commit order.

    Events for the same issue from different commits are all reported.
    """
    events = []
    for commit in recent_commits(since, repo_path):
        event = detect_from_message(commit.message)
        if event is not None:
            events.append(event.model_copy(update={"commit": commit}))
    return events
