"""Apply completion signals from git history to the cached epics."""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path

from ..models import CompletionEvent, EpicCache, SubIssue
from ..storage.cache import CacheHandle, find_epic_for_issue, update_epic
from ..utils.date_parser import parse_timestamp, utc_now
from .completion import find_completed
from .journey import Clock, append_entry, build_entry

logger = logging.getLogger(__name__)

DEFAULT_LOOKBACK = timedelta(hours=1)
TASK_TITLE_PATTERN = re.compile(r"^\s*Task\s+(\d+):\s*", re.IGNORECASE)


@dataclass
class ReconcileSummary:
    """Outcome of one completion scan."""

    since: datetime
    recorded: list[CompletionEvent] = field(default_factory=list)
    unmatched: list[CompletionEvent] = field(default_factory=list)
    already_closed: list[CompletionEvent] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.recorded) + len(self.unmatched) + len(self.already_closed)


def split_task_title(sub_issue: SubIssue) -> tuple[int, str]:
    """Task number and bare title from a ``Task N: title`` sub-issue.

    Falls back to the issue number and full title for other formats.
    """
    match = TASK_TITLE_PATTERN.match(sub_issue.title)
    if match:
        return int(match.group(1)), sub_issue.title[match.end():] or sub_issue.title
    return sub_issue.number, sub_issue.title


def _close_sub_issue(
    cache: EpicCache, epic_number: int, issue_number: int
) -> EpicCache:
    def closed(items: list[SubIssue]) -> list[SubIssue]:
        return [
            item.model_copy(update={"state": "closed"})
            if item.number == issue_number
            else item
            for item in items
        ]

    epic = next(e for e in cache.epics if e.number == epic_number)
    cache = update_epic(cache, epic_number, sub_issues=closed(epic.sub_issues))
    cache.issues = closed(cache.issues)
    return cache


def apply_completed_tasks(
    handle: CacheHandle,
    repo_path: str | Path,
    since: datetime | str | None = None,
    clock: Clock = utc_now,
) -> ReconcileSummary:
    """Record task completions found in commits since the last scan.

    Each completion closes the matching sub-issue, appends a ``task_complete``
    entry to its epic and marks the epic dirty. Sub-issues already closed are
    skipped, so scanning the same commits twice records nothing new. The cache
    is saved once, with ``last_task_check`` moved to now.

    Args:
        handle: Cache to update
        repo_path: Git working tree to scan
        since: Scan start; defaults to the stored watermark, else one hour ago
        clock: Source of timestamps

    Returns:
        ReconcileSummary of recorded and skipped events
    """
    cache = handle.load()
    now = clock()
    if since is None:
        since = cache.last_task_check or now - DEFAULT_LOOKBACK
    summary = ReconcileSummary(since=parse_timestamp(since))

    for event in find_completed(summary.since, repo_path):
        epic = find_epic_for_issue(cache, event.issue_number)
        if epic is None or epic.number is None:
            logger.info(
                "Issue #%d not linked to any cached epic", event.issue_number
            )
            summary.unmatched.append(event)
            continue

        sub_issue = next(s for s in epic.sub_issues if s.number == event.issue_number)
        if sub_issue.state == "closed":
            summary.already_closed.append(event)
            continue

        task_number, task_title = split_task_title(sub_issue)
        commit = event.commit
        metadata: dict[str, str | int] = {
            "taskNumber": task_number,
            "taskTitle": task_title,
            "issueNumber": event.issue_number,
        }
        agent = None
        if commit is not None:
            metadata["commit"] = commit.hash
            agent = f"git-commit-{commit.short_hash}"

        entry = build_entry(
            {
                "event": "task_complete",
                "message": f"✅ Task {task_number} completed: {task_title}",
                "agent": agent,
                "metadata": metadata,
            },
            clock,
        )
        cache = _close_sub_issue(cache, epic.number, event.issue_number)
        cache = append_entry(cache, epic.number, entry)
        summary.recorded.append(event)
        logger.info(
            "Recorded task %d completion for epic #%d", task_number, epic.number
        )

    cache.last_task_check = now
    handle.save(cache)
    return summary
