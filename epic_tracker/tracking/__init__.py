"""Journey recording and completion detection."""

from .completion import detect_from_message, find_completed, recent_commits
from .journey import add_entry, record_task_completion
from .skills import detect_skill_invocation

__all__ = [
    "add_entry",
    "detect_from_message",
    "detect_skill_invocation",
    "find_completed",
    "recent_commits",
    "record_task_completion",
]
