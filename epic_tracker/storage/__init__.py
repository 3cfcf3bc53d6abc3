"""Persistent epic cache."""

from .cache import (
    CacheHandle,
    CacheStore,
    add_epic,
    add_sub_issue,
    get_dirty_epics,
    get_epic,
)

__all__ = [
    "CacheHandle",
    "CacheStore",
    "add_epic",
    "add_sub_issue",
    "get_dirty_epics",
    "get_epic",
]
