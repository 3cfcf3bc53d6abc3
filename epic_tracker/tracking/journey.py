"""Append timeline entries to an epic's journey and mark it for sync."""

import logging
import re
from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import NotFoundError, ValidationError
from ..models import EpicCache, JourneyEntry
from ..storage.cache import (
    CacheHandle,
    find_epic_by_plan_file,
    get_epic,
    update_epic,
)
from ..utils.date_parser import parse_date_input, utc_now
from .skills import SKILLS, detect_skill_invocation

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]

CONTROL_CHARS = re.compile(r"[\x00-\x1f]")
SCALAR_TYPES = (str, int, float, bool, type(None))


def sanitize(value: str) -> str:
    """Strip C0 control characters (code points below 0x20)."""
    return CONTROL_CHARS.sub("", value)


def validate_epic_number(epic_number: Any) -> int:
    """Raise ValidationError unless ``epic_number`` is a positive integer."""
    if isinstance(epic_number, bool) or not isinstance(epic_number, int):
        raise ValidationError("Epic number must be a positive integer")
    if epic_number <= 0:
        raise ValidationError("Epic number must be a positive integer")
    return epic_number


def _required_text(entry: Mapping[str, Any], field: str) -> str:
    value = entry.get(field)
    if not isinstance(value, str) or not value:
        raise ValidationError(f"Entry must have a non-empty '{field}' string")
    cleaned = sanitize(value)
    if not cleaned:
        raise ValidationError(f"Entry '{field}' is empty after sanitizing")
    return cleaned


def build_entry(entry: Any, clock: Clock = utc_now) -> JourneyEntry:
    """Validate and sanitize raw entry data into a JourneyEntry.

    Args:
        entry: Mapping with ``event``, ``message`` and optional ``agent``,
            ``metadata`` and ``timestamp`` keys
        clock: Source of the default timestamp

    Raises:
        ValidationError: If required fields are missing or malformed
    """
    if not isinstance(entry, Mapping):
        raise ValidationError("Entry must be a mapping")

    event = _required_text(entry, "event")
    message = _required_text(entry, "message")

    agent = entry.get("agent")
    if agent is not None:
        if not isinstance(agent, str):
            raise ValidationError("Entry 'agent' must be a string")
        agent = sanitize(agent) or None

    metadata = entry.get("metadata")
    if metadata is not None:
        if not isinstance(metadata, Mapping) or not all(
            isinstance(key, str) and isinstance(value, SCALAR_TYPES)
            for key, value in metadata.items()
        ):
            raise ValidationError("Entry 'metadata' must be a flat map of scalars")
        metadata = dict(metadata)

    timestamp = entry.get("timestamp")
    if timestamp is None:
        timestamp = clock()
    elif isinstance(timestamp, str):
        try:
            timestamp = parse_date_input(timestamp)
        except ValueError as e:
            raise ValidationError(f"Entry 'timestamp' is invalid: {e}") from e
    elif not isinstance(timestamp, datetime):
        raise ValidationError("Entry 'timestamp' must be a datetime or ISO string")

    try:
        return JourneyEntry(
            event=event,
            message=message,
            agent=agent,
            metadata=metadata,
            timestamp=timestamp,
        )
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid journey entry: {e}") from e


def append_entry(
    cache: EpicCache, epic_number: int, entry: JourneyEntry, **changes: Any
) -> EpicCache:
    """Append an entry to an epic's journey and mark the epic dirty.

    Extra keyword arguments are applied to the epic in the same update.

    Raises:
        NotFoundError: If the epic is not in the cache
    """
    epic = get_epic(cache, epic_number)
    if epic is None:
        raise NotFoundError(f"Epic #{epic_number} not found in cache")
    return update_epic(
        cache, epic_number, journey=[*epic.journey, entry], dirty=True, **changes
    )


def add_entry(
    epic_number: int, entry: Any, handle: CacheHandle, clock: Clock = utc_now
) -> JourneyEntry:
    """Add a journey entry to a cached epic and persist the cache.

    Args:
        epic_number: Epic issue number
        entry: Mapping with event, message, and optional agent/metadata/timestamp
        handle: Cache to update
        clock: Source of the default timestamp

    Returns:
        The stored, sanitized entry

    Raises:
        ValidationError: Bad epic number or entry; raised before any I/O
        NotFoundError: Epic not in cache; nothing is written
        CorruptCacheError: Cache document unreadable
        CacheWriteError: Cache could not be saved
    """
    validate_epic_number(epic_number)
    journey_entry = build_entry(entry, clock)

    cache = handle.load()
    cache = append_entry(cache, epic_number, journey_entry)
    handle.save(cache)

    logger.info(
        "Added journey entry '%s' to epic #%d", journey_entry.event, epic_number
    )
    return journey_entry


def _agent_name(agent_info: Any) -> str | None:
    if agent_info is None:
        return None
    if isinstance(agent_info, str):
        return agent_info or None
    if isinstance(agent_info, Mapping):
        name = agent_info.get("name") or agent_info.get("id")
        return str(name) if name else None
    raise ValidationError("Agent info must be a mapping or a string")


def record_task_completion(
    epic_number: int,
    task_number: int,
    task_title: str,
    agent_info: Any,
    handle: CacheHandle,
    clock: Clock = utc_now,
) -> JourneyEntry:
    """Record a ``task_complete`` journey entry for an epic.

    Args:
        epic_number: Epic issue number
        task_number: Task number within the epic (1-indexed)
        task_title: Task title
        agent_info: ``{"name": ..., "id": ...}`` mapping, a plain name, or None
        handle: Cache to update
        clock: Source of the entry timestamp
    """
    validate_epic_number(epic_number)
    if (
        isinstance(task_number, bool)
        or not isinstance(task_number, int)
        or task_number <= 0
    ):
        raise ValidationError("Task number must be a positive integer")
    if not isinstance(task_title, str) or not task_title:
        raise ValidationError("Task title must be a non-empty string")

    entry = {
        "event": "task_complete",
        "message": f"✅ Task {task_number} completed: {task_title}",
        "agent": _agent_name(agent_info),
        "metadata": {"taskNumber": task_number, "taskTitle": sanitize(task_title)},
    }
    return add_entry(epic_number, entry, handle, clock)


def record_skill_invocation(
    text: str,
    handle: CacheHandle,
    epic_number: int | None = None,
    plan_file: str | None = None,
    clock: Clock = utc_now,
) -> JourneyEntry | None:
    """Turn a detected skill invocation in agent narration into a journey entry.

    The epic is taken from ``epic_number`` or looked up by ``plan_file``. A
    skill with a status label replaces the epic's existing ``status/*`` label.

    Returns:
        The stored entry, or None if no tracked skill or no epic matched
    """
    skill_id = detect_skill_invocation(text)
    if skill_id is None:
        return None
    skill = SKILLS[skill_id]
    if skill.journey_message is None:
        logger.debug("Skill %s does not produce journey entries", skill_id)
        return None

    if epic_number is not None:
        validate_epic_number(epic_number)

    cache = handle.load()
    if epic_number is not None:
        epic = get_epic(cache, epic_number)
        if epic is None:
            raise NotFoundError(f"Epic #{epic_number} not found in cache")
    elif plan_file:
        epic = find_epic_by_plan_file(cache, plan_file)
    else:
        epic = None

    if epic is None or epic.number is None:
        logger.debug("No cached epic linked to skill %s", skill_id)
        return None

    entry = build_entry(
        {
            "event": "skill_invocation",
            "message": skill.journey_message,
            "metadata": {"skill": skill_id},
        },
        clock,
    )

    changes: dict[str, Any] = {}
    if skill.status_label and skill.status_label not in epic.labels:
        labels = [label for label in epic.labels if not label.startswith("status/")]
        changes["labels"] = [*labels, skill.status_label]

    cache = append_entry(cache, epic.number, entry, **changes)
    handle.save(cache)

    logger.info("Linked %s to epic #%d", skill_id, epic.number)
    return entry
