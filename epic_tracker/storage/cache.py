"""Durable per-repository cache of epics.

One JSON document per owner/repository pair. Callers hold a ``CacheHandle``
and do read-modify-write of the whole document; a single writer process at a
time is assumed, so two concurrent writers can lose an update (last save wins).
"""

import hashlib
import json
import logging
import os
import tempfile
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import (
    CacheWriteError,
    CorruptCacheError,
    NotFoundError,
    ValidationError,
)
from ..models import Epic, EpicCache, SubIssue
from ..utils.date_parser import utc_now

logger = logging.getLogger(__name__)

CACHE_FILENAME = "state.json"
DIR_MODE = 0o700
FILE_MODE = 0o600


def repo_hash(owner: str, repo: str) -> str:
    """Stable directory name for an owner/repository pair."""
    return hashlib.sha256(f"{owner}/{repo}".encode()).hexdigest()[:16]


class CacheStore:
    """Loads and saves cache documents under a state directory."""

    def __init__(self, state_dir: str | Path):
        """Initialize cache store.

        Args:
            state_dir: Root directory holding one subdirectory per repository
        """
        self.state_dir = Path(state_dir).expanduser()

    def cache_path(self, owner: str, repo: str) -> Path:
        """Get the cache file path for a repository.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            Path object for the cache document
        """
        return self.state_dir / repo_hash(owner, repo) / CACHE_FILENAME

    def load(self, owner: str, repo: str) -> EpicCache:
        """Load the cache for a repository.

        Args:
            owner: Repository owner
            repo: Repository name

        Returns:
            Stored cache, or an empty cache if none exists yet

        Raises:
            CorruptCacheError: If the document cannot be read or parsed
        """
        path = self.cache_path(owner, repo)

        if not path.exists():
            return EpicCache(repository=f"{owner}/{repo}")

        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CorruptCacheError(path, str(e)) from e

        try:
            return EpicCache.model_validate(data)
        except PydanticValidationError as e:
            raise CorruptCacheError(path, f"schema mismatch: {e}") from e

    def save(self, owner: str, repo: str, cache: EpicCache) -> Path:
        """Atomically write the whole cache document.

        The document is written to a temporary file in the same directory and
        renamed over the previous one, so a crash never leaves a truncated file.

        Args:
            owner: Repository owner
            repo: Repository name
            cache: Cache to persist

        Returns:
            Path to the saved file

        Raises:
            CacheWriteError: If the file cannot be written
        """
        path = self.cache_path(owner, repo)
        payload = cache.model_dump_json(indent=2)

        try:
            path.parent.mkdir(parents=True, exist_ok=True, mode=DIR_MODE)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=".state.", suffix=".tmp"
            )
        except OSError as e:
            raise CacheWriteError(f"Cannot write cache {path}: {e}") from e

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.chmod(tmp_name, FILE_MODE)
            os.replace(tmp_name, path)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise CacheWriteError(f"Cannot write cache {path}: {e}") from e

        logger.debug("Saved cache for %s/%s to %s", owner, repo, path)
        return path


@dataclass(frozen=True)
class CacheHandle:
    """Explicit reference to one repository's cache, passed to every operation."""

    store: CacheStore
    owner: str
    repo: str

    @property
    def path(self) -> Path:
        return self.store.cache_path(self.owner, self.repo)

    def load(self) -> EpicCache:
        return self.store.load(self.owner, self.repo)

    def save(self, cache: EpicCache) -> Path:
        return self.store.save(self.owner, self.repo, cache)


def _validate(model: type, data: Any, what: str) -> Any:
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid {what}: {e}") from e


def _epic_index(cache: EpicCache, number: int) -> int | None:
    for i, epic in enumerate(cache.epics):
        if epic.number == number:
            return i
    return None


def get_epic(cache: EpicCache, number: int) -> Epic | None:
    """Find an epic by its remote issue number."""
    index = _epic_index(cache, number)
    return cache.epics[index] if index is not None else None


def add_epic(cache: EpicCache, epic_data: Epic | Mapping[str, Any]) -> EpicCache:
    """Insert an epic, or merge into the existing record with the same number.

    A new epic without a number and without an explicit dirty flag starts
    dirty, so the next sync creates it remotely.

    Returns:
        Updated copy of the cache
    """
    if isinstance(epic_data, Epic):
        fields = epic_data.model_dump(exclude_unset=True)
    elif isinstance(epic_data, Mapping):
        fields = dict(epic_data)
    else:
        raise ValidationError("Epic data must be an Epic or a mapping")

    incoming = _validate(Epic, fields, "epic")
    updated = cache.model_copy(deep=True)

    index = _epic_index(updated, incoming.number) if incoming.number else None
    if index is not None:
        merged = updated.epics[index].model_dump() | fields
        updated.epics[index] = _validate(Epic, merged, "epic")
        return updated

    if "dirty" not in fields and incoming.number is None:
        incoming = incoming.model_copy(update={"dirty": True})
    updated.epics.append(incoming)
    return updated


def add_sub_issue(
    cache: EpicCache, epic_number: int, sub_issue_data: SubIssue | Mapping[str, Any]
) -> EpicCache:
    """Add or update a sub-issue on an epic and in the flat issue index.

    Raises:
        NotFoundError: If no epic has that number

    Returns:
        Updated copy of the cache
    """
    if isinstance(sub_issue_data, SubIssue):
        fields = sub_issue_data.model_dump(exclude_unset=True)
    elif isinstance(sub_issue_data, Mapping):
        fields = dict(sub_issue_data)
    else:
        raise ValidationError("Sub-issue data must be a SubIssue or a mapping")

    incoming = _validate(SubIssue, fields, "sub-issue")

    index = _epic_index(cache, epic_number)
    if index is None:
        raise NotFoundError(f"Epic #{epic_number} not found in cache")

    updated = cache.model_copy(deep=True)
    epic = updated.epics[index]
    epic.sub_issues = _upsert_sub_issue(epic.sub_issues, incoming, fields)
    updated.issues = _upsert_sub_issue(updated.issues, incoming, fields)
    return updated


def _upsert_sub_issue(
    items: list[SubIssue], incoming: SubIssue, fields: dict[str, Any]
) -> list[SubIssue]:
    result = list(items)
    for i, existing in enumerate(result):
        if existing.number == incoming.number:
            result[i] = _validate(SubIssue, existing.model_dump() | fields, "sub-issue")
            return result
    result.append(incoming)
    return result


def update_epic(cache: EpicCache, number: int, **changes: Any) -> EpicCache:
    """Apply field changes to an epic and bump its ``updated_at``.

    Raises:
        NotFoundError: If no epic has that number
    """
    index = _epic_index(cache, number)
    if index is None:
        raise NotFoundError(f"Epic #{number} not found in cache")

    updated = cache.model_copy(deep=True)
    merged = updated.epics[index].model_dump() | {"updated_at": utc_now()} | changes
    updated.epics[index] = _validate(Epic, merged, "epic")
    return updated


def get_dirty_epics(cache: EpicCache) -> list[Epic]:
    """All epics with a pending sync, in cache order."""
    return [epic for epic in cache.epics if epic.dirty]


def find_epic_for_issue(cache: EpicCache, issue_number: int) -> Epic | None:
    """Find the epic owning the sub-issue with the given number."""
    for epic in cache.epics:
        if any(sub.number == issue_number for sub in epic.sub_issues):
            return epic
    return None


def find_epic_by_plan_file(cache: EpicCache, plan_file: str) -> Epic | None:
    """Find the epic created from a plan document.

    Matches an exact path first, then a stored path that contains ``plan_file``.
    """
    for epic in cache.epics:
        if epic.plan_file == plan_file:
            return epic
    for epic in cache.epics:
        if epic.plan_file and plan_file in epic.plan_file:
            return epic
    return None
