"""Pydantic models for epics, sub-issues, journey entries and the cache document.

The same models define the persisted JSON layout, so field names here are the
keys written to ``state.json``.
"""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .utils.date_parser import ensure_utc, utc_now

IssueState = Literal["open", "closed"]
CompletionKeyword = Literal["closes", "fixes", "resolves", "completes"]
MetadataValue = str | int | float | bool | None


def _dedupe_labels(labels: list[str]) -> list[str]:
    seen: set[str] = set()
    result = []
    for label in labels:
        if label not in seen:
            seen.add(label)
            result.append(label)
    return result


class SubIssue(BaseModel):
    """A task owned by exactly one epic."""

    number: int = Field(..., gt=0, description="Remote issue number of the task")
    title: str = Field(..., description="Task title, usually 'Task N: ...'")
    state: IssueState = Field("open", description="Current state: open or closed")
    labels: list[str] = Field(default_factory=list, description="Label names")

    @field_validator("labels")
    @classmethod
    def _unique_labels(cls, value: list[str]) -> list[str]:
        return _dedupe_labels(value)


class JourneyEntry(BaseModel):
    """An immutable, timestamped event in an epic's history."""

    model_config = ConfigDict(frozen=True)

    event: str = Field(..., description="Short tag, e.g. 'task_complete'")
    message: str = Field(..., description="Sanitized human-readable message")
    agent: str | None = Field(None, description="Actor that produced the event")
    metadata: dict[str, MetadataValue] | None = Field(
        None, description="Small flat key-value map"
    )
    timestamp: datetime = Field(default_factory=utc_now)

    @field_validator("timestamp")
    @classmethod
    def _utc_timestamp(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class Epic(BaseModel):
    """A top-level unit of tracked work mirrored to the remote tracker."""

    number: int | None = Field(
        None, gt=0, description="Remote issue number, None until first sync"
    )
    title: str = Field(..., description="Epic title")
    description: str = Field("", description="Free-text goal of the epic")
    state: IssueState = Field("open", description="Current state: open or closed")
    labels: list[str] = Field(default_factory=list, description="Label names")
    sub_issues: list[SubIssue] = Field(default_factory=list)
    journey: list[JourneyEntry] = Field(default_factory=list)
    dirty: bool = Field(False, description="True when a sync to remote is owed")
    plan_file: str | None = Field(
        None, description="Plan document the epic was created from"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator("labels")
    @classmethod
    def _unique_labels(cls, value: list[str]) -> list[str]:
        return _dedupe_labels(value)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _utc_timestamps(cls, value: datetime) -> datetime:
        return ensure_utc(value)

    @property
    def display_name(self) -> str:
        """Identifier used in logs and reports."""
        if self.number is None:
            return f"new epic '{self.title}'"
        return f"epic #{self.number}"


class Commit(BaseModel):
    """A commit record read from version control."""

    hash: str
    message: str
    timestamp: datetime

    @property
    def short_hash(self) -> str:
        return self.hash[:7]


class CompletionEvent(BaseModel):
    """A completion signal extracted from a single commit message."""

    issue_number: int = Field(..., gt=0)
    keyword: CompletionKeyword
    commit: Commit | None = Field(
        None, description="Source commit when produced from history"
    )


class EpicCache(BaseModel):
    """Cache document for one owner/repository pair.

    Unknown top-level keys are kept so documents written by other tools
    survive a load/save cycle.
    """

    model_config = ConfigDict(extra="allow")

    repository: str | None = Field(None, description="owner/repo")
    epics: list[Epic] = Field(default_factory=list)
    issues: list[SubIssue] = Field(
        default_factory=list, description="Flat index of sub-issues by number"
    )
    last_task_check: datetime | None = Field(
        None, description="Watermark of the last commit completion scan"
    )

    @field_validator("last_task_check")
    @classmethod
    def _utc_watermark(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value) if value is not None else None
