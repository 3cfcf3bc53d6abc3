"""Tests for journey recording."""

from datetime import datetime, timedelta, timezone

import pytest

from epic_tracker.exceptions import NotFoundError, ValidationError
from epic_tracker.models import EpicCache
from epic_tracker.storage.cache import CacheHandle, add_epic, get_epic
from epic_tracker.tracking.journey import (
    add_entry,
    build_entry,
    record_skill_invocation,
    record_task_completion,
    sanitize,
)


class TestBuildEntry:
    """Test entry validation and sanitizing."""

    def test_sanitize_strips_control_characters(self) -> None:
        """Test code points below 0x20 are removed."""
        assert sanitize("A\x01B\x00C") == "ABC"
        assert sanitize("line\nbreak\ttab") == "linebreaktab"
        assert sanitize("plain text ✅") == "plain text ✅"

    def test_defaults(self, fixed_clock) -> None:
        """Test the timestamp comes from the clock when not given."""
        entry = build_entry({"event": "note", "message": "Hello"}, fixed_clock)

        assert entry.timestamp == fixed_clock()
        assert entry.agent is None
        assert entry.metadata is None

    def test_timestamp_string_is_parsed(self) -> None:
        """Test ISO timestamps are accepted and normalized to UTC."""
        entry = build_entry(
            {
                "event": "note",
                "message": "Hello",
                "timestamp": "2024-01-15T12:00:00+02:00",
            }
        )

        assert entry.timestamp == datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)

    @pytest.mark.parametrize(
        "entry",
        [
            None,
            "not a mapping",
            {"message": "no event"},
            {"event": "no_message"},
            {"event": "", "message": "empty event"},
            {"event": "x", "message": "\x00\x01"},
            {"event": "x", "message": "m", "agent": 5},
            {"event": "x", "message": "m", "metadata": {"nested": {"a": 1}}},
            {"event": "x", "message": "m", "metadata": ["a"]},
            {"event": "x", "message": "m", "timestamp": "yesterday-ish"},
            {"event": "x", "message": "m", "timestamp": 12345},
        ],
    )
    def test_invalid_entries(self, entry: object) -> None:
        """Test malformed entries raise ValidationError."""
        with pytest.raises(ValidationError):
            build_entry(entry)


class TestAddEntry:
    """Test add_entry against a real cache file."""

    def test_entry_appended_and_epic_dirty(
        self, seeded_handle: CacheHandle, fixed_clock
    ) -> None:
        """Test a stored entry marks the epic for sync."""
        entry = add_entry(
            42,
            {"event": "task_started", "message": "Started task 1", "agent": "a1"},
            seeded_handle,
            clock=fixed_clock,
        )

        epic = get_epic(seeded_handle.load(), 42)
        assert epic.dirty is True
        assert epic.journey == [entry]
        assert entry.agent == "a1"

    def test_entries_keep_append_order(self, seeded_handle: CacheHandle) -> None:
        """Test N appends produce N entries in call order."""
        for i in range(5):
            add_entry(42, {"event": "note", "message": f"entry {i}"}, seeded_handle)

        journey = get_epic(seeded_handle.load(), 42).journey
        assert [e.message for e in journey] == [f"entry {i}" for i in range(5)]

    def test_message_is_sanitized(self, seeded_handle: CacheHandle) -> None:
        """Test control characters never reach the cache file."""
        add_entry(42, {"event": "note", "message": "A\x01B\x00C"}, seeded_handle)

        assert get_epic(seeded_handle.load(), 42).journey[0].message == "ABC"
        assert "\\u0000" not in seeded_handle.path.read_text()

    @pytest.mark.parametrize("epic_number", [0, -1, 1.5, True, None, "42"])
    def test_invalid_epic_number(
        self, handle: CacheHandle, epic_number: object
    ) -> None:
        """Test bad epic numbers fail before the cache is touched."""
        with pytest.raises(ValidationError):
            add_entry(epic_number, {"event": "note", "message": "x"}, handle)

        assert not handle.path.exists()

    def test_invalid_entry_does_no_io(self, handle: CacheHandle) -> None:
        """Test a malformed entry is rejected before any read or write."""
        with pytest.raises(ValidationError):
            add_entry(42, None, handle)

        assert not handle.path.exists()

    def test_unknown_epic_leaves_file_unchanged(
        self, seeded_handle: CacheHandle
    ) -> None:
        """Test NotFoundError leaves the cache byte-for-byte identical."""
        before = seeded_handle.path.read_bytes()

        with pytest.raises(NotFoundError):
            add_entry(999, {"event": "note", "message": "x"}, seeded_handle)

        assert seeded_handle.path.read_bytes() == before


class TestRecordTaskCompletion:
    """Test record_task_completion."""

    def test_task_completion_entry(
        self, seeded_handle: CacheHandle, fixed_clock
    ) -> None:
        """Test the stored entry for a completed task."""
        record_task_completion(
            42, 1, "Build parser", {"name": "agent-1"}, seeded_handle, fixed_clock
        )

        epic = get_epic(seeded_handle.load(), 42)
        assert epic.dirty is True
        assert len(epic.journey) == 1
        entry = epic.journey[0]
        assert entry.event == "task_complete"
        assert entry.message == "✅ Task 1 completed: Build parser"
        assert entry.agent == "agent-1"
        assert entry.metadata == {"taskNumber": 1, "taskTitle": "Build parser"}
        assert entry.timestamp == fixed_clock()

    @pytest.mark.parametrize(
        "agent_info,expected",
        [({"id": "agent-7"}, "agent-7"), ("cli", "cli"), (None, None), ({}, None)],
    )
    def test_agent_info_forms(
        self, seeded_handle: CacheHandle, agent_info: object, expected: str | None
    ) -> None:
        """Test agent info can be a mapping, a name or absent."""
        entry = record_task_completion(
            42, 2, "Wire parser", agent_info, seeded_handle
        )

        assert entry.agent == expected

    def test_invalid_task(self, seeded_handle: CacheHandle) -> None:
        """Test bad task numbers and titles are rejected."""
        with pytest.raises(ValidationError):
            record_task_completion(42, 0, "Title", None, seeded_handle)
        with pytest.raises(ValidationError):
            record_task_completion(42, 1, "", None, seeded_handle)

        assert get_epic(seeded_handle.load(), 42).journey == []

    def test_end_to_end_dirty_after_completion(
        self, handle: CacheHandle, fixed_clock
    ) -> None:
        """Test a synced epic becomes dirty once a task completes."""
        cache = add_epic(
            EpicCache(),
            {"number": 42, "title": "Parser", "dirty": False, "journey": []},
        )
        handle.save(cache)

        record_task_completion(
            42, 1, "Build parser", {"name": "agent-1"}, handle, fixed_clock
        )

        epic = get_epic(handle.load(), 42)
        assert epic.dirty is True
        assert epic.journey[0].message == "✅ Task 1 completed: Build parser"


class TestRecordSkillInvocation:
    """Test record_skill_invocation."""

    def test_links_skill_to_epic_by_number(
        self, seeded_handle: CacheHandle, fixed_clock
    ) -> None:
        """Test a tracked skill appends an entry and updates the status label."""
        entry = record_skill_invocation(
            "I'm using the executing-plans skill",
            seeded_handle,
            epic_number=42,
            clock=fixed_clock,
        )

        epic = get_epic(seeded_handle.load(), 42)
        assert entry.event == "skill_invocation"
        assert entry.message == "Started executing implementation plan"
        assert entry.metadata == {"skill": "executing-plans"}
        assert epic.journey == [entry]
        assert epic.labels == ["epic", "status/in-progress"]
        assert epic.dirty is True

    def test_links_skill_by_plan_file(self, seeded_handle: CacheHandle) -> None:
        """Test the epic can be found from its plan document."""
        entry = record_skill_invocation(
            "using the subagent-driven-development skill",
            seeded_handle,
            plan_file="2024-06-01-parser.md",
        )

        epic = get_epic(seeded_handle.load(), 42)
        assert entry is not None
        assert epic.labels == ["epic", "status/planning"]

    def test_untracked_skill_writes_nothing(
        self, seeded_handle: CacheHandle
    ) -> None:
        """Test skills without journey messages and plain text are ignored."""
        before = seeded_handle.path.read_bytes()

        assert (
            record_skill_invocation(
                "using the writing-plans skill", seeded_handle, epic_number=42
            )
            is None
        )
        assert record_skill_invocation("hello", seeded_handle, epic_number=42) is None
        assert seeded_handle.path.read_bytes() == before

    def test_no_linked_epic(self, seeded_handle: CacheHandle) -> None:
        """Test an unknown plan file is not an error."""
        assert (
            record_skill_invocation(
                "using the executing-plans skill",
                seeded_handle,
                plan_file="unrelated.md",
            )
            is None
        )

    def test_unknown_epic_number(self, seeded_handle: CacheHandle) -> None:
        """Test an explicit unknown epic raises NotFoundError."""
        with pytest.raises(NotFoundError):
            record_skill_invocation(
                "using the executing-plans skill", seeded_handle, epic_number=7
            )

    def test_timestamps_within_clock(self, seeded_handle: CacheHandle) -> None:
        """Test default timestamps come from the current time."""
        start = datetime.now(timezone.utc)
        entry = record_skill_invocation(
            "using the finishing-a-development-branch skill",
            seeded_handle,
            epic_number=42,
        )

        assert start - timedelta(seconds=1) <= entry.timestamp
        assert entry.timestamp <= datetime.now(timezone.utc)
        assert "status/review" in get_epic(seeded_handle.load(), 42).labels
