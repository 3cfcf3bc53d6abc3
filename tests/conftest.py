"""Test configuration and fixtures."""

import os
import shutil
import subprocess
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path

import pytest

from epic_tracker.models import Epic, EpicCache, SubIssue
from epic_tracker.storage.cache import CacheHandle, CacheStore, add_epic

FIXED_NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock() -> Callable[[], datetime]:
    """Clock that always returns FIXED_NOW."""
    return lambda: FIXED_NOW


@pytest.fixture
def state_dir(tmp_path: Path) -> Path:
    """Temporary cache root directory."""
    return tmp_path / "state"


@pytest.fixture
def store(state_dir: Path) -> CacheStore:
    """Cache store rooted in a temporary directory."""
    return CacheStore(state_dir)


@pytest.fixture
def handle(store: CacheStore) -> CacheHandle:
    """Cache handle for a test repository."""
    return CacheHandle(store=store, owner="testorg", repo="testrepo")


@pytest.fixture
def sample_epic() -> Epic:
    """A synced epic with two tasks."""
    return Epic(
        number=42,
        title="Parser rewrite",
        description="Replace the hand-written parser",
        labels=["epic", "status/planning"],
        sub_issues=[
            SubIssue(number=100, title="Task 1: Build parser"),
            SubIssue(number=101, title="Task 2: Wire parser into CLI"),
        ],
        plan_file="docs/plans/2024-06-01-parser.md",
        created_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
        updated_at=datetime(2024, 5, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def seeded_handle(handle: CacheHandle, sample_epic: Epic) -> CacheHandle:
    """Cache handle whose cache already holds ``sample_epic``."""
    cache = add_epic(EpicCache(repository="testorg/testrepo"), sample_epic)
    cache.issues = list(sample_epic.sub_issues)
    handle.save(cache)
    return handle


def _run_git(repo: Path, *args: str, env: dict[str, str] | None = None) -> None:
    subprocess.run(
        ["git", "-C", str(repo), *args],
        check=True,
        capture_output=True,
        env=env,
    )


@pytest.fixture
def git_repo(tmp_path: Path) -> Path:
    """Empty git repository; skipped when git is not installed."""
    if shutil.which("git") is None:
        pytest.skip("git is not installed")
    repo = tmp_path / "repo"
    repo.mkdir()
    _run_git(repo, "init", "-q")
    return repo


@pytest.fixture
def make_commit(git_repo: Path) -> Callable[[str, datetime], None]:
    """Create an empty commit with a given message and commit date."""

    def _commit(message: str, when: datetime) -> None:
        stamp = when.isoformat()
        env = {
            **os.environ,
            "GIT_AUTHOR_NAME": "Test",
            "GIT_AUTHOR_EMAIL": "test@example.com",
            "GIT_COMMITTER_NAME": "Test",
            "GIT_COMMITTER_EMAIL": "test@example.com",
            "GIT_AUTHOR_DATE": stamp,
            "GIT_COMMITTER_DATE": stamp,
        }
        _run_git(
            git_repo,
            "-c",
            "commit.gpgsign=false",
            "commit",
            "-q",
            "--allow-empty",
            "--no-verify",
            "-m",
            message,
            env=env,
        )

    return _commit
