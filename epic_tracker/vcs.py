"""Read-only git access for commit history scans.

Functions here never raise on git failures: a missing binary, a path that is
not a repository, or a timeout all produce an empty result.
"""

import logging
import subprocess
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from .models import Commit

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30

# ASCII unit/record separators cannot appear in commit messages git prints
FIELD_SEP = "\x1f"
RECORD_SEP = "\x1e"
LOG_FORMAT = f"%H{FIELD_SEP}%cI{FIELD_SEP}%B{RECORD_SEP}"


@dataclass
class GitResult:
    """Result of a git command."""
    returncode: int
    stdout: str
    stderr: str
    timed_out: bool = False

    @property
    def success(self) -> bool:
        return self.returncode == 0 and not self.timed_out


def run_git(
    args: list[str],
    cwd: Path,
    timeout: int = DEFAULT_TIMEOUT,
) -> GitResult:
    """
    Run a git command with timeout handling.

    Args:
        args: Git command arguments (e.g., ["log", "--oneline"])
        cwd: Working directory for the command
        timeout: Timeout in seconds

    Returns:
        GitResult with returncode, stdout, stderr, and timed_out flag
    """
    cmd = ["git", "-C", str(cwd)] + args
    try:
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
        return GitResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
        )
    except subprocess.TimeoutExpired:
        return GitResult(
            returncode=-1,
            stdout="",
            stderr=f"Command timed out after {timeout}s",
            timed_out=True,
        )
    except OSError as e:
        # git not installed, or cwd unusable
        return GitResult(returncode=-1, stdout="", stderr=str(e))


def parse_log_output(output: str) -> list[Commit]:
    """Parse ``git log`` output produced with ``LOG_FORMAT``."""
    commits = []
    for record in output.split(RECORD_SEP):
        record = record.strip("\n")
        if not record.strip():
            continue
        parts = record.split(FIELD_SEP, 2)
        if len(parts) != 3:
            logger.debug("Skipping malformed git log record: %r", record[:80])
            continue
        commit_hash, timestamp, message = parts
        try:
            committed_at = datetime.fromisoformat(timestamp.strip())
        except ValueError:
            logger.debug("Skipping commit %s with bad date %r", commit_hash, timestamp)
            continue
        commits.append(
            Commit(
                hash=commit_hash.strip(),
                message=message.strip(),
                timestamp=committed_at,
            )
        )
    return commits


def read_commits(
    repo_path: Path, since: datetime, timeout: int = DEFAULT_TIMEOUT
) -> Iterator[Commit]:
    """
    Yield commits committed strictly after ``since``, oldest first.

    Args:
        repo_path: Path inside a git working tree
        since: Timezone-aware lower bound (exclusive)
        timeout: Timeout in seconds for the git call

    Yields:
        Commit records in chronological order; nothing on any git failure
    """
    if not Path(repo_path).is_dir():
        logger.debug("Not scanning commits: %s is not a directory", repo_path)
        return

    result = run_git(
        [
            "log",
            "--reverse",
            f"--since={since.isoformat()}",
            f"--format={LOG_FORMAT}",
        ],
        Path(repo_path),
        timeout=timeout,
    )
    if not result.success:
        logger.debug("git log failed in %s: %s", repo_path, result.stderr.strip())
        return

    for commit in parse_log_output(result.stdout):
        # git --since has second granularity and is inclusive
        if commit.timestamp > since:
            yield commit
