"""GitHub API client using PyGitHub."""

import logging
import os

import requests
from github import Auth, Github
from github.GithubException import (
    BadCredentialsException,
    GithubException,
    RateLimitExceededException,
    UnknownObjectException,
)
from github.Repository import Repository

from ..exceptions import RemoteError, RemoteErrorKind

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30


def classify_github_error(error: Exception) -> RemoteError:
    """Map a PyGitHub or transport exception to a RemoteError.

    Args:
        error: Exception raised by PyGitHub or requests

    Returns:
        RemoteError with transient, rate_limited or permanent kind
    """
    if isinstance(error, RateLimitExceededException):
        return RemoteError(
            "GitHub API rate limit exceeded", RemoteErrorKind.RATE_LIMITED, error.status
        )

    if isinstance(error, BadCredentialsException):
        return RemoteError(
            "GitHub rejected the token", RemoteErrorKind.PERMANENT, error.status
        )

    if isinstance(error, UnknownObjectException):
        return RemoteError(
            "Not found on GitHub", RemoteErrorKind.PERMANENT, error.status
        )

    if isinstance(error, GithubException):
        status = error.status
        message = str(error)
        if isinstance(error.data, dict) and error.data.get("message"):
            message = str(error.data["message"])
        if status == 429 or (status == 403 and "rate limit" in message.lower()):
            return RemoteError(
                f"GitHub API rate limit exceeded: {message}",
                RemoteErrorKind.RATE_LIMITED,
                status,
            )
        if status is not None and status >= 500:
            return RemoteError(
                f"GitHub server error {status}: {message}",
                RemoteErrorKind.TRANSIENT,
                status,
            )
        return RemoteError(
            f"GitHub API error {status}: {message}", RemoteErrorKind.PERMANENT, status
        )

    if isinstance(error, (requests.ConnectionError, requests.Timeout)):
        return RemoteError(f"Network error: {error}", RemoteErrorKind.TRANSIENT)

    return RemoteError(f"Unexpected GitHub error: {error}", RemoteErrorKind.PERMANENT)


class GitHubClient:
    """Creates and updates epic issues in one GitHub repository."""

    def __init__(
        self,
        org: str,
        repo: str,
        token: str | None = None,
        timeout: int = DEFAULT_TIMEOUT,
    ):
        """Initialize GitHub client with authentication.

        Args:
            org: Repository owner (user or organization)
            repo: Repository name
            token: GitHub personal access token. If None, reads from
                GITHUB_TOKEN env var.
            timeout: Per-request timeout in seconds
        """
        self.token = token or os.getenv("GITHUB_TOKEN")
        if not self.token:
            raise ValueError(
                "GitHub token is required. Set GITHUB_TOKEN environment variable."
            )

        self.org = org
        self.repo = repo
        # PyGitHub's own retries would hide transient failures from the engine
        self.github = Github(auth=Auth.Token(self.token), timeout=timeout, retry=None)
        self._repository: Repository | None = None

    def get_repository(self) -> Repository:
        """Get repository object, fetched once per client."""
        if self._repository is None:
            try:
                self._repository = self.github.get_repo(f"{self.org}/{self.repo}")
            except (GithubException, requests.RequestException) as e:
                raise classify_github_error(e) from e
        return self._repository

    def create_issue(self, title: str, body: str, labels: list[str]) -> int:
        """Create an issue and return its number.

        Raises:
            RemoteError: If GitHub rejects the request or is unreachable
        """
        repository = self.get_repository()
        try:
            issue = repository.create_issue(title=title, body=body, labels=labels)
        except (GithubException, requests.RequestException) as e:
            raise classify_github_error(e) from e

        logger.info("Created issue #%d in %s/%s", issue.number, self.org, self.repo)
        return issue.number

    def update_issue(self, number: int, title: str, body: str) -> None:
        """Replace the title and body of an existing issue.

        Raises:
            RemoteError: If GitHub rejects the request or is unreachable
        """
        repository = self.get_repository()
        try:
            issue = repository.get_issue(number)
            issue.edit(title=title, body=body)
        except (GithubException, requests.RequestException) as e:
            raise classify_github_error(e) from e

        logger.info("Updated issue #%d in %s/%s", number, self.org, self.repo)
