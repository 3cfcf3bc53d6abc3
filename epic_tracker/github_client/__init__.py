"""GitHub client package for API interaction."""

from .client import GitHubClient, classify_github_error

__all__ = [
    "GitHubClient",
    "classify_github_error",
]
