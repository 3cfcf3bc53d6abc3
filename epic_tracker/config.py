"""Configuration for the epic tracker, read from environment variables."""

import os
from pathlib import Path
from typing import Optional

DEFAULT_STATE_DIR = Path.home() / ".epic-tracker" / "cache"
TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off"}


class TrackerConfig:
    """Settings for cache location, GitHub access and sync behavior."""

    def __init__(self) -> None:
        """Initialize configuration from environment variables."""
        self.github_token: Optional[str] = os.getenv("GITHUB_TOKEN")
        self.state_dir: Path = Path(
            os.getenv("EPIC_TRACKER_STATE_DIR", str(DEFAULT_STATE_DIR))
        ).expanduser()
        self._retry_delay = os.getenv("EPIC_TRACKER_RETRY_DELAY", "2.0")
        self._timeout = os.getenv("EPIC_TRACKER_TIMEOUT", "30")
        self._auto_update = os.getenv("EPIC_TRACKER_AUTO_UPDATE", "true")
        self._track_completions = os.getenv("EPIC_TRACKER_TRACK_COMPLETIONS", "true")

    @property
    def retry_delay(self) -> float:
        return float(self._retry_delay)

    @property
    def timeout(self) -> int:
        return int(self._timeout)

    @property
    def auto_update_epics(self) -> bool:
        return self._auto_update.strip().lower() in TRUE_VALUES

    @property
    def track_completions(self) -> bool:
        return self._track_completions.strip().lower() in TRUE_VALUES

    def is_configured(self) -> bool:
        """Check if GitHub access is configured."""
        return self.github_token is not None

    def validate(self, require_token: bool = False) -> None:
        """Validate configuration and raise error if invalid."""
        problems = []
        if require_token and not self.github_token:
            problems.append("GITHUB_TOKEN is required")

        try:
            if self.retry_delay < 0:
                problems.append("EPIC_TRACKER_RETRY_DELAY must not be negative")
        except ValueError:
            problems.append("EPIC_TRACKER_RETRY_DELAY must be a number")

        try:
            if self.timeout <= 0:
                problems.append("EPIC_TRACKER_TIMEOUT must be a positive integer")
        except ValueError:
            problems.append("EPIC_TRACKER_TIMEOUT must be an integer")

        for name, value in (
            ("EPIC_TRACKER_AUTO_UPDATE", self._auto_update),
            ("EPIC_TRACKER_TRACK_COMPLETIONS", self._track_completions),
        ):
            if value.strip().lower() not in TRUE_VALUES | FALSE_VALUES:
                problems.append(f"{name} must be true or false")

        if problems:
            raise ValueError(f"Invalid configuration: {'; '.join(problems)}")
