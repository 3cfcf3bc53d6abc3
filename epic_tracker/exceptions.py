"""Error taxonomy for the epic cache and sync engine."""

from enum import Enum
from pathlib import Path


class EpicTrackerError(Exception):
    """Base class for all epic-tracker errors."""


class ValidationError(EpicTrackerError, ValueError):
    """Malformed input to a public operation. Raised before any side effect."""


class NotFoundError(EpicTrackerError, LookupError):
    """A referenced epic or sub-issue is not in the cache."""


class CorruptCacheError(EpicTrackerError):
    """The on-disk cache document could not be read or parsed.

    The file is left untouched so it can be inspected or repaired by hand.
    """

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Cache file {path} is corrupt: {reason}")


class CacheWriteError(EpicTrackerError, OSError):
    """The cache document could not be written."""


class RemoteErrorKind(str, Enum):
    """Classification of remote tracker failures."""

    TRANSIENT = "transient"
    RATE_LIMITED = "rate_limited"
    PERMANENT = "permanent"


class RemoteError(EpicTrackerError):
    """A create/update call against the remote tracker failed."""

    def __init__(
        self, message: str, kind: RemoteErrorKind, status: int | None = None
    ):
        self.kind = kind
        self.status = status
        super().__init__(message)

    @property
    def is_transient(self) -> bool:
        return self.kind == RemoteErrorKind.TRANSIENT

    @property
    def is_rate_limited(self) -> bool:
        return self.kind == RemoteErrorKind.RATE_LIMITED
