"""Push dirty epics to the remote tracker.

Each dirty epic is created or updated independently. Dirty flags are only
cleared in memory after a confirmed remote write and reach disk in a single
save at the end of the batch, so an interrupted run leaves the cache as it was.
Delivery is at-least-once: if that final save fails, the next run pushes the
same epics again.
"""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import Protocol

from ..exceptions import CacheWriteError, RemoteError, RemoteErrorKind
from ..models import Epic, EpicCache
from ..storage.cache import CacheHandle, get_dirty_epics
from ..utils.date_parser import utc_now
from .body import format_epic_body

logger = logging.getLogger(__name__)

DEFAULT_RETRY_DELAY = 2.0


class RemoteTracker(Protocol):
    """Remote issue tracker operations used by the sync engine."""

    def create_issue(self, title: str, body: str, labels: list[str]) -> int:
        """Create an issue and return its number."""
        ...

    def update_issue(self, number: int, title: str, body: str) -> None:
        """Replace the title and body of an existing issue."""
        ...


@dataclass
class SyncReport:
    """Aggregate result of one sync run."""

    synced: list[str] = field(default_factory=list)
    failed: list[tuple[str, str]] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    rate_limited: bool = False
    nothing_to_sync: bool = False
    persisted: bool = True
    persist_error: str | None = None
    still_dirty: list[str] = field(default_factory=list)

    @property
    def synced_count(self) -> int:
        return len(self.synced)

    @property
    def failed_count(self) -> int:
        return len(self.failed)

    @property
    def skipped_count(self) -> int:
        return len(self.skipped)

    @property
    def ok(self) -> bool:
        """True when every dirty epic was synced and durably recorded."""
        return not self.failed and not self.skipped and self.persisted

    def summary(self) -> str:
        if self.nothing_to_sync:
            return "Nothing to sync"
        return (
            f"synced={self.synced_count}, failed={self.failed_count}, "
            f"skipped={self.skipped_count}"
        )


class SyncEngine:
    """Reconciles dirty epics in one repository cache against a remote tracker."""

    def __init__(
        self,
        handle: CacheHandle,
        client: RemoteTracker,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = utc_now,
    ):
        """Initialize sync engine.

        Args:
            handle: Cache to read dirty epics from and write results to
            client: Remote tracker implementation
            retry_delay: Seconds to wait before retrying a transient failure
            sleep: Sleep function, replaceable in tests
            clock: Source of ``updated_at`` timestamps
        """
        self.handle = handle
        self.client = client
        self.retry_delay = retry_delay
        self.sleep = sleep
        self.clock = clock

    def sync(self) -> SyncReport:
        """Push every dirty epic and persist the cleared flags once.

        Returns:
            SyncReport with synced, failed and skipped epics

        Raises:
            CorruptCacheError: If the cache cannot be loaded
        """
        report = SyncReport()
        cache = self.handle.load()
        dirty = get_dirty_epics(cache)

        if not dirty:
            logger.info("No epics need syncing")
            report.nothing_to_sync = True
            return report

        logger.info("Syncing %d epic(s)", len(dirty))

        # keyed by id() so epics sharing a title or number stay distinct
        pushed: dict[int, Epic] = {}
        for position, epic in enumerate(dirty):
            name = epic.display_name
            try:
                synced = self._push(epic)
            except RemoteError as e:
                if e.kind == RemoteErrorKind.RATE_LIMITED:
                    report.rate_limited = True
                    report.skipped = [
                        pending.display_name for pending in dirty[position:]
                    ]
                    logger.warning(
                        "Rate limited while syncing %s; %d epic(s) left dirty",
                        name,
                        len(report.skipped),
                    )
                    break
                report.failed.append((name, str(e)))
                logger.warning("Failed to sync %s: %s", name, e)
            except Exception as e:
                report.failed.append((name, str(e)))
                logger.warning("Failed to sync %s: %s", name, e)
            else:
                pushed[id(epic)] = synced
                report.synced.append(synced.display_name)
                logger.info("Synced %s", synced.display_name)

        if pushed:
            cache.epics = [pushed.get(id(epic), epic) for epic in cache.epics]
            self._persist(cache, report)

        report.still_dirty = self._dirty_names(cache, report)
        return report

    def _push(self, epic: Epic) -> Epic:
        """Create or update one epic remotely and return its synced copy."""
        body = format_epic_body(epic)
        if epic.number is None:
            number = self._call(
                lambda: self.client.create_issue(epic.title, body, list(epic.labels))
            )
            changes = {"number": number}
        else:
            number = epic.number
            self._call(lambda: self.client.update_issue(number, epic.title, body))
            changes = {}
        changes.update(dirty=False, updated_at=self.clock())
        return epic.model_copy(update=changes)

    def _call(self, operation: Callable[[], object]):
        """Run a remote call, retrying once after a transient failure."""
        try:
            return operation()
        except RemoteError as e:
            if not e.is_transient:
                raise
            logger.info("Transient error (%s), retrying in %ss", e, self.retry_delay)
        self.sleep(self.retry_delay)
        return operation()

    def _persist(self, cache: EpicCache, report: SyncReport) -> None:
        try:
            self.handle.save(cache)
        except CacheWriteError as e:
            report.persisted = False
            report.persist_error = str(e)
            logger.warning(
                "Synced %d epic(s) but could not save the cache (%s); "
                "the next sync will push them again",
                len(report.synced),
                e,
            )

    @staticmethod
    def _dirty_names(cache: EpicCache, report: SyncReport) -> list[str]:
        if not report.persisted:
            # on-disk flags were not cleared: everything that was dirty still is
            failed = [name for name, _ in report.failed]
            return [*report.synced, *failed, *report.skipped]
        return [epic.display_name for epic in cache.epics if epic.dirty]
