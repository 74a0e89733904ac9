"""Expiration sweeper."""

import logging
import threading
from typing import Optional

from spendguard.domain.collaborators import Clock
from spendguard.domain.entities import SweepReport
from spendguard.domain.errors import DomainError
from spendguard.domain.limits import LimitTrackerService
from spendguard.domain.requests import RequestLifecycleService

logger = logging.getLogger(__name__)


class ExpirationSweeper:
    """Expires overdue requests and purges old limit trackers.

    ``run_once`` performs one sweep and is what tests drive directly.
    ``start`` runs sweeps on a background thread every ``interval`` seconds
    until ``stop`` is called.
    """

    def __init__(
        self,
        lifecycle: RequestLifecycleService,
        limits: LimitTrackerService,
        clock: Clock,
        interval: float = 300.0,
        tracker_retention_days: Optional[int] = 400,
    ):
        self.lifecycle = lifecycle
        self.limits = limits
        self.clock = clock
        self.interval = interval
        self.tracker_retention_days = tracker_retention_days
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def run_once(self) -> SweepReport:
        """Expire every overdue pending request, each independently."""
        now = self.clock.now()
        due = self.lifecycle.list_overdue_requests(now)

        expired = []
        failed = {}
        skipped = 0
        for request in due:
            try:
                result = self.lifecycle.expire(request.id)
            except DomainError as e:
                logger.warning("could not expire request %d: %s", request.id, e)
                failed[request.id] = str(e)
                continue
            except Exception as e:
                logger.exception("unexpected error expiring request %d", request.id)
                failed[request.id] = str(e)
                continue
            if result is None:
                skipped += 1
            else:
                expired.append(request.id)

        removed = 0
        if self.tracker_retention_days is not None:
            try:
                removed = self.limits.purge_trackers(now, self.tracker_retention_days)
            except Exception:
                logger.exception("tracker cleanup failed")

        if due:
            logger.info(
                "sweep found %d overdue requests: %d expired, %d skipped, %d failed",
                len(due),
                len(expired),
                skipped,
                len(failed),
            )
        return SweepReport(
            started_at=now,
            expired_ids=tuple(expired),
            failed=failed,
            skipped=skipped,
            trackers_removed=removed,
        )

    def start(self) -> None:
        """Start sweeping on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name="spendguard-sweeper", daemon=True)
        self._thread.start()
        logger.info("expiration sweeper started (every %ss)", self.interval)

    def stop(self, timeout: Optional[float] = None) -> None:
        """Ask the background thread to finish and wait for it."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        logger.info("expiration sweeper stopped")

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the sweeper is stopped or ``timeout`` elapses."""
        return self._stop.wait(timeout)

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _loop(self) -> None:
        while not self._stop.is_set():
            try:
                self.run_once()
            except Exception:
                logger.exception("expiration sweep failed")
            self._stop.wait(self.interval)
