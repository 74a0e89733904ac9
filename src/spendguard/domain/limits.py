"""Spending limit tracker domain service."""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional

from spendguard.database.base import Database
from spendguard.domain.entities import (
    ApprovalSettings,
    LimitPeriod,
    LimitStatus,
    SpendingLimit,
    SpendingLimitTracker,
)
from spendguard.domain.errors import NotFoundError, ValidationError, spending_limit_not_found
from spendguard.domain.policy import PolicyService
from spendguard.utils.period_window import as_utc, window_for

logger = logging.getLogger(__name__)


class LimitTrackerService:
    """Service maintaining committed and reserved totals per limit window.

    A tracker is the current one for its period only while ``now`` falls in
    its window. Rollover is lazy: the first touch after a window ends creates
    the next tracker, seeded from the configured limit. Elapsed trackers are
    never modified again.

    Callers mutating trackers are expected to hold the child's lock.
    """

    def __init__(self, db: Database, policy: PolicyService):
        """Initialize limit tracker service.

        Args:
            db: Database instance
            policy: Policy service used to read configured limits
        """
        self.db = db
        self.policy = policy

    def get_or_create_window(
        self,
        child_id: str,
        period: LimitPeriod,
        at: datetime,
        limit: Optional[SpendingLimit] = None,
    ) -> SpendingLimitTracker:
        """Get the tracker for the window of ``period`` containing ``at``.

        Args:
            child_id: Child ID
            period: Limit period
            at: Instant inside the window
            limit: Configured limit, looked up from the policy if omitted

        Returns:
            Existing tracker, or a fresh one seeded with the current limit

        Raises:
            NotFoundError: If no limit is configured for the period
        """
        window = window_for(period, at)
        tracker = self.db.get_tracker(child_id, period, window.start)
        if tracker is not None:
            return tracker

        if limit is None:
            limit = self.policy.get_settings(child_id).limit_for(period)
            if limit is None:
                raise NotFoundError(spending_limit_not_found(child_id, period.value))

        logger.debug(
            "opening %s window %s..%s for child %s", period.value, window.start, window.end, child_id
        )
        return self.db.create_tracker(
            child_id=child_id,
            period=period,
            period_start=window.start,
            period_end=window.end,
            limit_amount=limit.limit_amount,
        )

    def current_trackers(
        self, settings: ApprovalSettings, at: datetime
    ) -> dict[LimitPeriod, SpendingLimitTracker]:
        """Materialize the current tracker of every configured limit."""
        return {
            limit.period: self.get_or_create_window(settings.child_id, limit.period, at, limit)
            for limit in settings.spending_limits
        }

    def reserve(self, child_id: str, amount: Decimal, at: datetime) -> frozenset[LimitPeriod]:
        """Reserve ``amount`` on every limit that tracks pending requests.

        All trackers are updated in one database transaction; if any update
        fails none of them is applied.

        Returns:
            Periods that received the reservation
        """
        self._require_positive(amount)
        settings = self.policy.get_settings(child_id)
        reserved = []
        with self.db.transaction():
            for limit in settings.spending_limits:
                if not limit.includes_pending_requests:
                    continue
                tracker = self.get_or_create_window(child_id, limit.period, at, limit)
                self.db.adjust_tracker(tracker.id, pending_delta=amount)
                reserved.append(limit.period)
        return frozenset(reserved)

    def release(
        self,
        child_id: str,
        amount: Decimal,
        at: datetime,
        periods: Optional[Iterable[LimitPeriod]] = None,
        now: Optional[datetime] = None,
    ) -> None:
        """Release a reservation made at ``at``.

        Pending totals are floored at zero. A reservation whose window has
        already elapsed by ``now`` is left on the historical tracker.

        Args:
            child_id: Child ID
            amount: Amount that was reserved
            at: When the reservation was made
            periods: Periods that received the reservation; defaults to every
                limit that currently tracks pending requests
            now: Current time, defaults to ``at``
        """
        self._require_positive(amount)
        if periods is None:
            settings = self.policy.get_settings(child_id)
            periods = [l.period for l in settings.spending_limits if l.includes_pending_requests]
        now = as_utc(now or at)

        with self.db.transaction():
            for period in periods:
                window = window_for(period, at)
                if window.end <= now:
                    logger.debug(
                        "reservation window %s..%s for child %s already elapsed",
                        window.start,
                        window.end,
                        child_id,
                    )
                    continue
                tracker = self.db.get_tracker(child_id, period, window.start)
                if tracker is None:
                    continue
                self.db.adjust_tracker(tracker.id, pending_delta=-amount)

    def commit(
        self,
        child_id: str,
        amount: Decimal,
        at: datetime,
        reserved_at: Optional[datetime] = None,
        reserved_periods: Iterable[LimitPeriod] = (),
    ) -> None:
        """Record committed spend on every configured limit.

        When the amount was reserved in the same window, the reservation is
        moved from pending to spent; otherwise it is added to spent directly.
        """
        self._require_positive(amount)
        settings = self.policy.get_settings(child_id)
        reserved_periods = frozenset(reserved_periods)

        with self.db.transaction():
            for limit in settings.spending_limits:
                tracker = self.get_or_create_window(child_id, limit.period, at, limit)
                pending_delta = Decimal("0")
                if (
                    reserved_at is not None
                    and limit.period in reserved_periods
                    and tracker.window.contains(as_utc(reserved_at))
                ):
                    pending_delta = -amount
                self.db.adjust_tracker(tracker.id, spent_delta=amount, pending_delta=pending_delta)

    def get_limit_statuses(self, child_id: str, at: datetime) -> list[LimitStatus]:
        """Describe current usage of every configured limit."""
        settings = self.policy.get_settings(child_id)
        statuses = []
        with self.db.transaction():
            trackers = self.current_trackers(settings, at)
            for limit in settings.spending_limits:
                tracker = trackers[limit.period]
                statuses.append(
                    LimitStatus(
                        period=limit.period,
                        limit_amount=tracker.limit_amount,
                        spent_amount=tracker.spent_amount,
                        pending_amount=tracker.pending_amount,
                        remaining_amount=tracker.remaining_amount,
                        percent_used=tracker.percent_used,
                        period_start=tracker.period_start,
                        period_end=tracker.period_end,
                        includes_pending_requests=limit.includes_pending_requests,
                    )
                )
        return statuses

    def get_tracker_history(
        self, child_id: str, period: Optional[LimitPeriod] = None
    ) -> list[SpendingLimitTracker]:
        """List a child's trackers, newest window first."""
        return self.db.list_trackers(child_id, period)

    def purge_trackers(self, now: datetime, retention_days: int) -> int:
        """Delete trackers whose window ended more than ``retention_days`` ago."""
        cutoff = as_utc(now) - timedelta(days=retention_days)
        removed = self.db.delete_trackers_ended_before(cutoff)
        if removed:
            logger.info("purged %d trackers that ended before %s", removed, cutoff)
        return removed

    def _require_positive(self, amount: Decimal) -> None:
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
