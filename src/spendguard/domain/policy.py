"""Approval policy domain service."""

import dataclasses
import logging
from decimal import Decimal
from typing import Optional

from spendguard.config import EngineConfig
from spendguard.database.base import Database
from spendguard.domain.collaborators import Clock, SystemClock
from spendguard.domain.entities import (
    ApprovalSettings,
    CategoryRestriction,
    CategoryRule,
    LimitPeriod,
    SpendingLimit,
)
from spendguard.domain.errors import (
    NotFoundError,
    ValidationError,
    category_rule_not_found,
    spending_limit_not_found,
)
from spendguard.utils.child_locks import ChildLocks
from spendguard.utils.period_window import window_for

logger = logging.getLogger(__name__)

# Sentinel distinguishing "leave unchanged" from an explicit None
_UNSET = object()


class PolicyService:
    """Service for reading and editing a child's approval policy.

    Settings are created with defaults the first time they are read, so
    callers never have to provision them.
    """

    def __init__(
        self,
        db: Database,
        config: Optional[EngineConfig] = None,
        locks: Optional[ChildLocks] = None,
        clock: Optional[Clock] = None,
    ):
        """Initialize policy service.

        Args:
            db: Database instance
            config: Engine configuration providing default settings values
            locks: Per-child lock registry shared with the other services
            clock: Clock used to find the current limit window
        """
        self.db = db
        self.config = config or EngineConfig()
        self.locks = locks or ChildLocks()
        self.clock = clock or SystemClock()

    def get_settings(self, child_id: str) -> ApprovalSettings:
        """Get settings for a child, creating defaults on first access.

        Args:
            child_id: Child ID

        Returns:
            Fully materialized ApprovalSettings
        """
        settings = self.db.get_settings(child_id)
        if settings is not None:
            return settings

        with self.locks.hold(child_id):
            settings = self.db.get_settings(child_id)
            if settings is None:
                logger.debug("creating default approval settings for child %s", child_id)
                settings = self.db.create_settings(
                    ApprovalSettings(
                        child_id=child_id,
                        approval_threshold=self.config.default_approval_threshold,
                        request_expiration_hours=self.config.default_request_expiration_hours,
                    )
                )
            return settings

    def update_settings(
        self,
        child_id: str,
        is_enabled: Optional[bool] = None,
        approval_threshold: Optional[Decimal] = None,
        max_single_purchase=_UNSET,
        auto_approve_under_threshold: Optional[bool] = None,
        auto_approve_trusted_categories: Optional[bool] = None,
        request_expiration_hours: Optional[int] = None,
        family_id=_UNSET,
    ) -> ApprovalSettings:
        """Update scalar settings. Arguments left as None are unchanged.

        ``max_single_purchase`` and ``family_id`` may be set to None
        explicitly to clear them.

        Raises:
            ValidationError: If a threshold is negative, the purchase ceiling is
                not positive, or the expiration is not positive
        """
        if approval_threshold is not None and approval_threshold < 0:
            raise ValidationError("Approval threshold must not be negative")
        if max_single_purchase is not _UNSET and max_single_purchase is not None and max_single_purchase <= 0:
            raise ValidationError("Maximum single purchase must be greater than zero")
        if request_expiration_hours is not None and request_expiration_hours <= 0:
            raise ValidationError("Request expiration must be at least one hour")

        changes = {
            "is_enabled": is_enabled,
            "approval_threshold": approval_threshold,
            "auto_approve_under_threshold": auto_approve_under_threshold,
            "auto_approve_trusted_categories": auto_approve_trusted_categories,
            "request_expiration_hours": request_expiration_hours,
        }
        changes = {name: value for name, value in changes.items() if value is not None}
        if max_single_purchase is not _UNSET:
            changes["max_single_purchase"] = max_single_purchase
        if family_id is not _UNSET:
            changes["family_id"] = family_id

        return self._replace(child_id, **changes)

    def set_paused(self, child_id: str, reason: Optional[str] = None) -> ApprovalSettings:
        """Pause all spending for a child."""
        logger.info("pausing spending for child %s", child_id)
        return self._replace(child_id, is_paused=True, pause_reason=reason)

    def resume(self, child_id: str) -> ApprovalSettings:
        """Resume spending for a paused child."""
        logger.info("resuming spending for child %s", child_id)
        return self._replace(child_id, is_paused=False, pause_reason=None)

    def add_trusted_category(self, child_id: str, category_id: str) -> ApprovalSettings:
        """Mark a category as trusted for auto-approval above the threshold."""
        if not category_id:
            raise ValidationError("Category is required")
        with self.locks.hold(child_id), self.db.transaction():
            settings = self.get_settings(child_id)
            return self.db.update_settings(
                dataclasses.replace(
                    settings, trusted_category_ids=settings.trusted_category_ids | {category_id}
                )
            )

    def remove_trusted_category(self, child_id: str, category_id: str) -> ApprovalSettings:
        """Remove a category from the trusted set.

        Raises:
            NotFoundError: If the category is not trusted
        """
        with self.locks.hold(child_id), self.db.transaction():
            settings = self.get_settings(child_id)
            if category_id not in settings.trusted_category_ids:
                raise NotFoundError(f"Category '{category_id}' is not trusted for child '{child_id}'")
            return self.db.update_settings(
                dataclasses.replace(
                    settings, trusted_category_ids=settings.trusted_category_ids - {category_id}
                )
            )

    def upsert_category_rule(
        self,
        child_id: str,
        category_id: str,
        restriction: CategoryRestriction,
        category_threshold: Optional[Decimal] = None,
        restriction_reason: Optional[str] = None,
    ) -> CategoryRule:
        """Create or replace the rule for a category.

        Raises:
            ValidationError: If the category is empty or the threshold is negative
        """
        if not category_id:
            raise ValidationError("Category is required")
        if category_threshold is not None and category_threshold < 0:
            raise ValidationError("Category threshold must not be negative")

        rule = CategoryRule(
            category_id=category_id,
            restriction=CategoryRestriction(restriction),
            category_threshold=category_threshold,
            restriction_reason=restriction_reason,
        )
        self.get_settings(child_id)
        with self.locks.hold(child_id), self.db.transaction():
            self.db.upsert_category_rule(child_id, rule)
        return rule

    def remove_category_rule(self, child_id: str, category_id: str) -> None:
        """Remove the rule for a category.

        Raises:
            NotFoundError: If no rule exists for the category
        """
        self.get_settings(child_id)
        with self.locks.hold(child_id), self.db.transaction():
            if not self.db.delete_category_rule(child_id, category_id):
                raise NotFoundError(category_rule_not_found(child_id, category_id))

    def upsert_spending_limit(
        self,
        child_id: str,
        period: LimitPeriod,
        limit_amount: Decimal,
        includes_pending_requests: bool = True,
    ) -> SpendingLimit:
        """Create or replace the limit for a period.

        The tracker of the currently open window, if any, picks up the new
        limit immediately. Trackers of elapsed windows keep their snapshot.

        Raises:
            ValidationError: If the limit is negative
        """
        if limit_amount < 0:
            raise ValidationError("Spending limit must not be negative")

        limit = SpendingLimit(
            period=LimitPeriod(period),
            limit_amount=limit_amount,
            includes_pending_requests=includes_pending_requests,
        )
        self.get_settings(child_id)
        with self.locks.hold(child_id):
            with self.db.transaction():
                self.db.upsert_spending_limit(child_id, limit)
                window = window_for(limit.period, self.clock.now())
                tracker = self.db.get_tracker(child_id, limit.period, window.start)
                if tracker is not None:
                    self.db.set_tracker_limit(tracker.id, limit_amount)
        return limit

    def remove_spending_limit(self, child_id: str, period: LimitPeriod) -> None:
        """Remove the limit for a period.

        Raises:
            NotFoundError: If no limit exists for the period
        """
        self.get_settings(child_id)
        with self.locks.hold(child_id), self.db.transaction():
            if not self.db.delete_spending_limit(child_id, LimitPeriod(period)):
                raise NotFoundError(spending_limit_not_found(child_id, LimitPeriod(period).value))

    def _replace(self, child_id: str, **changes) -> ApprovalSettings:
        with self.locks.hold(child_id), self.db.transaction():
            settings = self.get_settings(child_id)
            return self.db.update_settings(dataclasses.replace(settings, **changes))
