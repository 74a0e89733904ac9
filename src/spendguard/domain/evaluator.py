"""Spending check evaluation.

``evaluate_spending`` is a pure function over a settings snapshot and the
current limit trackers. ``SpendingCheckService`` loads those inputs and
materializes missing tracker windows before calling it.

Rules are applied in this order, the first denial wins:

1. Governance disabled: allow without approval.
2. Paused: deny with the pause reason.
3. Over the maximum single purchase: deny.
4. Category rule: blocked denies, requires-approval forces approval,
   an amount over the category threshold forces approval, and
   otherwise the category threshold replaces the global threshold.
5. Spending limits: deny when the projected total exceeds a limit, warn
   when it passes the warning ratio.
6. Threshold: approval is required above the applicable threshold.
7. Trusted categories waive global threshold approval only.
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Mapping, Optional

from spendguard.database.base import Database
from spendguard.domain.collaborators import Clock
from spendguard.domain.entities import (
    ApprovalSettings,
    CategoryRestriction,
    CheckResult,
    LimitPeriod,
    SpendingLimitTracker,
)
from spendguard.domain.errors import ValidationError, limit_exceeded
from spendguard.domain.limits import LimitTrackerService
from spendguard.domain.policy import PolicyService
from spendguard.utils.child_locks import ChildLocks

logger = logging.getLogger(__name__)

DEFAULT_WARNING_RATIO = Decimal("0.8")


def evaluate_spending(
    settings: ApprovalSettings,
    trackers: Mapping[LimitPeriod, SpendingLimitTracker],
    amount: Decimal,
    category_id: Optional[str] = None,
    warning_ratio: Decimal = DEFAULT_WARNING_RATIO,
    for_request: bool = False,
) -> CheckResult:
    """Decide whether a child may spend ``amount`` in ``category_id``.

    Args:
        settings: Materialized approval settings
        trackers: Current tracker for every configured limit period
        amount: Proposed purchase amount
        category_id: Optional spending category
        warning_ratio: Usage share above which a limit adds a warning
        for_request: When True, limits that do not track pending requests
            only warn; they are enforced again when the request is approved

    Returns:
        CheckResult
    """
    if not settings.is_enabled:
        return CheckResult(can_spend=True, requires_approval=False)

    if settings.is_paused:
        return _deny(settings.pause_reason or "Spending is currently paused")

    if settings.max_single_purchase is not None and amount > settings.max_single_purchase:
        return _deny(
            f"Amount ${amount:,.2f} exceeds the maximum single purchase "
            f"of ${settings.max_single_purchase:,.2f}"
        )

    forced_approval = False
    threshold = settings.approval_threshold
    rule = settings.rule_for(category_id)
    if rule is not None:
        if rule.restriction == CategoryRestriction.BLOCKED:
            return _deny(rule.restriction_reason or f"Purchases in '{rule.category_id}' are blocked")
        if rule.restriction == CategoryRestriction.REQUIRES_APPROVAL:
            forced_approval = True
        if rule.category_threshold is not None:
            threshold = rule.category_threshold
            if amount > rule.category_threshold:
                forced_approval = True

    warnings = []
    for limit in settings.spending_limits:
        tracker = trackers[limit.period]
        projected = tracker.spent_amount + tracker.pending_amount + amount
        if projected > tracker.limit_amount:
            message = limit_exceeded(
                limit.period.value, tracker.limit_amount, tracker.remaining_amount
            )
            if for_request and not limit.includes_pending_requests:
                warnings.append(f"{message}; the limit is checked again on approval")
                continue
            return _deny(message, warnings)
        if tracker.limit_amount > 0 and projected / tracker.limit_amount > warning_ratio:
            used = projected / tracker.limit_amount * 100
            warnings.append(
                f"This purchase would use {used:.0f}% of the {limit.period.value} limit "
                f"of ${tracker.limit_amount:,.2f}"
            )

    if forced_approval:
        # Trusted categories never waive approval forced by a category rule
        requires_approval = True
    else:
        requires_approval = amount > threshold or not settings.auto_approve_under_threshold
        if (
            requires_approval
            and settings.auto_approve_trusted_categories
            and category_id in settings.trusted_category_ids
        ):
            requires_approval = False

    return CheckResult(can_spend=True, requires_approval=requires_approval, warnings=tuple(warnings))


def _deny(reason: str, warnings: Optional[list[str]] = None) -> CheckResult:
    return CheckResult(
        can_spend=False,
        requires_approval=False,
        block_reason=reason,
        warnings=tuple(warnings or ()),
    )


class SpendingCheckService:
    """Service answering "can this child spend this amount?"."""

    def __init__(
        self,
        db: Database,
        policy: PolicyService,
        limits: LimitTrackerService,
        clock: Clock,
        locks: ChildLocks,
        warning_ratio: Decimal = DEFAULT_WARNING_RATIO,
    ):
        """Initialize spending check service.

        Args:
            db: Database instance
            policy: Policy service
            limits: Limit tracker service
            clock: Clock collaborator
            locks: Per-child lock registry
            warning_ratio: Usage share above which a limit adds a warning
        """
        self.db = db
        self.policy = policy
        self.limits = limits
        self.clock = clock
        self.locks = locks
        self.warning_ratio = warning_ratio

    def check_spending(
        self,
        child_id: str,
        amount: Decimal,
        category_id: Optional[str] = None,
        at: Optional[datetime] = None,
        for_request: bool = False,
    ) -> CheckResult:
        """Evaluate a proposed purchase.

        The only side effect is creating missing tracker windows.

        Raises:
            ValidationError: If the amount is not positive
        """
        if amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        at = at or self.clock.now()

        with self.locks.hold(child_id), self.db.transaction():
            settings = self.policy.get_settings(child_id)
            trackers = self.limits.current_trackers(settings, at) if settings.is_enabled else {}
            result = evaluate_spending(
                settings,
                trackers,
                amount,
                category_id=category_id,
                warning_ratio=self.warning_ratio,
                for_request=for_request,
            )

        if not result.can_spend:
            logger.info("spend of %s by child %s blocked: %s", amount, child_id, result.block_reason)
        return result
