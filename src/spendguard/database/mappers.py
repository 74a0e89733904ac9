"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic, including the naive-UTC storage
representation of datetimes and the comma-joined reserved period list.
"""

from datetime import datetime, UTC
from typing import Optional

from spendguard.domain import entities as domain
from spendguard.database.models import (
    ApprovalSettings as ORMApprovalSettings,
    CategoryRule as ORMCategoryRule,
    SpendingLimit as ORMSpendingLimit,
    SpendingLimitTracker as ORMSpendingLimitTracker,
    SpendingRequest as ORMSpendingRequest,
)


def to_storage_datetime(value: datetime) -> datetime:
    """Convert an aware datetime to naive UTC for storage."""
    if value.tzinfo is None:
        return value
    return value.astimezone(UTC).replace(tzinfo=None)


def from_storage_datetime(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to a stored naive datetime."""
    if value is None:
        return None
    return value.replace(tzinfo=UTC)


def periods_to_storage(periods: frozenset[domain.LimitPeriod]) -> str:
    """Serialize reserved periods in a stable order."""
    return ",".join(sorted(p.value for p in periods))


def periods_from_storage(value: Optional[str]) -> frozenset[domain.LimitPeriod]:
    """Parse a comma-joined period list."""
    if not value:
        return frozenset()
    return frozenset(domain.LimitPeriod(part) for part in value.split(","))


def category_rule_to_domain(orm_rule: ORMCategoryRule) -> domain.CategoryRule:
    """Convert SQLAlchemy CategoryRule model to domain CategoryRule entity."""
    return domain.CategoryRule(
        category_id=orm_rule.category_id,
        restriction=domain.CategoryRestriction(orm_rule.restriction),
        category_threshold=orm_rule.category_threshold,
        restriction_reason=orm_rule.restriction_reason,
    )


def spending_limit_to_domain(orm_limit: ORMSpendingLimit) -> domain.SpendingLimit:
    """Convert SQLAlchemy SpendingLimit model to domain SpendingLimit entity."""
    return domain.SpendingLimit(
        period=domain.LimitPeriod(orm_limit.period),
        limit_amount=orm_limit.limit_amount,
        includes_pending_requests=orm_limit.includes_pending_requests,
    )


def settings_to_domain(orm_settings: ORMApprovalSettings) -> domain.ApprovalSettings:
    """Convert SQLAlchemy ApprovalSettings (with owned collections) to a snapshot."""
    return domain.ApprovalSettings(
        child_id=orm_settings.child_id,
        family_id=orm_settings.family_id,
        is_enabled=orm_settings.is_enabled,
        is_paused=orm_settings.is_paused,
        pause_reason=orm_settings.pause_reason,
        approval_threshold=orm_settings.approval_threshold,
        max_single_purchase=orm_settings.max_single_purchase,
        auto_approve_under_threshold=orm_settings.auto_approve_under_threshold,
        auto_approve_trusted_categories=orm_settings.auto_approve_trusted_categories,
        trusted_category_ids=frozenset(t.category_id for t in orm_settings.trusted_categories),
        request_expiration_hours=orm_settings.request_expiration_hours,
        category_rules=tuple(
            category_rule_to_domain(rule)
            for rule in sorted(orm_settings.category_rules, key=lambda r: r.category_id)
        ),
        spending_limits=tuple(
            spending_limit_to_domain(limit)
            for limit in sorted(orm_settings.spending_limits, key=lambda l: l.period)
        ),
        created_at=from_storage_datetime(orm_settings.created_at),
        updated_at=from_storage_datetime(orm_settings.updated_at),
    )


def tracker_to_domain(orm_tracker: ORMSpendingLimitTracker) -> domain.SpendingLimitTracker:
    """Convert SQLAlchemy SpendingLimitTracker model to domain entity."""
    return domain.SpendingLimitTracker(
        id=orm_tracker.id,
        child_id=orm_tracker.child_id,
        period=domain.LimitPeriod(orm_tracker.period),
        period_start=from_storage_datetime(orm_tracker.period_start),
        period_end=from_storage_datetime(orm_tracker.period_end),
        spent_amount=orm_tracker.spent_amount,
        pending_amount=orm_tracker.pending_amount,
        limit_amount=orm_tracker.limit_amount,
        created_at=from_storage_datetime(orm_tracker.created_at),
        updated_at=from_storage_datetime(orm_tracker.updated_at),
    )


def request_to_domain(orm_request: ORMSpendingRequest) -> domain.SpendingRequest:
    """Convert SQLAlchemy SpendingRequest model to domain SpendingRequest entity."""
    return domain.SpendingRequest(
        id=orm_request.id,
        child_id=orm_request.child_id,
        amount=orm_request.amount,
        description=orm_request.description,
        status=domain.RequestStatus(orm_request.status),
        created_at=from_storage_datetime(orm_request.created_at),
        expires_at=from_storage_datetime(orm_request.expires_at),
        category_id=orm_request.category_id,
        wish_list_item_id=orm_request.wish_list_item_id,
        reserved_periods=periods_from_storage(orm_request.reserved_periods),
        responded_by=orm_request.responded_by,
        responded_at=from_storage_datetime(orm_request.responded_at),
        parent_comment=orm_request.parent_comment,
        is_learning_moment=orm_request.is_learning_moment,
        transaction_id=orm_request.transaction_id,
        closed_at=from_storage_datetime(orm_request.closed_at),
    )
