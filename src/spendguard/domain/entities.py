"""Domain model entities for spendguard.

These are pure data classes representing the spending-governance concepts,
independent of database schema. Storage adapters map their rows into these
snapshots so the rule evaluator and the request state machine never see ORM
objects or lazy collections.
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class LimitPeriod(str, Enum):
    """Period a spending limit covers."""

    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class CategoryRestriction(str, Enum):
    """How a category is treated when a child spends in it."""

    ALLOWED = "allowed"
    REQUIRES_APPROVAL = "requires_approval"
    BLOCKED = "blocked"


class RequestStatus(str, Enum):
    """Spending request lifecycle states."""

    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"
    CANCELLED = "cancelled"
    EXPIRED = "expired"

    @property
    def is_terminal(self) -> bool:
        return not REQUEST_TRANSITIONS[self]


# Terminal states have no outgoing edges.
REQUEST_TRANSITIONS: dict[RequestStatus, frozenset[RequestStatus]] = {
    RequestStatus.PENDING: frozenset(
        {
            RequestStatus.APPROVED,
            RequestStatus.DENIED,
            RequestStatus.CANCELLED,
            RequestStatus.EXPIRED,
        }
    ),
    RequestStatus.APPROVED: frozenset(),
    RequestStatus.DENIED: frozenset(),
    RequestStatus.CANCELLED: frozenset(),
    RequestStatus.EXPIRED: frozenset(),
}


@dataclass(frozen=True)
class CategoryRule:
    """Per-category restriction attached to a child's approval settings."""

    category_id: str
    restriction: CategoryRestriction = CategoryRestriction.ALLOWED
    category_threshold: Optional[Decimal] = None
    restriction_reason: Optional[str] = None


@dataclass(frozen=True)
class SpendingLimit:
    """Periodic spending cap attached to a child's approval settings."""

    period: LimitPeriod
    limit_amount: Decimal
    includes_pending_requests: bool = True


@dataclass(frozen=True)
class ApprovalSettings:
    """Fully materialized approval policy for one child.

    Category rules, spending limits and trusted categories are loaded
    together with the settings row; there is no lazy loading.
    """

    child_id: str
    family_id: Optional[str] = None
    is_enabled: bool = True
    is_paused: bool = False
    pause_reason: Optional[str] = None
    approval_threshold: Decimal = Decimal("10.00")
    max_single_purchase: Optional[Decimal] = None
    auto_approve_under_threshold: bool = True
    auto_approve_trusted_categories: bool = False
    trusted_category_ids: frozenset[str] = frozenset()
    request_expiration_hours: int = 72
    category_rules: tuple[CategoryRule, ...] = ()
    spending_limits: tuple[SpendingLimit, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def rule_for(self, category_id: Optional[str]) -> Optional[CategoryRule]:
        """Return the rule for a category, or None."""
        if category_id is None:
            return None
        for rule in self.category_rules:
            if rule.category_id == category_id:
                return rule
        return None

    def limit_for(self, period: LimitPeriod) -> Optional[SpendingLimit]:
        """Return the configured limit for a period, or None."""
        for limit in self.spending_limits:
            if limit.period == period:
                return limit
        return None


@dataclass(frozen=True)
class PeriodWindow:
    """Concrete [start, end) range a limit period covers."""

    period: LimitPeriod
    start: datetime
    end: datetime

    def contains(self, at: datetime) -> bool:
        return self.start <= at < self.end


@dataclass(frozen=True)
class SpendingLimitTracker:
    """Running totals for one child, period and window."""

    id: int
    child_id: str
    period: LimitPeriod
    period_start: datetime
    period_end: datetime
    spent_amount: Decimal
    pending_amount: Decimal
    limit_amount: Decimal
    created_at: datetime
    updated_at: datetime

    @property
    def remaining_amount(self) -> Decimal:
        return self.limit_amount - self.spent_amount - self.pending_amount

    @property
    def percent_used(self) -> Decimal:
        """Share of the limit committed or reserved (1 means fully used)."""
        used = self.spent_amount + self.pending_amount
        if self.limit_amount == 0:
            return Decimal("1") if used > 0 else Decimal("0")
        return used / self.limit_amount

    @property
    def window(self) -> PeriodWindow:
        return PeriodWindow(self.period, self.period_start, self.period_end)


@dataclass(frozen=True)
class SpendingRequest:
    """A child's request for a parent to approve a purchase."""

    id: int
    child_id: str
    amount: Decimal
    description: str
    status: RequestStatus
    created_at: datetime
    expires_at: datetime
    category_id: Optional[str] = None
    wish_list_item_id: Optional[str] = None
    reserved_periods: frozenset[LimitPeriod] = frozenset()
    responded_by: Optional[str] = None
    responded_at: Optional[datetime] = None
    parent_comment: Optional[str] = None
    is_learning_moment: bool = False
    transaction_id: Optional[str] = None
    closed_at: Optional[datetime] = None

    @property
    def is_pending(self) -> bool:
        return self.status == RequestStatus.PENDING


@dataclass(frozen=True)
class CheckResult:
    """Outcome of evaluating a proposed purchase against a child's policy."""

    can_spend: bool
    requires_approval: bool
    block_reason: Optional[str] = None
    warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class LimitStatus:
    """Current usage of one configured spending limit."""

    period: LimitPeriod
    limit_amount: Decimal
    spent_amount: Decimal
    pending_amount: Decimal
    remaining_amount: Decimal
    percent_used: Decimal
    period_start: datetime
    period_end: datetime
    includes_pending_requests: bool


@dataclass(frozen=True)
class LedgerReceipt:
    """Result of a successful ledger debit."""

    transaction_id: str
    new_balance: Decimal


@dataclass(frozen=True)
class SweepReport:
    """Summary of one expiration sweep."""

    started_at: datetime
    expired_ids: tuple[int, ...] = ()
    failed: dict[int, str] = field(default_factory=dict)
    skipped: int = 0
    trackers_removed: int = 0
