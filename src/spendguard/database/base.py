"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import datetime
from decimal import Decimal
from typing import Optional

# Import entities directly to avoid circular import through domain/__init__.py
from spendguard.domain.entities import (
    ApprovalSettings,
    CategoryRule,
    LedgerReceipt,
    LimitPeriod,
    RequestStatus,
    SpendingLimit,
    SpendingLimitTracker,
    SpendingRequest,
)


class Database(ABC):
    """Abstract database interface for spendguard.

    Writes outside ``transaction()`` are committed immediately. Writes inside
    it commit together when the outermost block exits, or roll back together
    if it raises.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def transaction(self) -> AbstractContextManager[None]:
        """Group writes into one atomic unit. Nested blocks join the outer one."""
        pass

    # Approval settings operations
    @abstractmethod
    def get_settings(self, child_id: str) -> Optional[ApprovalSettings]:
        """Get settings with rules, limits and trusted categories loaded."""
        pass

    @abstractmethod
    def create_settings(self, settings: ApprovalSettings) -> ApprovalSettings:
        """Create settings for a child. Returns the stored settings."""
        pass

    @abstractmethod
    def update_settings(self, settings: ApprovalSettings) -> ApprovalSettings:
        """Overwrite scalar fields and trusted categories of existing settings."""
        pass

    @abstractmethod
    def upsert_category_rule(self, child_id: str, rule: CategoryRule) -> None:
        """Create or replace the rule for ``rule.category_id``."""
        pass

    @abstractmethod
    def delete_category_rule(self, child_id: str, category_id: str) -> bool:
        """Delete a category rule. Returns False if it did not exist."""
        pass

    @abstractmethod
    def upsert_spending_limit(self, child_id: str, limit: SpendingLimit) -> None:
        """Create or replace the limit for ``limit.period``."""
        pass

    @abstractmethod
    def delete_spending_limit(self, child_id: str, period: LimitPeriod) -> bool:
        """Delete a spending limit. Returns False if it did not exist."""
        pass

    # Tracker operations
    @abstractmethod
    def get_tracker(
        self, child_id: str, period: LimitPeriod, period_start: datetime
    ) -> Optional[SpendingLimitTracker]:
        """Get the tracker for one child, period and window start."""
        pass

    @abstractmethod
    def create_tracker(
        self,
        child_id: str,
        period: LimitPeriod,
        period_start: datetime,
        period_end: datetime,
        limit_amount: Decimal,
    ) -> SpendingLimitTracker:
        """Create an empty tracker for a window."""
        pass

    @abstractmethod
    def adjust_tracker(
        self,
        tracker_id: int,
        spent_delta: Decimal = Decimal("0"),
        pending_delta: Decimal = Decimal("0"),
    ) -> SpendingLimitTracker:
        """Add deltas to a tracker's totals, flooring both at zero."""
        pass

    @abstractmethod
    def set_tracker_limit(self, tracker_id: int, limit_amount: Decimal) -> None:
        """Replace a tracker's limit snapshot."""
        pass

    @abstractmethod
    def list_trackers(
        self, child_id: str, period: Optional[LimitPeriod] = None
    ) -> list[SpendingLimitTracker]:
        """List a child's trackers, newest window first."""
        pass

    @abstractmethod
    def delete_trackers_ended_before(self, cutoff: datetime) -> int:
        """Delete trackers whose window ended before ``cutoff``. Returns count."""
        pass

    # Spending request operations
    @abstractmethod
    def create_request(
        self,
        child_id: str,
        amount: Decimal,
        description: str,
        created_at: datetime,
        expires_at: datetime,
        category_id: Optional[str] = None,
        wish_list_item_id: Optional[str] = None,
        reserved_periods: frozenset[LimitPeriod] = frozenset(),
    ) -> int:
        """Create a pending spending request. Returns request ID."""
        pass

    @abstractmethod
    def get_request(self, request_id: int) -> Optional[SpendingRequest]:
        """Get spending request by ID."""
        pass

    @abstractmethod
    def list_requests(
        self,
        child_id: Optional[str] = None,
        status: Optional[RequestStatus] = None,
    ) -> list[SpendingRequest]:
        """List spending requests, newest first, optionally filtered."""
        pass

    @abstractmethod
    def list_expired_pending_requests(self, now: datetime) -> list[SpendingRequest]:
        """List pending requests whose ``expires_at`` is before ``now``."""
        pass

    @abstractmethod
    def update_request_status(
        self,
        request_id: int,
        status: RequestStatus,
        closed_at: datetime,
        responded_by: Optional[str] = None,
        parent_comment: Optional[str] = None,
        is_learning_moment: bool = False,
        transaction_id: Optional[str] = None,
    ) -> None:
        """Move a request to a new status and store response fields."""
        pass

    # Ledger operations
    @abstractmethod
    def get_balance(self, child_id: str) -> Decimal:
        """Get a child's balance (zero if never set)."""
        pass

    @abstractmethod
    def set_balance(self, child_id: str, balance: Decimal) -> None:
        """Set a child's balance."""
        pass

    @abstractmethod
    def record_debit(
        self,
        child_id: str,
        amount: Decimal,
        description: str,
        created_at: datetime,
        category_id: Optional[str] = None,
    ) -> LedgerReceipt:
        """Debit a child's balance and record the transaction.

        Raises:
            InsufficientFundsError: If the balance is lower than ``amount``
        """
        pass
