"""Spending-governance engine facade.

Wires the policy, limit tracker, evaluator, request lifecycle and sweeper
services around one database, one set of collaborators and one per-child
lock registry, and exposes the operations the API layer calls.
"""

from decimal import Decimal
from typing import Optional

from spendguard.config import EngineConfig
from spendguard.database.base import Database
from spendguard.domain.collaborators import (
    Clock,
    DatabaseLedger,
    Ledger,
    LoggingNotifier,
    Notifier,
    SystemClock,
)
from spendguard.domain.entities import (
    CheckResult,
    LedgerReceipt,
    LimitPeriod,
    LimitStatus,
    RequestStatus,
    SpendingLimitTracker,
    SpendingRequest,
)
from spendguard.domain.evaluator import SpendingCheckService
from spendguard.domain.limits import LimitTrackerService
from spendguard.domain.policy import PolicyService
from spendguard.domain.requests import RequestLifecycleService
from spendguard.domain.sweeper import ExpirationSweeper
from spendguard.utils.child_locks import ChildLocks


class SpendingEngine:
    """Entry point for the spending-governance engine.

    Policy editing is available through ``engine.policy``; the request and
    check operations are methods on the engine itself.
    """

    def __init__(
        self,
        db: Database,
        ledger: Optional[Ledger] = None,
        notifier: Optional[Notifier] = None,
        clock: Optional[Clock] = None,
        config: Optional[EngineConfig] = None,
    ):
        """Initialize the engine.

        Args:
            db: Database instance
            ledger: Ledger collaborator, defaults to the database's own balances
            notifier: Notifier collaborator, defaults to logging
            clock: Clock collaborator, defaults to the system clock
            config: Engine configuration
        """
        self.db = db
        self.config = config or EngineConfig()
        self.clock = clock or SystemClock()
        self.ledger = ledger or DatabaseLedger(db, self.clock)
        self.notifier = notifier or LoggingNotifier()
        self.locks = ChildLocks()

        self.policy = PolicyService(db, self.config, self.locks, self.clock)
        self.limits = LimitTrackerService(db, self.policy)
        self.checker = SpendingCheckService(
            db, self.policy, self.limits, self.clock, self.locks, self.config.warning_ratio
        )
        self.lifecycle = RequestLifecycleService(
            db,
            self.policy,
            self.limits,
            self.checker,
            self.ledger,
            self.notifier,
            self.clock,
            self.locks,
            ledger_timeout=self.config.ledger_timeout_seconds,
        )
        self.sweeper = ExpirationSweeper(
            self.lifecycle,
            self.limits,
            self.clock,
            interval=self.config.sweep_interval_seconds,
            tracker_retention_days=self.config.tracker_retention_days,
        )

    def check_spending(
        self, child_id: str, amount: Decimal, category_id: Optional[str] = None
    ) -> CheckResult:
        """Evaluate a proposed purchase against the child's policy."""
        return self.checker.check_spending(child_id, amount, category_id)

    def create_request(
        self,
        child_id: str,
        amount: Decimal,
        description: str,
        category_id: Optional[str] = None,
        wish_list_item_id: Optional[str] = None,
    ) -> SpendingRequest:
        """Ask a parent to approve a purchase."""
        return self.lifecycle.create_request(
            child_id, amount, description, category_id, wish_list_item_id
        )

    def respond_to_request(
        self,
        request_id: int,
        approved: bool,
        responded_by: Optional[str] = None,
        comment: Optional[str] = None,
        is_learning_moment: bool = False,
    ) -> SpendingRequest:
        """Approve or deny a pending request."""
        return self.lifecycle.respond(
            request_id, approved, responded_by, comment, is_learning_moment
        )

    def cancel_request(self, request_id: int, child_id: str) -> SpendingRequest:
        """Withdraw a pending request on behalf of the child who made it."""
        return self.lifecycle.cancel(request_id, child_id)

    def expire_request(self, request_id: int) -> Optional[SpendingRequest]:
        """Expire one overdue request. Returns None when nothing changed."""
        return self.lifecycle.expire(request_id)

    def spend(
        self,
        child_id: str,
        amount: Decimal,
        description: str,
        category_id: Optional[str] = None,
    ) -> LedgerReceipt:
        """Spend directly when no approval is needed."""
        return self.lifecycle.spend_directly(child_id, amount, description, category_id)

    def get_request(self, request_id: int) -> SpendingRequest:
        return self.lifecycle.get_request(request_id)

    def list_requests(
        self, child_id: Optional[str] = None, status: Optional[RequestStatus] = None
    ) -> list[SpendingRequest]:
        return self.lifecycle.list_requests(child_id, status)

    def get_limit_statuses(self, child_id: str) -> list[LimitStatus]:
        """Describe current usage of every configured limit."""
        with self.locks.hold(child_id):
            return self.limits.get_limit_statuses(child_id, self.clock.now())

    def get_tracker_history(
        self, child_id: str, period: Optional[LimitPeriod] = None
    ) -> list[SpendingLimitTracker]:
        return self.limits.get_tracker_history(child_id, period)
