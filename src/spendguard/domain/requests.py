"""Spending request lifecycle domain service.

A request is created Pending and leaves that state exactly once, through
one of four events. Every transition runs under the child's lock and
re-reads the request inside the same database transaction that applies it,
so when approval, denial, cancellation and expiration race only the first
one succeeds.

Reservations follow the transitions: creating a request reserves its amount
on the limit trackers, and every terminal transition releases it. Approval
additionally debits the ledger and commits the amount as spent.
"""

import logging
from datetime import datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Any, Optional, assert_never

from spendguard.database.base import Database
from spendguard.domain.collaborators import Clock, Ledger, Notifier
from spendguard.domain.entities import (
    REQUEST_TRANSITIONS,
    ApprovalSettings,
    LedgerReceipt,
    RequestStatus,
    SpendingRequest,
)
from spendguard.domain.errors import (
    BlockedError,
    InvalidStateError,
    NotFoundError,
    TransientError,
    ValidationError,
    limit_exceeded,
    request_not_found,
    request_not_pending,
)
from spendguard.domain.evaluator import SpendingCheckService
from spendguard.domain.limits import LimitTrackerService
from spendguard.domain.policy import PolicyService
from spendguard.utils.child_locks import ChildLocks

logger = logging.getLogger(__name__)


class RequestEvent(str, Enum):
    """Events that move a request out of Pending."""

    APPROVE = "approve"
    DENY = "deny"
    CANCEL = "cancel"
    EXPIRE = "expire"


def target_status(event: RequestEvent) -> RequestStatus:
    """Return the status an event leads to."""
    match event:
        case RequestEvent.APPROVE:
            return RequestStatus.APPROVED
        case RequestEvent.DENY:
            return RequestStatus.DENIED
        case RequestEvent.CANCEL:
            return RequestStatus.CANCELLED
        case RequestEvent.EXPIRE:
            return RequestStatus.EXPIRED
        case _:
            assert_never(event)


def next_status(request: SpendingRequest, event: RequestEvent) -> RequestStatus:
    """Validate a transition and return the new status.

    Raises:
        InvalidStateError: If the request's status has no edge for the event
    """
    target = target_status(event)
    if target not in REQUEST_TRANSITIONS[request.status]:
        raise InvalidStateError(request_not_pending(request.id, request.status.value))
    return target


class RequestLifecycleService:
    """Service owning the spending request state machine."""

    def __init__(
        self,
        db: Database,
        policy: PolicyService,
        limits: LimitTrackerService,
        checker: SpendingCheckService,
        ledger: Ledger,
        notifier: Notifier,
        clock: Clock,
        locks: ChildLocks,
        ledger_timeout: float = 10.0,
    ):
        """Initialize request lifecycle service.

        Args:
            db: Database instance
            policy: Policy service
            limits: Limit tracker service
            checker: Spending check service
            ledger: Ledger collaborator that debits balances
            notifier: Notifier collaborator
            clock: Clock collaborator
            locks: Per-child lock registry
            ledger_timeout: Seconds a ledger debit may take
        """
        self.db = db
        self.policy = policy
        self.limits = limits
        self.checker = checker
        self.ledger = ledger
        self.notifier = notifier
        self.clock = clock
        self.locks = locks
        self.ledger_timeout = ledger_timeout

    def get_request(self, request_id: int) -> SpendingRequest:
        """Get a request by ID.

        Raises:
            NotFoundError: If the request does not exist
        """
        request = self.db.get_request(request_id)
        if request is None:
            raise NotFoundError(request_not_found(request_id))
        return request

    def list_requests(
        self, child_id: Optional[str] = None, status: Optional[RequestStatus] = None
    ) -> list[SpendingRequest]:
        """List requests, newest first."""
        return self.db.list_requests(child_id=child_id, status=status)

    def list_overdue_requests(self, now: datetime) -> list[SpendingRequest]:
        """List pending requests whose deadline is before ``now``."""
        return self.db.list_expired_pending_requests(now)

    def create_request(
        self,
        child_id: str,
        amount: Decimal,
        description: str,
        category_id: Optional[str] = None,
        wish_list_item_id: Optional[str] = None,
    ) -> SpendingRequest:
        """Ask a parent to approve a purchase.

        Args:
            child_id: Requesting child
            amount: Purchase amount
            description: What the money is for
            category_id: Optional spending category
            wish_list_item_id: Optional wish list or goal item the purchase is for

        Returns:
            The new Pending request

        Raises:
            ValidationError: If input is malformed or the purchase needs no approval
            BlockedError: If a policy rule denies the purchase
        """
        description = self._validate(amount, description)

        with self.locks.hold(child_id):
            with self.db.transaction():
                now = self.clock.now()
                result = self.checker.check_spending(
                    child_id, amount, category_id, at=now, for_request=True
                )
                if not result.can_spend:
                    raise BlockedError(result.block_reason)
                if not result.requires_approval:
                    raise ValidationError(
                        "This purchase does not require approval; spend directly instead"
                    )

                settings = self.policy.get_settings(child_id)
                reserved = self.limits.reserve(child_id, amount, now)
                request_id = self.db.create_request(
                    child_id=child_id,
                    amount=amount,
                    description=description,
                    created_at=now,
                    expires_at=now + timedelta(hours=settings.request_expiration_hours),
                    category_id=category_id,
                    wish_list_item_id=wish_list_item_id,
                    reserved_periods=reserved,
                )
                request = self.get_request(request_id)

        logger.info("request %d created for child %s: %s", request.id, child_id, amount)
        self._notify_family(
            settings,
            f"{child_id} is asking to spend ${amount:,.2f}: {description}",
            self._payload(request, warnings=list(result.warnings)),
        )
        return request

    def respond(
        self,
        request_id: int,
        approved: bool,
        responded_by: Optional[str] = None,
        comment: Optional[str] = None,
        is_learning_moment: bool = False,
    ) -> SpendingRequest:
        """Approve or deny a pending request.

        Approval debits the ledger before anything is persisted. If the
        debit fails the request stays Pending and its reservation stays in
        place.

        Raises:
            NotFoundError: If the request does not exist
            InvalidStateError: If the request is no longer pending
            InsufficientFundsError: If the ledger refuses the debit
            TransientError: If the ledger or storage timed out
            BlockedError: If approval would push committed spend over a limit
                that does not track pending requests
        """
        child_id = self.get_request(request_id).child_id
        event = RequestEvent.APPROVE if approved else RequestEvent.DENY

        with self.locks.hold(child_id):
            with self.db.transaction():
                request = self.get_request(request_id)
                status = next_status(request, event)
                now = self.clock.now()

                self.limits.release(
                    child_id, request.amount, at=request.created_at,
                    periods=request.reserved_periods, now=now,
                )
                transaction_id = None
                if approved:
                    self._enforce_committed_limits(request, now)
                    receipt = self._debit(child_id, request.amount, request.description, request.category_id)
                    transaction_id = receipt.transaction_id
                    self.limits.commit(child_id, request.amount, at=now)

                self.db.update_request_status(
                    request_id,
                    status,
                    closed_at=now,
                    responded_by=responded_by,
                    parent_comment=comment,
                    is_learning_moment=is_learning_moment,
                    transaction_id=transaction_id,
                )
                request = self.get_request(request_id)

        logger.info("request %d %s by %s", request_id, status.value, responded_by or "parent")
        verb = "approved" if approved else "denied"
        self._notify_child(
            child_id,
            f"Your request for ${request.amount:,.2f} was {verb}",
            self._payload(request),
        )
        return request

    def cancel(self, request_id: int, child_id: str) -> SpendingRequest:
        """Withdraw a pending request. Only the requesting child may cancel.

        Raises:
            NotFoundError: If the request does not exist
            ValidationError: If another child tries to cancel
            InvalidStateError: If the request is no longer pending
        """
        if self.get_request(request_id).child_id != child_id:
            raise ValidationError("Only the child who made the request can cancel it")

        with self.locks.hold(child_id):
            with self.db.transaction():
                request = self.get_request(request_id)
                status = next_status(request, RequestEvent.CANCEL)
                now = self.clock.now()
                self.limits.release(
                    child_id, request.amount, at=request.created_at,
                    periods=request.reserved_periods, now=now,
                )
                self.db.update_request_status(request_id, status, closed_at=now)
                request = self.get_request(request_id)

        logger.info("request %d cancelled by child %s", request_id, child_id)
        return request

    def expire(self, request_id: int) -> Optional[SpendingRequest]:
        """Expire a request whose deadline has passed.

        Losing a race against a response or cancellation is not an error.

        Returns:
            The expired request, or None if it was not pending or not yet due
        """
        child_id = self.get_request(request_id).child_id

        with self.locks.hold(child_id):
            with self.db.transaction():
                request = self.get_request(request_id)
                now = self.clock.now()
                if not request.is_pending or request.expires_at >= now:
                    logger.debug("request %d not expirable (status %s)", request_id, request.status.value)
                    return None
                status = next_status(request, RequestEvent.EXPIRE)
                self.limits.release(
                    child_id, request.amount, at=request.created_at,
                    periods=request.reserved_periods, now=now,
                )
                self.db.update_request_status(request_id, status, closed_at=now)
                request = self.get_request(request_id)

        logger.info("request %d expired", request_id)
        self._notify_child(
            child_id,
            f"Your request for ${request.amount:,.2f} expired without an answer",
            self._payload(request),
        )
        return request

    def spend_directly(
        self,
        child_id: str,
        amount: Decimal,
        description: str,
        category_id: Optional[str] = None,
    ) -> LedgerReceipt:
        """Spend without a request when the policy allows it outright.

        Raises:
            ValidationError: If input is malformed
            BlockedError: If a policy rule denies the purchase
            InvalidStateError: If the purchase needs parent approval
            InsufficientFundsError: If the ledger refuses the debit
            TransientError: If the ledger or storage timed out
        """
        description = self._validate(amount, description)

        with self.locks.hold(child_id):
            with self.db.transaction():
                now = self.clock.now()
                result = self.checker.check_spending(child_id, amount, category_id, at=now)
                if not result.can_spend:
                    raise BlockedError(result.block_reason)
                if result.requires_approval:
                    raise InvalidStateError(
                        "This purchase needs parent approval; create a request instead"
                    )
                receipt = self._debit(child_id, amount, description, category_id)
                self.limits.commit(child_id, amount, at=now)

        logger.info("child %s spent %s directly (transaction %s)", child_id, amount, receipt.transaction_id)
        return receipt

    def _validate(self, amount: Decimal, description: str) -> str:
        if amount is None or amount <= 0:
            raise ValidationError("Amount must be greater than zero")
        description = (description or "").strip()
        if not description:
            raise ValidationError("Description is required")
        return description

    def _enforce_committed_limits(self, request: SpendingRequest, now: datetime) -> None:
        """Re-check limits that ignore pending requests against committed spend."""
        settings = self.policy.get_settings(request.child_id)
        for limit in settings.spending_limits:
            if limit.includes_pending_requests:
                continue
            tracker = self.limits.get_or_create_window(request.child_id, limit.period, now, limit)
            if tracker.spent_amount + request.amount > tracker.limit_amount:
                raise BlockedError(
                    limit_exceeded(
                        limit.period.value,
                        tracker.limit_amount,
                        tracker.limit_amount - tracker.spent_amount,
                    )
                )

    def _debit(
        self, child_id: str, amount: Decimal, description: str, category_id: Optional[str]
    ) -> LedgerReceipt:
        try:
            return self.ledger.debit(
                child_id=child_id,
                amount=amount,
                description=description,
                category_id=category_id,
                timeout=self.ledger_timeout,
            )
        except TimeoutError as e:
            raise TransientError(f"Ledger did not respond within {self.ledger_timeout}s") from e

    def _payload(self, request: SpendingRequest, **extra: Any) -> dict[str, Any]:
        payload = {
            "request_id": request.id,
            "child_id": request.child_id,
            "amount": str(request.amount),
            "description": request.description,
            "category_id": request.category_id,
            "status": request.status.value,
        }
        if request.parent_comment:
            payload["parent_comment"] = request.parent_comment
            payload["is_learning_moment"] = request.is_learning_moment
        payload.update(extra)
        return payload

    def _notify_family(self, settings: ApprovalSettings, message: str, payload: dict[str, Any]) -> None:
        if settings.family_id is None:
            logger.info("child %s has no family configured; skipping parent notification", settings.child_id)
            return
        try:
            self.notifier.notify_family(settings.family_id, message, payload)
        except Exception:
            logger.warning("failed to notify family %s", settings.family_id, exc_info=True)

    def _notify_child(self, child_id: str, message: str, payload: dict[str, Any]) -> None:
        try:
            self.notifier.notify_child(child_id, message, payload)
        except Exception:
            logger.warning("failed to notify child %s", child_id, exc_info=True)
