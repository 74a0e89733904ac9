"""Shared domain error messages and error types."""

from decimal import Decimal


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class BlockedError(DomainError):
    """A spending policy denies the purchase.

    The reason is user-facing and is shown verbatim to the child.
    """

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class InvalidStateError(DomainError):
    """Transition attempted on a request that is no longer pending."""


class TransientError(DomainError):
    """Ledger or storage did not answer in time. Safe to retry."""


class InsufficientFundsError(DomainError):
    """The ledger refused a debit because the balance is too low."""


def settings_not_found(child_id: str) -> str:
    """Return message for missing approval settings."""
    return f"Approval settings for child '{child_id}' not found"


def settings_exist(child_id: str) -> str:
    """Return message when settings are created twice for a child."""
    return f"Approval settings for child '{child_id}' already exist"


def request_not_found(request_id: int) -> str:
    """Return message for missing spending request."""
    return f"Spending request {request_id} not found"


def request_not_pending(request_id: int, status: str) -> str:
    """Return message when a request has already left the pending state."""
    return f"Spending request {request_id} is no longer pending (status: {status})"


def category_rule_not_found(child_id: str, category_id: str) -> str:
    """Return message for missing category rule."""
    return f"No rule for category '{category_id}' on child '{child_id}'"


def spending_limit_not_found(child_id: str, period: str) -> str:
    """Return message for missing spending limit."""
    return f"No {period} spending limit configured for child '{child_id}'"


def insufficient_funds(child_id: str, balance: Decimal, amount: Decimal) -> str:
    """Return message when a debit exceeds the available balance."""
    return (
        f"Insufficient funds for child '{child_id}': "
        f"balance ${balance:,.2f}, requested ${amount:,.2f}"
    )


def limit_exceeded(period: str, limit_amount: Decimal, remaining: Decimal) -> str:
    """Return message when a purchase would go over a periodic limit."""
    return (
        f"Would exceed {period} limit of ${limit_amount:,.2f} "
        f"(${max(remaining, Decimal('0')):,.2f} remaining)"
    )
