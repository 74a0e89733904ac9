"""Interfaces for the engine's external collaborators.

The engine never moves money or delivers messages itself. It calls a
ledger to debit a child's balance, a notifier to tell parents and children
what happened, and a clock to learn the current time.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, UTC
from decimal import Decimal
from typing import Any, Optional

from spendguard.database.base import Database
from spendguard.domain.entities import LedgerReceipt

logger = logging.getLogger(__name__)


class Clock(ABC):
    """Source of the current time."""

    @abstractmethod
    def now(self) -> datetime:
        """Return the current time as an aware UTC datetime."""
        pass


class SystemClock(Clock):
    """Wall clock."""

    def now(self) -> datetime:
        return datetime.now(UTC)


class Ledger(ABC):
    """Transaction system that actually moves money."""

    @abstractmethod
    def debit(
        self,
        child_id: str,
        amount: Decimal,
        description: str,
        category_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> LedgerReceipt:
        """Debit a child's balance.

        Args:
            child_id: Child to debit
            amount: Positive amount
            description: Transaction description
            category_id: Optional spending category
            timeout: Seconds to wait before giving up

        Returns:
            LedgerReceipt with the transaction id and new balance

        Raises:
            InsufficientFundsError: If the balance is too low
            TimeoutError: If the ledger did not answer within ``timeout``
        """
        pass


class Notifier(ABC):
    """Fire-and-forget message delivery."""

    @abstractmethod
    def notify_family(self, family_id: str, message: str, payload: dict[str, Any]) -> None:
        """Send a message to every parent in a family."""
        pass

    @abstractmethod
    def notify_child(self, child_id: str, message: str, payload: dict[str, Any]) -> None:
        """Send a message to a child."""
        pass


class LoggingNotifier(Notifier):
    """Notifier that writes messages to the log."""

    def notify_family(self, family_id: str, message: str, payload: dict[str, Any]) -> None:
        logger.info("family %s: %s %s", family_id, message, payload)

    def notify_child(self, child_id: str, message: str, payload: dict[str, Any]) -> None:
        logger.info("child %s: %s %s", child_id, message, payload)


class DatabaseLedger(Ledger):
    """Ledger backed by the balances table of a spendguard database."""

    def __init__(self, db: Database, clock: Optional[Clock] = None):
        """Initialize database ledger.

        Args:
            db: Database instance
            clock: Clock used to timestamp debits
        """
        self.db = db
        self.clock = clock or SystemClock()

    def debit(
        self,
        child_id: str,
        amount: Decimal,
        description: str,
        category_id: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> LedgerReceipt:
        # Local writes are bounded by the database's own lock timeout
        return self.db.record_debit(
            child_id=child_id,
            amount=amount,
            description=description,
            created_at=self.clock.now(),
            category_id=category_id,
        )
