"""Shared pytest fixtures for spendguard tests."""

import os
import tempfile
from datetime import datetime, timedelta, UTC
from decimal import Decimal
from typing import Optional

import pytest

from spendguard.database.factories import create_sqlite_database
from spendguard.domain.collaborators import Clock, Ledger, Notifier
from spendguard.domain.engine import SpendingEngine
from spendguard.domain.entities import LedgerReceipt
from spendguard.domain.errors import InsufficientFundsError, insufficient_funds

# A Wednesday; the weekly window runs Monday 2024-01-08 to Monday 2024-01-15
START = datetime(2024, 1, 10, 12, 0, tzinfo=UTC)


class FrozenClock(Clock):
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = START):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        self.current = self.current + timedelta(**kwargs)
        return self.current


class FakeLedger(Ledger):
    """In-memory ledger recording every debit."""

    def __init__(self):
        self.balances: dict[str, Decimal] = {}
        self.debits: list[tuple[str, Decimal, str]] = []
        self.error: Optional[Exception] = None

    def debit(self, child_id, amount, description, category_id=None, timeout=None) -> LedgerReceipt:
        if self.error is not None:
            raise self.error
        balance = self.balances.get(child_id, Decimal("0.00"))
        if balance < amount:
            raise InsufficientFundsError(insufficient_funds(child_id, balance, amount))
        self.balances[child_id] = balance - amount
        self.debits.append((child_id, amount, description))
        return LedgerReceipt(
            transaction_id=f"txn-{len(self.debits)}", new_balance=self.balances[child_id]
        )


class RecordingNotifier(Notifier):
    """Notifier that keeps messages for assertions."""

    def __init__(self):
        self.family_messages: list[tuple[str, str, dict]] = []
        self.child_messages: list[tuple[str, str, dict]] = []
        self.fail = False

    def notify_family(self, family_id, message, payload):
        if self.fail:
            raise RuntimeError("notification service unavailable")
        self.family_messages.append((family_id, message, payload))

    def notify_child(self, child_id, message, payload):
        if self.fail:
            raise RuntimeError("notification service unavailable")
        self.child_messages.append((child_id, message, payload))


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for CLI tests
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def ledger():
    ledger = FakeLedger()
    ledger.balances["kid"] = Decimal("100.00")
    return ledger


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(temp_db, ledger, notifier, clock):
    """Create a SpendingEngine wired to fakes and a temporary database."""
    return SpendingEngine(temp_db, ledger=ledger, notifier=notifier, clock=clock)


@pytest.fixture
def policy(engine):
    return engine.policy


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()
