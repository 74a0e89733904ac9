"""Tests for database mappers."""

from datetime import datetime, timezone, timedelta, UTC
from decimal import Decimal

from spendguard.database.mappers import (
    from_storage_datetime,
    periods_from_storage,
    periods_to_storage,
    request_to_domain,
    to_storage_datetime,
)
from spendguard.database.models import SpendingRequest as ORMSpendingRequest
from spendguard.domain.entities import LimitPeriod, RequestStatus


class TestDatetimeMapping:
    """Datetimes are stored as naive UTC."""

    def test_aware_datetime_is_converted_to_naive_utc(self):
        local = datetime(2024, 1, 10, 7, 0, tzinfo=timezone(timedelta(hours=-5)))
        assert to_storage_datetime(local) == datetime(2024, 1, 10, 12, 0)

    def test_stored_datetime_gets_utc(self):
        assert from_storage_datetime(datetime(2024, 1, 10, 12, 0)) == datetime(
            2024, 1, 10, 12, 0, tzinfo=UTC
        )
        assert from_storage_datetime(None) is None


class TestPeriodMapping:
    """Reserved periods are stored as a sorted comma-joined list."""

    def test_periods_to_storage_is_sorted(self):
        assert periods_to_storage(frozenset({LimitPeriod.WEEKLY, LimitPeriod.DAILY})) == "daily,weekly"
        assert periods_to_storage(frozenset()) == ""

    def test_periods_from_storage(self):
        assert periods_from_storage("daily,monthly") == frozenset(
            {LimitPeriod.DAILY, LimitPeriod.MONTHLY}
        )
        assert periods_from_storage("") == frozenset()
        assert periods_from_storage(None) == frozenset()


class TestRequestMapper:
    """Tests for SpendingRequest mapper."""

    def test_request_to_domain(self):
        orm_request = ORMSpendingRequest(
            id=3,
            child_id="kid",
            amount=Decimal("15.00"),
            description="Video game",
            status="approved",
            reserved_periods="weekly",
            created_at=datetime(2024, 1, 10, 12, 0),
            expires_at=datetime(2024, 1, 13, 12, 0),
            responded_by="mom",
            responded_at=datetime(2024, 1, 11, 9, 0),
            is_learning_moment=False,
            transaction_id="txn-1",
        )

        request = request_to_domain(orm_request)

        assert request.id == 3
        assert request.status == RequestStatus.APPROVED
        assert request.reserved_periods == frozenset({LimitPeriod.WEEKLY})
        assert request.responded_at == datetime(2024, 1, 11, 9, 0, tzinfo=UTC)
        assert request.closed_at is None
        assert request.is_pending is False
