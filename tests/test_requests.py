"""Tests for the spending request lifecycle."""

import logging
from decimal import Decimal

import pytest

from spendguard.domain.entities import CategoryRestriction, LimitPeriod, RequestStatus
from spendguard.domain.errors import (
    BlockedError,
    InsufficientFundsError,
    InvalidStateError,
    NotFoundError,
    TransientError,
    ValidationError,
)
from spendguard.domain.requests import RequestEvent, next_status, target_status


def weekly_pending(engine, child_id="kid"):
    [status] = engine.get_limit_statuses(child_id)
    return status.pending_amount


def test_create_request_reserves_limit(engine, policy, clock):
    """A $15 request against a $20 weekly limit blocks a further $10 purchase."""
    policy.upsert_spending_limit("kid", LimitPeriod.WEEKLY, Decimal("20.00"))

    request = engine.create_request("kid", Decimal("15.00"), "Video game")

    assert request.status == RequestStatus.PENDING
    assert request.reserved_periods == frozenset({LimitPeriod.WEEKLY})
    assert request.created_at == clock.now()
    assert weekly_pending(engine) == Decimal("15.00")

    result = engine.check_spending("kid", Decimal("10.00"))
    assert result.can_spend is False
    assert "Would exceed weekly limit" in result.block_reason


def test_create_request_sets_expiration(engine, policy, clock):
    policy.update_settings("kid", request_expiration_hours=24)

    request = engine.create_request("kid", Decimal("15.00"), "Shoes")

    assert (request.expires_at - request.created_at).total_seconds() == 24 * 3600


def test_create_request_for_auto_approved_purchase_fails(engine):
    with pytest.raises(ValidationError, match="does not require approval"):
        engine.create_request("kid", Decimal("5.00"), "Snack")


def test_create_request_blocked(engine, policy):
    policy.upsert_category_rule(
        "kid", "candy", CategoryRestriction.BLOCKED, restriction_reason="No candy purchases"
    )

    with pytest.raises(BlockedError) as excinfo:
        engine.create_request("kid", Decimal("15.00"), "Candy", category_id="candy")

    assert excinfo.value.reason == "No candy purchases"
    assert engine.list_requests("kid") == []


@pytest.mark.parametrize(
    "amount, description",
    [(Decimal("0"), "Nothing"), (Decimal("-3.00"), "Refund"), (Decimal("15.00"), "   ")],
)
def test_create_request_validation(engine, amount, description):
    with pytest.raises(ValidationError):
        engine.create_request("kid", amount, description)


def test_create_request_notifies_family(engine, policy, notifier):
    policy.update_settings("kid", family_id="fam-1")

    request = engine.create_request("kid", Decimal("15.00"), "Video game")

    [(family_id, message, payload)] = notifier.family_messages
    assert family_id == "fam-1"
    assert "$15.00" in message
    assert payload["request_id"] == request.id


def test_create_request_without_family_skips_notification(engine, notifier, caplog):
    with caplog.at_level(logging.INFO, logger="spendguard.domain.requests"):
        engine.create_request("kid", Decimal("15.00"), "Video game")

    assert notifier.family_messages == []
    assert "no family configured" in caplog.text


def test_notification_failure_does_not_fail_request(engine, policy, notifier):
    policy.update_settings("kid", family_id="fam-1")
    notifier.fail = True

    request = engine.create_request("kid", Decimal("15.00"), "Video game")

    assert engine.get_request(request.id).status == RequestStatus.PENDING


def test_approve_debits_and_commits(engine, policy, ledger, notifier):
    policy.upsert_spending_limit("kid", LimitPeriod.WEEKLY, Decimal("50.00"))
    request = engine.create_request("kid", Decimal("15.00"), "Video game")

    approved = engine.respond_to_request(
        request.id, True, responded_by="mom", comment="Save some too", is_learning_moment=True
    )

    assert approved.status == RequestStatus.APPROVED
    assert approved.responded_by == "mom"
    assert approved.parent_comment == "Save some too"
    assert approved.is_learning_moment is True
    assert approved.transaction_id == "txn-1"
    assert ledger.balances["kid"] == Decimal("85.00")

    [status] = engine.get_limit_statuses("kid")
    assert status.pending_amount == Decimal("0")
    assert status.spent_amount == Decimal("15.00")

    [(child_id, message, payload)] = notifier.child_messages
    assert child_id == "kid"
    assert "approved" in message
    assert payload["parent_comment"] == "Save some too"


def test_deny_releases_reservation(engine, policy, ledger):
    policy.upsert_spending_limit("kid", LimitPeriod.WEEKLY, Decimal("50.00"))
    request = engine.create_request("kid", Decimal("15.00"), "Video game")

    denied = engine.respond_to_request(request.id, False, responded_by="dad", comment="Not now")

    assert denied.status == RequestStatus.DENIED
    assert denied.transaction_id is None
    assert ledger.debits == []
    [status] = engine.get_limit_statuses("kid")
    assert status.pending_amount == Decimal("0")
    assert status.spent_amount == Decimal("0")


def test_approve_with_insufficient_funds_keeps_request_pending(engine, policy, ledger):
    policy.upsert_spending_limit("kid", LimitPeriod.WEEKLY, Decimal("50.00"))
    ledger.balances["kid"] = Decimal("10.00")
    request = engine.create_request("kid", Decimal("15.00"), "Video game")

    with pytest.raises(InsufficientFundsError):
        engine.respond_to_request(request.id, True)

    assert engine.get_request(request.id).status == RequestStatus.PENDING
    assert weekly_pending(engine) == Decimal("15.00")
    assert ledger.balances["kid"] == Decimal("10.00")


def test_ledger_timeout_is_transient(engine, policy, ledger):
    policy.upsert_spending_limit("kid", LimitPeriod.WEEKLY, Decimal("50.00"))
    request = engine.create_request("kid", Decimal("15.00"), "Video game")
    ledger.error = TimeoutError()

    with pytest.raises(TransientError):
        engine.respond_to_request(request.id, True)

    assert engine.get_request(request.id).status == RequestStatus.PENDING
    assert weekly_pending(engine) == Decimal("15.00")

    ledger.error = None
    assert engine.respond_to_request(request.id, True).status == RequestStatus.APPROVED


def test_respond_twice_fails(engine):
    request = engine.create_request("kid", Decimal("15.00"), "Video game")
    engine.respond_to_request(request.id, False)

    with pytest.raises(InvalidStateError):
        engine.respond_to_request(request.id, True)


def test_respond_to_missing_request(engine):
    with pytest.raises(NotFoundError):
        engine.respond_to_request(999, True)


def test_committed_only_limit_enforced_on_approval(engine, policy):
    policy.upsert_spending_limit(
        "kid", LimitPeriod.WEEKLY, Decimal("20.00"), includes_pending_requests=False
    )
    first = engine.create_request("kid", Decimal("15.00"), "Shoes")
    second = engine.create_request("kid", Decimal("15.00"), "Jacket")
    assert second.reserved_periods == frozenset()

    engine.respond_to_request(first.id, True)
    with pytest.raises(BlockedError, match="weekly limit"):
        engine.respond_to_request(second.id, True)

    assert engine.get_request(second.id).status == RequestStatus.PENDING


def test_cancel_by_owner(engine, policy):
    policy.upsert_spending_limit("kid", LimitPeriod.WEEKLY, Decimal("50.00"))
    request = engine.create_request("kid", Decimal("15.00"), "Video game")

    cancelled = engine.cancel_request(request.id, "kid")

    assert cancelled.status == RequestStatus.CANCELLED
    assert cancelled.closed_at is not None
    assert weekly_pending(engine) == Decimal("0")


def test_cancel_by_other_child_fails(engine):
    request = engine.create_request("kid", Decimal("15.00"), "Video game")

    with pytest.raises(ValidationError):
        engine.cancel_request(request.id, "sibling")

    assert engine.get_request(request.id).status == RequestStatus.PENDING


def test_cancel_after_approval_fails(engine):
    request = engine.create_request("kid", Decimal("15.00"), "Video game")
    engine.respond_to_request(request.id, True)

    with pytest.raises(InvalidStateError):
        engine.cancel_request(request.id, "kid")


def test_reservation_survives_limit_toggle(engine, policy):
    policy.upsert_spending_limit("kid", LimitPeriod.WEEKLY, Decimal("50.00"))
    request = engine.create_request("kid", Decimal("15.00"), "Video game")
    policy.upsert_spending_limit(
        "kid", LimitPeriod.WEEKLY, Decimal("50.00"), includes_pending_requests=False
    )

    engine.cancel_request(request.id, "kid")

    assert weekly_pending(engine) == Decimal("0")


def test_spend_directly(engine, policy, ledger):
    policy.upsert_spending_limit("kid", LimitPeriod.DAILY, Decimal("20.00"))

    receipt = engine.spend("kid", Decimal("8.00"), "Lunch")

    assert receipt.new_balance == Decimal("92.00")
    [status] = engine.get_limit_statuses("kid")
    assert status.spent_amount == Decimal("8.00")


def test_spend_directly_requires_approval_above_threshold(engine, ledger):
    with pytest.raises(InvalidStateError):
        engine.spend("kid", Decimal("25.00"), "Headphones")
    assert ledger.debits == []


def test_spend_directly_blocked(engine, policy):
    policy.set_paused("kid", "Grounded")
    with pytest.raises(BlockedError, match="Grounded"):
        engine.spend("kid", Decimal("1.00"), "Gum")


def test_list_requests_filters(engine):
    first = engine.create_request("kid", Decimal("15.00"), "Video game")
    second = engine.create_request("kid", Decimal("12.00"), "Book")
    engine.create_request("other", Decimal("30.00"), "Bike")
    engine.respond_to_request(first.id, False)

    assert {r.id for r in engine.list_requests("kid")} == {first.id, second.id}
    pending = engine.list_requests("kid", RequestStatus.PENDING)
    assert [r.id for r in pending] == [second.id]
    assert len(engine.list_requests()) == 3


def test_transition_table():
    assert target_status(RequestEvent.EXPIRE) == RequestStatus.EXPIRED
    for status in RequestStatus:
        assert status.is_terminal == (status != RequestStatus.PENDING)


def test_next_status_rejects_terminal_request(engine):
    request = engine.create_request("kid", Decimal("15.00"), "Video game")
    assert next_status(request, RequestEvent.APPROVE) == RequestStatus.APPROVED

    denied = engine.respond_to_request(request.id, False)
    with pytest.raises(InvalidStateError):
        next_status(denied, RequestEvent.EXPIRE)
