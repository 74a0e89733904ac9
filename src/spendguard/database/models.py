"""SQLAlchemy models for spendguard database.

Datetimes are stored as naive UTC; the mappers attach the UTC zone again.
"""

from datetime import datetime, UTC
from typing import Any

from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Numeric,
    Boolean,
    UniqueConstraint,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, scoped_session, sessionmaker, Session

Base = declarative_base()


def utcnow() -> datetime:
    """Current time as naive UTC, the storage representation."""
    return datetime.now(UTC).replace(tzinfo=None)


class ApprovalSettings(Base):
    """Per-child approval policy model."""

    __tablename__ = "approval_settings"

    id = Column(Integer, primary_key=True)
    child_id = Column(String, unique=True, nullable=False)
    family_id = Column(String, nullable=True)
    is_enabled = Column(Boolean, default=True, nullable=False)
    is_paused = Column(Boolean, default=False, nullable=False)
    pause_reason = Column(String, nullable=True)
    approval_threshold = Column(Numeric(10, 2), nullable=False)
    max_single_purchase = Column(Numeric(10, 2), nullable=True)
    auto_approve_under_threshold = Column(Boolean, default=True, nullable=False)
    auto_approve_trusted_categories = Column(Boolean, default=False, nullable=False)
    request_expiration_hours = Column(Integer, default=72, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    # Owned collections, always loaded with the settings row
    category_rules = relationship(
        "CategoryRule", back_populates="settings", cascade="all, delete-orphan", lazy="selectin"
    )
    spending_limits = relationship(
        "SpendingLimit", back_populates="settings", cascade="all, delete-orphan", lazy="selectin"
    )
    trusted_categories = relationship(
        "TrustedCategory", back_populates="settings", cascade="all, delete-orphan", lazy="selectin"
    )


class CategoryRule(Base):
    """Category restriction model."""

    __tablename__ = "category_rules"

    id = Column(Integer, primary_key=True)
    settings_id = Column(Integer, ForeignKey("approval_settings.id"), nullable=False)
    category_id = Column(String, nullable=False)
    restriction = Column(String, nullable=False)
    category_threshold = Column(Numeric(10, 2), nullable=True)
    restriction_reason = Column(String, nullable=True)

    __table_args__ = (UniqueConstraint("settings_id", "category_id", name="uq_rule_category"),)

    settings = relationship("ApprovalSettings", back_populates="category_rules")


class SpendingLimit(Base):
    """Periodic spending limit model."""

    __tablename__ = "spending_limits"

    id = Column(Integer, primary_key=True)
    settings_id = Column(Integer, ForeignKey("approval_settings.id"), nullable=False)
    period = Column(String, nullable=False)
    limit_amount = Column(Numeric(10, 2), nullable=False)
    includes_pending_requests = Column(Boolean, default=True, nullable=False)

    __table_args__ = (UniqueConstraint("settings_id", "period", name="uq_limit_period"),)

    settings = relationship("ApprovalSettings", back_populates="spending_limits")


class TrustedCategory(Base):
    """Category pre-approved for auto-approval above the threshold."""

    __tablename__ = "trusted_categories"

    id = Column(Integer, primary_key=True)
    settings_id = Column(Integer, ForeignKey("approval_settings.id"), nullable=False)
    category_id = Column(String, nullable=False)

    __table_args__ = (UniqueConstraint("settings_id", "category_id", name="uq_trusted_category"),)

    settings = relationship("ApprovalSettings", back_populates="trusted_categories")


class SpendingLimitTracker(Base):
    """Running totals for one child, period and window."""

    __tablename__ = "spending_limit_trackers"

    id = Column(Integer, primary_key=True)
    child_id = Column(String, nullable=False)
    period = Column(String, nullable=False)
    period_start = Column(DateTime, nullable=False)
    period_end = Column(DateTime, nullable=False)
    spent_amount = Column(Numeric(10, 2), default=0, nullable=False)
    pending_amount = Column(Numeric(10, 2), default=0, nullable=False)
    limit_amount = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("child_id", "period", "period_start", name="uq_tracker_window"),
        Index("ix_tracker_period_end", "period_end"),
    )


class SpendingRequest(Base):
    """Spending request model."""

    __tablename__ = "spending_requests"

    id = Column(Integer, primary_key=True)
    child_id = Column(String, nullable=False, index=True)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(String, nullable=False)
    category_id = Column(String, nullable=True)
    wish_list_item_id = Column(String, nullable=True)
    status = Column(String, nullable=False, index=True)
    # Comma-separated period names that received the reservation
    reserved_periods = Column(String, default="", nullable=False)
    created_at = Column(DateTime, nullable=False)
    expires_at = Column(DateTime, nullable=False, index=True)
    responded_by = Column(String, nullable=True)
    responded_at = Column(DateTime, nullable=True)
    parent_comment = Column(String, nullable=True)
    is_learning_moment = Column(Boolean, default=False, nullable=False)
    transaction_id = Column(String, nullable=True)
    closed_at = Column(DateTime, nullable=True)


class ChildBalance(Base):
    """Balance held for a child by the bundled ledger."""

    __tablename__ = "child_balances"

    child_id = Column(String, primary_key=True)
    balance = Column(Numeric(10, 2), default=0, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    transactions = relationship("LedgerTransaction", back_populates="account")


class LedgerTransaction(Base):
    """Debit recorded by the bundled ledger."""

    __tablename__ = "ledger_transactions"

    id = Column(Integer, primary_key=True)
    child_id = Column(String, ForeignKey("child_balances.child_id"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    description = Column(String, nullable=False)
    category_id = Column(String, nullable=True)
    balance_after = Column(Numeric(10, 2), nullable=False)
    created_at = Column(DateTime, nullable=False)

    account = relationship("ChildBalance", back_populates="transactions")


def create_session_factory(
    database_url: str, storage_timeout: float = 5.0
) -> scoped_session[Session]:
    """Create a thread-local SQLAlchemy session factory."""
    connect_args: dict[str, Any] = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False, "timeout": storage_timeout}
    engine = create_engine(database_url, echo=False, connect_args=connect_args)
    Base.metadata.create_all(engine)
    return scoped_session(sessionmaker(bind=engine))
