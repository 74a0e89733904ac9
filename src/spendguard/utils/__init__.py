"""Utility functions for spendguard."""

from spendguard.utils.amount_parser import parse_amount, to_money
from spendguard.utils.child_locks import ChildLocks
from spendguard.utils.period_window import as_utc, parse_period, window_for

__all__ = ["parse_amount", "to_money", "ChildLocks", "as_utc", "parse_period", "window_for"]
