"""Domain layer for spendguard."""

from spendguard.domain.policy import PolicyService
from spendguard.domain.limits import LimitTrackerService
from spendguard.domain.evaluator import SpendingCheckService, evaluate_spending
from spendguard.domain.requests import RequestLifecycleService
from spendguard.domain.sweeper import ExpirationSweeper
from spendguard.domain.engine import SpendingEngine

__all__ = [
    "PolicyService",
    "LimitTrackerService",
    "SpendingCheckService",
    "evaluate_spending",
    "RequestLifecycleService",
    "ExpirationSweeper",
    "SpendingEngine",
]
