"""Spending governance for children's allowances."""

from spendguard.domain.engine import SpendingEngine

__all__ = ["SpendingEngine"]


# Import main lazily to avoid loading click for library users
def __getattr__(name):
    if name == "main":
        from spendguard.cli.main import main
        return main
    raise AttributeError(f"module '{__name__}' has no attribute '{name}'")
