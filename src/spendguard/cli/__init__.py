"""CLI interface for spendguard."""
