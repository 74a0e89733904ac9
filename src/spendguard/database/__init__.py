"""Database layer for spendguard."""

from spendguard.database.base import Database
from spendguard.database.factories import create_sqlite_database

__all__ = ["Database", "create_sqlite_database"]
