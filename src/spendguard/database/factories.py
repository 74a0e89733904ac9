"""Database factory functions for creating database instances."""

from typing import Optional

from spendguard.config import default_database_path
from spendguard.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(
    database_path: Optional[str] = None, storage_timeout: float = 5.0
) -> SQLAlchemyDatabase:
    """Create a SQLite database instance.

    Args:
        database_path: Path to SQLite database file. If None, checks SPENDGUARD_DB_PATH
            environment variable, then defaults to ~/.spendguard/spendguard.db
        storage_timeout: Seconds a write waits for the SQLite lock

    Returns:
        SQLAlchemyDatabase instance configured for SQLite
    """
    if database_path is None:
        database_path = default_database_path()

    database_url = f"sqlite:///{database_path}"
    return SQLAlchemyDatabase(database_url, storage_timeout=storage_timeout)
