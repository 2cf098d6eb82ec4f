"""Database construction."""

from typing import Optional

from bankrec.config import resolve_database_path
from bankrec.database.sqlalchemy_db import SQLAlchemyDatabase


def create_sqlite_database(database_path: Optional[str] = None) -> SQLAlchemyDatabase:
    """Open (and initialize) the SQLite ledger at the resolved path."""
    return SQLAlchemyDatabase(f"sqlite:///{resolve_database_path(database_path)}")
