"""Database layer for backoffice."""

from backoffice.database.base import Database
from backoffice.database.factories import (
    create_database,
    create_database_factory,
    create_sqlite_database,
)

__all__ = ["Database", "create_database", "create_database_factory", "create_sqlite_database"]
