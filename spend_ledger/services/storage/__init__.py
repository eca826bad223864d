"""
Storage Services Package

Provides abstract interfaces and concrete implementations for data storage.
Currently implements a SQLAlchemy relational backend (PostgreSQL in
production, SQLite for development and tests).
"""

from spend_ledger.services.storage.interface import (
    LedgerStorageInterface,
    ProfileStorageInterface,
    StorageConnectionError,
    StorageError,
)
from spend_ledger.services.storage.database import (
    create_engine,
    create_session_factory,
)
from spend_ledger.services.storage.sql_ledger import SQLLedgerStorage
from spend_ledger.services.storage.sql_profiles import SQLProfileStorage

__all__ = [
    # Interfaces
    "LedgerStorageInterface",
    "ProfileStorageInterface",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    # SQL implementation
    "SQLLedgerStorage",
    "SQLProfileStorage",
    "create_engine",
    "create_session_factory",
]
