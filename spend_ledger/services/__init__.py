"""Services package."""

from spend_ledger.services.storage import (
    LedgerStorageInterface,
    ProfileStorageInterface,
    SQLLedgerStorage,
    SQLProfileStorage,
    StorageConnectionError,
    StorageError,
)

__all__ = [
    "LedgerStorageInterface",
    "ProfileStorageInterface",
    "SQLLedgerStorage",
    "SQLProfileStorage",
    "StorageConnectionError",
    "StorageError",
]
