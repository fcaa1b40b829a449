from household_ledger.services.storage.interface import (
    ConnectionError,
    DuplicateError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)
from household_ledger.services.storage.memory import InMemoryLedgerStorage
from household_ledger.services.storage.sql import SqlLedgerStorage
from household_ledger.services.storage.seed import seed_budget_warnings

__all__ = [
    "LedgerStorageInterface",
    "InMemoryLedgerStorage",
    "SqlLedgerStorage",
    "seed_budget_warnings",
    "StorageError",
    "NotFoundError",
    "DuplicateError",
    "ConnectionError",
]
