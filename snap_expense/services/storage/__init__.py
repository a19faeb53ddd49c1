"""
Storage Services Package

Provides the key-value storage interface, its local implementations,
and the Expense Store built on top of them.
"""

from snap_expense.services.storage.interface import (
    DuplicateExpenseError,
    KeyValueStoreInterface,
    PersistenceReadError,
    PersistenceWriteError,
    StorageError,
)
from snap_expense.services.storage.local_store import (
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
)
from snap_expense.services.storage.expense_store import (
    DEFAULT_STORAGE_KEY,
    ExpenseStore,
    deserialize_expenses,
    prepend_expense,
    remove_expense,
    serialize_expenses,
)

__all__ = [
    # Interfaces
    "KeyValueStoreInterface",
    # Exceptions
    "DuplicateExpenseError",
    "PersistenceReadError",
    "PersistenceWriteError",
    "StorageError",
    # Implementations
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    # Expense store
    "DEFAULT_STORAGE_KEY",
    "ExpenseStore",
    "deserialize_expenses",
    "prepend_expense",
    "remove_expense",
    "serialize_expenses",
]
