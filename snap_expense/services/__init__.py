"""Services package."""

from snap_expense.services.analyzer import (
    AnalysisError,
    GeminiReceiptAnalyzer,
    ReceiptAnalyzerInterface,
)
from snap_expense.services.image import (
    ImageTooLargeError,
    InvalidImageError,
    ReceiptImageProcessor,
)
from snap_expense.services.storage import (
    DuplicateExpenseError,
    ExpenseStore,
    InMemoryKeyValueStore,
    JsonFileKeyValueStore,
    KeyValueStoreInterface,
    PersistenceReadError,
    PersistenceWriteError,
    StorageError,
)

__all__ = [
    # Analyzer services
    "AnalysisError",
    "GeminiReceiptAnalyzer",
    "ReceiptAnalyzerInterface",
    # Image services
    "ImageTooLargeError",
    "InvalidImageError",
    "ReceiptImageProcessor",
    # Storage services
    "DuplicateExpenseError",
    "ExpenseStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
    "KeyValueStoreInterface",
    "PersistenceReadError",
    "PersistenceWriteError",
    "StorageError",
]
