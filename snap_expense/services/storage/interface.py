"""
Abstract Storage Interface

DESIGN DECISION: The Expense Store sits on top of a minimal key-value
interface: synchronous get/set of one string blob per key.
This allows us to:
1. Keep data in a local JSON file for the real app
2. Use in-memory storage for testing
3. Swap the backend without touching the Store logic

The interface is intentionally tiny. The Store always rewrites the whole
blob, so nothing more than get/set is ever needed.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStoreInterface(ABC):
    """
    Abstract interface for a blob-per-key store.

    Any storage implementation (local file, in-memory, etc.)
    must implement these methods.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read the blob stored under a key.

        Args:
            key: Storage key

        Returns:
            The stored string, or None if the key has never been written

        Raises:
            PersistenceReadError: If the backend exists but cannot be read
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Replace the blob stored under a key.

        The write is whole-value: after a failure the previous value
        must still be readable.

        Args:
            key: Storage key
            value: New blob

        Raises:
            PersistenceWriteError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class PersistenceReadError(StorageError):
    """Stored blob is missing, unreadable or malformed."""
    pass


class PersistenceWriteError(StorageError):
    """Could not write the blob to the backend."""
    pass


class DuplicateExpenseError(StorageError):
    """Attempted to add an expense whose id already exists."""
    pass
