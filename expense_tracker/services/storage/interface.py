"""
Abstract Storage Interface

DESIGN DECISION: State is persisted through a plain key-value interface.
This allows us to:
1. Swap the local JSON file for Google Sheets (or anything else) via config
2. Use in-memory storage for testing
3. Keep the state core unaware of where its slices end up

The interface is intentionally minimal: one string value per key. What
gets serialized, and how it is read back, is decided by the callers.
"""

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """
    Abstract interface for string key-value storage.

    Any storage implementation (JSON file, Google Sheets, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """
        Read the value stored under a key.

        Args:
            key: The storage key

        Returns:
            The stored value, or None if the key was never written

        Raises:
            StorageError: If the backend cannot be read
        """
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> bool:
        """
        Store a value under a key, replacing any previous value.

        Args:
            key: The storage key
            value: The serialized value

        Returns:
            True if saved successfully

        Raises:
            StorageError: If the write fails
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class StorageConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
