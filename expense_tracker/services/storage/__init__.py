"""
Storage Services Package

Provides the key-value store interface and its implementations.
The backend is chosen through configuration (see `create_key_value_store`).
"""

from expense_tracker.services.storage.interface import (
    KeyValueStore,
    StorageConnectionError,
    StorageError,
)
from expense_tracker.services.storage.memory import InMemoryKeyValueStore
from expense_tracker.services.storage.json_file import JsonFileKeyValueStore
from expense_tracker.services.storage.google_sheets import (
    GoogleSheetsClient,
    GoogleSheetsKeyValueStore,
)

__all__ = [
    # Interface
    "KeyValueStore",
    # Exceptions
    "StorageConnectionError",
    "StorageError",
    # Implementations
    "GoogleSheetsClient",
    "GoogleSheetsKeyValueStore",
    "InMemoryKeyValueStore",
    "JsonFileKeyValueStore",
]
