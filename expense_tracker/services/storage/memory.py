"""In-memory key-value store, used by tests and throwaway sessions."""

from typing import Optional

from expense_tracker.services.storage.interface import KeyValueStore


class InMemoryKeyValueStore(KeyValueStore):
    """Keeps everything in a dict. Nothing survives the process."""

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})
        self.writes: list[tuple[str, str]] = []

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> bool:
        self._data[key] = value
        self.writes.append((key, value))
        return True

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)
