"""
JSON File Storage

All keys live in one JSON document on disk. Every write replaces the
file atomically (temporary file + rename), so a crash mid-write leaves
the previous document intact.

File I/O runs in a worker thread to keep the event loop free.
"""

import asyncio
import json
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog

from expense_tracker.services.storage.interface import KeyValueStore, StorageError


logger = structlog.get_logger(__name__)


class JsonFileKeyValueStore(KeyValueStore):
    """Key-value store backed by a single JSON file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        self._lock = asyncio.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _read_document(self) -> dict[str, str]:
        try:
            with open(self._path, "r", encoding="utf-8") as handle:
                document = json.load(handle)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise StorageError(f"Storage file is not valid JSON: {self._path}: {e}")
        except OSError as e:
            raise StorageError(f"Failed to read storage file {self._path}: {e}")

        if not isinstance(document, dict):
            raise StorageError(f"Storage file does not hold a JSON object: {self._path}")
        return document

    def _write_document(self, document: dict[str, str]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            "w", delete=False, dir=self._path.parent, encoding="utf-8", suffix=".tmp"
        ) as tmp:
            json.dump(document, tmp, indent=2, sort_keys=True)
            tmp.flush()
        os.replace(tmp.name, self._path)

    async def get(self, key: str) -> Optional[str]:
        document = await asyncio.to_thread(self._read_document)
        value = document.get(key)
        return value if isinstance(value, str) else None

    async def set(self, key: str, value: str) -> bool:
        async with self._lock:
            try:
                document = await asyncio.to_thread(self._read_document)
                document[key] = value
                await asyncio.to_thread(self._write_document, document)
            except StorageError:
                raise
            except OSError as e:
                raise StorageError(f"Failed to write storage file {self._path}: {e}")

        logger.debug("json_store_write", key=key, path=str(self._path))
        return True
