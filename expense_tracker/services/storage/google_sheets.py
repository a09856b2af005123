"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is offered as a remote backend because:
1. Non-technical users can look at their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- A cell holds at most 50,000 characters, so a value is split over
  several rows: key | chunk | value | updated_at, one row per chunk
- Every read fetches the whole sheet (we only have a handful of keys)

gspread is synchronous, so every call runs in a worker thread.
"""

import asyncio
from datetime import datetime, timezone
from typing import Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from expense_tracker.config import GoogleSheetsSettings, get_settings
from expense_tracker.services.storage.interface import (
    KeyValueStore,
    StorageConnectionError,
    StorageError,
)


logger = structlog.get_logger(__name__)

# Column layout of the slices sheet
SLICE_COLUMNS = [
    "key",
    "chunk",
    "value",
    "updated_at",
]

# Below the 50,000 character cell limit
CHUNK_SIZE = 45_000


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise StorageConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StorageConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StorageConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_slices_sheet(self) -> gspread.Worksheet:
        """Get or create the worksheet holding the persisted keys."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.slices_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.slices_sheet_name,
                rows=100,
                cols=len(SLICE_COLUMNS),
            )
            sheet.append_row(SLICE_COLUMNS)
        return sheet


class GoogleSheetsKeyValueStore(KeyValueStore):
    """
    Google Sheets implementation of the key-value store.

    Keys are looked up in the first column. A value is stored as
    numbered chunk rows; rewriting a key overwrites its rows in place,
    appends rows it needs and deletes rows it no longer needs.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._lock = asyncio.Lock()

    @staticmethod
    def _find_rows(keys: list[str], key: str) -> list[int]:
        """1-based sheet rows of a key, skipping the header row."""
        return [index for index, existing in enumerate(keys[1:], start=2) if existing == key]

    @staticmethod
    def _split(value: str) -> list[str]:
        return [value[i:i + CHUNK_SIZE] for i in range(0, len(value), CHUNK_SIZE)] or [""]

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    def _read(self, key: str) -> Optional[str]:
        sheet = self._client.get_slices_sheet()
        chunks = []
        for values in sheet.get_all_values()[1:]:
            if not values or values[0] != key:
                continue
            padded = values + [""] * (len(SLICE_COLUMNS) - len(values))
            try:
                index = int(padded[1])
            except ValueError:
                raise StorageError(f"Bad chunk index {padded[1]!r} for key {key}")
            chunks.append((index, padded[2]))
        if not chunks:
            return None
        return "".join(chunk for _, chunk in sorted(chunks))

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=5),
        reraise=True,
    )
    def _write(self, key: str, value: str) -> None:
        sheet = self._client.get_slices_sheet()
        updated_at = datetime.now(timezone.utc).isoformat()
        rows = self._find_rows(sheet.col_values(1), key)
        chunks = self._split(value)

        for index, chunk in enumerate(chunks):
            values = [key, str(index), chunk, updated_at]
            if index < len(rows):
                sheet.update(
                    range_name=f"A{rows[index]}:D{rows[index]}",
                    values=[values],
                    value_input_option="RAW",
                )
            else:
                sheet.append_row(values, value_input_option="RAW")

        # Bottom-up so earlier row numbers stay valid
        for row in reversed(rows[len(chunks):]):
            sheet.delete_rows(row)

    async def get(self, key: str) -> Optional[str]:
        try:
            return await asyncio.to_thread(self._read, key)
        except StorageConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read key {key}: {e}")

    async def set(self, key: str, value: str) -> bool:
        async with self._lock:
            try:
                await asyncio.to_thread(self._write, key, value)
            except StorageConnectionError:
                raise
            except Exception as e:
                raise StorageError(f"Failed to write key {key}: {e}")

        logger.debug("sheets_store_write", key=key, size=len(value))
        return True
