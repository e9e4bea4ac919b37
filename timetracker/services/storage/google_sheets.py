"""
Google Sheets Snapshot Storage

DESIGN DECISION: The household already keeps its paperwork in Google
Sheets, so the snapshots can live there too. Each snapshot key is one
row: [key, payload_json, updated_at].

TRADEOFFS:
- A cell holds at most 50,000 characters, enough for years of
  household entries but not unbounded
- No transactions; each key is written independently, which matches
  how the gateway reports failures per key
"""

from datetime import datetime
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from timetracker.config import get_settings
from timetracker.config.settings import GoogleSheetsSettings
from timetracker.services.storage.interface import (
    ConnectionError,
    SnapshotStore,
    StorageError,
)


SNAPSHOT_COLUMNS = ["key", "payload", "updated_at"]

MAX_CELL_CHARS = 50_000


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
        """Establish connection using service account credentials."""
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
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

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
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_snapshot_sheet(self) -> gspread.Worksheet:
        """Get or create the snapshot worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.snapshot_sheet_name)
        except gspread.WorksheetNotFound:
            sheet = spreadsheet.add_worksheet(
                title=self._settings.snapshot_sheet_name,
                rows=20,
                cols=len(SNAPSHOT_COLUMNS),
            )
            sheet.append_row(SNAPSHOT_COLUMNS)
        return sheet


class GoogleSheetsSnapshotStore(SnapshotStore):
    """Snapshot store backed by one worksheet row per key."""

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _find_row(self, rows: list[list[str]], key: str) -> Optional[int]:
        """1-based sheet row index of `key`, skipping the header."""
        for idx, row in enumerate(rows[1:], start=2):
            if row and row[0] == key:
                return idx
        return None

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def read(self, key: str) -> Optional[str]:
        try:
            sheet = self._client.get_snapshot_sheet()
            rows = sheet.get_all_values()
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to read snapshot '{key}': {e}")

        idx = self._find_row(rows, key)
        if idx is None:
            return None
        row = rows[idx - 1]
        return row[1] if len(row) > 1 and row[1] else None

    def write(self, key: str, payload: str) -> None:
        if len(payload) > MAX_CELL_CHARS:
            raise StorageError(
                f"Snapshot '{key}' is {len(payload)} characters, "
                f"over the {MAX_CELL_CHARS} a sheet cell can hold"
            )
        self._write_row(key, payload)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write_row(self, key: str, payload: str) -> None:
        try:
            sheet = self._client.get_snapshot_sheet()
            rows = sheet.get_all_values()
            new_row = [key, payload, datetime.now().astimezone().isoformat()]

            idx = self._find_row(rows, key)
            if idx is None:
                sheet.append_row(new_row, value_input_option="RAW")
            else:
                sheet.update(
                    range_name=f"A{idx}:C{idx}",
                    values=[new_row],
                    value_input_option="RAW",
                )
        except ConnectionError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to write snapshot '{key}': {e}")
