"""
Google Sheets Remote Store

DESIGN DECISION: Google Sheets is used as the production backend because:
1. Users can view (and back up) their ledger directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

The path tree is flattened into one worksheet, one row per written node:

    | path                          | payload_json          | updated_at |
    | users/u1/accounts/-NxA...     | {"name": "Nubank"...} | 2024-...   |
    | users/u1/preferences          | {"preferredCurrency"} | 2024-...   |

Reading an interior path (a collection) rebuilds the subtree from every
row underneath it.

TRADEOFFS:
- Every call reads the whole sheet (fine for a personal ledger)
- No transactions (per-row writes only - last write wins)
- Retries happen HERE, in the transport, never in the repositories
"""

import asyncio
import json
import threading
from datetime import datetime, timezone
from typing import Any, Optional

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from ledgersync.config import GoogleSheetsSettings, get_settings
from ledgersync.services.storage.interface import (
    PushKeyGenerator,
    RemoteStore,
    StoreUnavailable,
    resolve_server_values,
    split_path,
)


# Column mappings for the Ledger sheet
LEDGER_COLUMNS = [
    "path",
    "payload_json",
    "updated_at",
]

_transport_retry = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    """

    def __init__(self, settings: Optional[GoogleSheetsSettings] = None):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = settings or get_settings().google_sheets

    @_transport_retry
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
                raise StoreUnavailable(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreUnavailable(f"Failed to connect to Google Sheets: {e}")

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
                raise StoreUnavailable(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_ledger_sheet(self) -> gspread.Worksheet:
        """Get or create the Ledger worksheet."""
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(self._settings.ledger_sheet_name)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=self._settings.ledger_sheet_name,
                rows=1000,
                cols=len(LEDGER_COLUMNS),
            )
            sheet.append_row(LEDGER_COLUMNS)
        return sheet


class GoogleSheetsRemoteStore(RemoteStore):
    """
    Google Sheets implementation of the remote store tree.

    Blocking gspread calls run in a worker thread so the event loop
    stays responsive.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()
        self._keys = PushKeyGenerator()
        # One read-modify-write at a time per process
        self._write_lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Row helpers (blocking)
    # -------------------------------------------------------------------------

    def _row_to_node(self, row: list) -> tuple[str, Any]:
        """Convert a spreadsheet row to (path, value)."""
        path = row[0] if row else ""
        raw = row[1] if len(row) > 1 else ""
        return path, json.loads(raw) if raw else None

    def _node_to_row(self, path: str, value: Any) -> list:
        """Convert (path, value) to a spreadsheet row."""
        return [
            path,
            json.dumps(value, separators=(",", ":")),
            datetime.now(timezone.utc).isoformat(),
        ]

    @_transport_retry
    def _read_rows(self) -> tuple[gspread.Worksheet, list[list]]:
        sheet = self._client.get_ledger_sheet()
        # Skip header
        return sheet, sheet.get_all_values()[1:]

    @staticmethod
    def _locate(sheet: gspread.Worksheet, path: str) -> Optional[int]:
        """Current row number holding `path`, looked up right before use."""
        cell = sheet.find(path, in_column=1, case_sensitive=True)
        return cell.row if cell is not None else None

    @_transport_retry
    def _write_row(self, sheet: gspread.Worksheet, path: str, row: list) -> None:
        row_number = self._locate(sheet, path)
        if row_number is None:
            sheet.append_row(row, value_input_option="RAW")
        else:
            sheet.update(
                values=[row],
                range_name=f"A{row_number}:C{row_number}",
                value_input_option="RAW",
            )

    @_transport_retry
    def _delete_paths(self, sheet: gspread.Worksheet, paths: list[str]) -> None:
        # Rows shift when another client deletes, so never trust row numbers
        # from an earlier read
        for path in paths:
            row_number = self._locate(sheet, path)
            if row_number is not None:
                sheet.delete_rows(row_number)

    @staticmethod
    def _matches(row_path: str, path: str) -> tuple[bool, bool]:
        """(exact match, strictly beneath)"""
        return row_path == path, row_path.startswith(path + "/")

    def _get_blocking(self, path: str) -> Optional[Any]:
        _, rows = self._read_rows()
        subtree: dict[str, Any] = {}
        for row in rows:
            if not row or not row[0]:
                continue
            row_path, value = self._row_to_node(row)
            exact, beneath = self._matches(row_path, path)
            if exact:
                return value
            if beneath:
                relative = row_path[len(path) + 1:].split("/")
                node = subtree
                for segment in relative[:-1]:
                    node = node.setdefault(segment, {})
                node[relative[-1]] = value
        return subtree or None

    def _set_blocking(self, path: str, value: Any) -> None:
        with self._write_lock:
            sheet, rows = self._read_rows()
            exact = False
            stale = []
            for row in rows:
                if not row or not row[0]:
                    continue
                is_exact, beneath = self._matches(row[0], path)
                exact = exact or is_exact
                if beneath:
                    stale.append(row[0])

            if value is None:
                if exact:
                    stale.append(path)
                self._delete_paths(sheet, stale)
                return

            # Write first, then drop rows that the new value replaces
            self._write_row(sheet, path, self._node_to_row(path, value))
            self._delete_paths(sheet, stale)

    def _update_blocking(self, path: str, values: dict[str, Any]) -> None:
        with self._write_lock:
            sheet, rows = self._read_rows()
            merged: dict[str, Any] = {}
            for row in rows:
                if row and row[0] == path:
                    _, current = self._row_to_node(row)
                    if isinstance(current, dict):
                        merged = current
                    break
            merged.update(values)
            self._write_row(sheet, path, self._node_to_row(path, merged))

    # -------------------------------------------------------------------------
    # RemoteStore API
    # -------------------------------------------------------------------------

    async def _run(self, operation: str, func, *args) -> Any:
        try:
            return await asyncio.to_thread(func, *args)
        except (StoreUnavailable, ValueError):
            raise
        except Exception as e:
            raise StoreUnavailable(f"Google Sheets {operation} failed: {e}") from e

    async def get(self, path: str) -> Optional[Any]:
        path = "/".join(split_path(path))
        return await self._run("read", self._get_blocking, path)

    async def push_key(self, path: str) -> str:
        split_path(path)
        return self._keys.generate()

    async def set(self, path: str, value: Any) -> None:
        path = "/".join(split_path(path))
        await self._run("write", self._set_blocking, path, resolve_server_values(value))

    async def update(self, path: str, values: dict[str, Any]) -> None:
        path = "/".join(split_path(path))
        await self._run("update", self._update_blocking, path, resolve_server_values(values))

    async def delete(self, path: str) -> None:
        path = "/".join(split_path(path))
        await self._run("delete", self._set_blocking, path, None)
