"""
Google Sheets Worksheet Remote

Reads and writes a worksheet directly with a service account, for setups
without an Apps Script web app in between.

DESIGN DECISION: One entry per row, first row is the header. Rows are read
and written in the order of the sheet's own header, so users may reorder or
add columns; a new sheet gets ENTRY_COLUMNS. Columns the entry does not
know are left as they are when a row is rewritten. The default push is an upsert (matching rows are
rewritten, new ids appended) and the write is confirmed by the API, so no
pending-id tracking is needed for this backend.

TRADEOFFS:
- Not suitable for high-volume data (fine for personal use)
- Each pull reads the whole sheet
"""

import asyncio
from typing import Optional

import gspread
from google.oauth2.service_account import Credentials
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from finance_tracker.config.settings import GoogleSheetsSettings
from finance_tracker.models.entry import Entry, PushMode
from finance_tracker.services.remote.interface import (
    FormatError,
    RemoteAdapter,
    RemoteConfigurationError,
    TransportError,
)


ENTRY_COLUMNS = [
    "id",
    "type",
    "amount",
    "principal",
    "date",
    "dueDate",
    "note",
    "who",
    "category",
    "account",
    "tags",
    "updatedAt",
]


class WorksheetClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for connecting.
    """

    def __init__(self, settings: GoogleSheetsSettings):
        self._client: Optional[gspread.Client] = None
        self._worksheet: Optional[gspread.Worksheet] = None
        self._settings = settings

    @property
    def configured(self) -> bool:
        return self._settings.is_configured

    @retry(
        retry=retry_if_exception_type(TransportError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        Only transport failures are retried; missing configuration is not.
        """
        if not self._settings.is_configured:
            raise RemoteConfigurationError("Google Sheets credentials or spreadsheet id missing")
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
                raise RemoteConfigurationError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise TransportError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_worksheet(self) -> gspread.Worksheet:
        """Get or create the entries worksheet."""
        if self._worksheet is None:
            client = self.connect()
            try:
                spreadsheet = client.open_by_key(self._settings.spreadsheet_id)
            except gspread.SpreadsheetNotFound:
                raise RemoteConfigurationError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
            try:
                sheet = spreadsheet.worksheet(self._settings.worksheet_name)
            except gspread.WorksheetNotFound:
                # Create the sheet with headers
                sheet = spreadsheet.add_worksheet(
                    title=self._settings.worksheet_name,
                    rows=1000,
                    cols=len(ENTRY_COLUMNS),
                )
                sheet.append_row(ENTRY_COLUMNS)
            self._worksheet = sheet
        return self._worksheet


def entry_to_row(
    entry: Entry,
    header: Optional[list[str]] = None,
    existing: Optional[list] = None,
) -> list:
    """
    Convert an Entry to a worksheet row laid out by `header`.

    Cells under columns an entry does not have keep their `existing` value.
    """
    header = header or ENTRY_COLUMNS
    existing = list(existing or [])
    existing += [""] * (len(header) - len(existing))
    wire = entry.to_wire()
    row = []
    for index, column in enumerate(header):
        if column not in wire:
            row.append(existing[index])
            continue
        value = wire[column]
        if column == "tags":
            value = ",".join(value or [])
        row.append("" if value is None else value)
    return row


def row_to_entry(header: list[str], row: list) -> Entry:
    """Convert a worksheet row to an Entry."""
    padded = list(row) + [""] * (len(header) - len(row))
    return Entry.from_remote(dict(zip(header, padded)))


class WorksheetRemote(RemoteAdapter):
    """Entries in a worksheet, accessed with a service account."""

    name = "worksheet"
    push_mode = PushMode.UPSERT

    def __init__(self, client: WorksheetClient):
        self._client = client

    @property
    def supported_modes(self) -> frozenset[PushMode]:
        return frozenset(PushMode)

    @property
    def configured(self) -> bool:
        return self._client.configured

    def _sheet(self) -> gspread.Worksheet:
        return self._client.get_worksheet()

    def _read_sync(self) -> tuple[list[str], list[list]]:
        values = self._sheet().get_all_values()
        if not values:
            return list(ENTRY_COLUMNS), []
        return [str(h).strip() for h in values[0]], values[1:]

    def _pull_sync(self) -> list[Entry]:
        header, rows = self._read_sync()
        if "id" not in header:
            raise FormatError("Worksheet has no id column")
        entries = []
        for index, row in enumerate(rows, start=2):
            if not row or not any(str(cell).strip() for cell in row):
                continue
            try:
                entries.append(row_to_entry(header, row))
            except (TypeError, ValueError, ValidationError) as e:
                raise FormatError(f"Worksheet row {index} is not a valid entry: {e}")
        return entries

    def _push_sync(self, entries: list[Entry], mode: PushMode) -> None:
        sheet = self._sheet()

        if mode is PushMode.REPLACE_ALL:
            rows = [entry_to_row(entry) for entry in entries]
            sheet.clear()
            sheet.append_rows([ENTRY_COLUMNS] + rows, value_input_option="RAW")
            return

        values = sheet.get_all_values()
        if not values:
            sheet.append_row(ENTRY_COLUMNS)
            values = [list(ENTRY_COLUMNS)]
        header = [str(h).strip() for h in values[0]]
        if "id" not in header:
            raise FormatError("Worksheet has no id column")

        if mode is PushMode.APPEND:
            if entries:
                sheet.append_rows(
                    [entry_to_row(entry, header) for entry in entries],
                    value_input_option="RAW",
                )
            return

        # Upsert: rewrite rows whose id already exists, append the rest
        id_column = header.index("id")
        positions = {
            row[id_column]: number
            for number, row in enumerate(values[1:], start=2)
            if len(row) > id_column and row[id_column]
        }
        updates = []
        fresh = []
        for entry in entries:
            number = positions.get(entry.id)
            if number is None:
                fresh.append(entry_to_row(entry, header))
            else:
                row = entry_to_row(entry, header, values[number - 1])
                updates.append({"range": f"A{number}", "values": [row]})
        if updates:
            sheet.batch_update(updates, value_input_option="RAW")
        if fresh:
            sheet.append_rows(fresh, value_input_option="RAW")

    async def pull(self) -> list[Entry]:
        try:
            return await asyncio.to_thread(self._pull_sync)
        except gspread.exceptions.APIError as e:
            raise TransportError(f"Worksheet {e.response.status_code}", status_code=e.response.status_code)

    async def push(self, entries: list[Entry], mode: Optional[PushMode] = None) -> bool:
        mode = self._resolve_mode(mode)
        try:
            await asyncio.to_thread(self._push_sync, entries, mode)
        except gspread.exceptions.APIError as e:
            raise TransportError(f"Worksheet {e.response.status_code}", status_code=e.response.status_code)
        return True
