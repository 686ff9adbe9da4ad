"""
Remote Sync Adapters Package

Each adapter exposes pull() and push(); none of them merges.
"""

from finance_tracker.services.remote.interface import (
    FormatError,
    RemoteAdapter,
    RemoteConfigurationError,
    SyncError,
    TransportError,
    decode_entries,
)
from finance_tracker.services.remote.gist import GistRemote
from finance_tracker.services.remote.sheets_webapp import SheetsWebAppRemote
from finance_tracker.services.remote.sheets_csv import SheetsCsvSource, parse_csv_rows
from finance_tracker.services.remote.worksheet import (
    ENTRY_COLUMNS,
    WorksheetClient,
    WorksheetRemote,
)

__all__ = [
    # Interface
    "RemoteAdapter",
    "decode_entries",
    # Exceptions
    "FormatError",
    "RemoteConfigurationError",
    "SyncError",
    "TransportError",
    # Adapters
    "ENTRY_COLUMNS",
    "GistRemote",
    "SheetsCsvSource",
    "SheetsWebAppRemote",
    "WorksheetClient",
    "WorksheetRemote",
    "parse_csv_rows",
]
