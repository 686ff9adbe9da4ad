"""Services package."""

from finance_tracker.services.remote import (
    FormatError,
    GistRemote,
    RemoteAdapter,
    RemoteConfigurationError,
    SheetsCsvSource,
    SheetsWebAppRemote,
    SyncError,
    TransportError,
    WorksheetClient,
    WorksheetRemote,
)
from finance_tracker.services.storage import (
    BackendUnavailableError,
    EntryStorageInterface,
    NotFoundError,
    StorageError,
    create_entry_store,
)

__all__ = [
    # Remote adapters
    "FormatError",
    "GistRemote",
    "RemoteAdapter",
    "RemoteConfigurationError",
    "SheetsCsvSource",
    "SheetsWebAppRemote",
    "SyncError",
    "TransportError",
    "WorksheetClient",
    "WorksheetRemote",
    # Storage services
    "BackendUnavailableError",
    "EntryStorageInterface",
    "NotFoundError",
    "StorageError",
    "create_entry_store",
]
