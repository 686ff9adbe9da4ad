"""
Storage Services Package

Provides the abstract entry store interface and its implementations.
A relational table is used when DATABASE_URL is set. Otherwise entries live
in their own JSON file, or inside the client state file when
ENTRY_STORE=client_state.
"""

from typing import Optional

from finance_tracker.config.settings import AppSettings
from finance_tracker.services.storage.interface import (
    BackendUnavailableError,
    EntryStorageInterface,
    NotFoundError,
    StorageError,
)
from finance_tracker.services.storage.list_store import (
    ClientStateEntryStore,
    InMemoryEntryStore,
    JsonFileEntryStore,
    ListBackedEntryStore,
)
from finance_tracker.services.storage.sql_store import SqlEntryStore
from finance_tracker.state.client_state import ClientState


def create_entry_store(
    settings: AppSettings,
    state: Optional[ClientState] = None,
) -> EntryStorageInterface:
    """Pick the relational store when a database is configured, a list-backed store otherwise."""
    if settings.database_url:
        return SqlEntryStore(settings.database_url)
    if settings.entry_store == "client_state":
        return ClientStateEntryStore(state or ClientState(settings.client_state_path))
    return JsonFileEntryStore(settings.entries_path)


__all__ = [
    # Interface
    "EntryStorageInterface",
    # Exceptions
    "BackendUnavailableError",
    "NotFoundError",
    "StorageError",
    # Implementations
    "ClientStateEntryStore",
    "InMemoryEntryStore",
    "JsonFileEntryStore",
    "ListBackedEntryStore",
    "SqlEntryStore",
    "create_entry_store",
]
