"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for entry storage.
This allows us to:
1. Run against a JSON file or a relational database with the same code
2. Keep the client's entry snapshot behind the same operations
3. Use in-memory storage for testing
4. Keep the reconciler decoupled from storage implementation

The interface is intentionally small. The reconciler only needs point
lookups and the full set; ordering and filtering happen above it.
"""

from abc import ABC, abstractmethod
from typing import Optional

from finance_tracker.models.entry import Entry


class EntryStorageInterface(ABC):
    """
    Abstract interface for entry storage operations.

    Implementations must guarantee:
    - upsert is idempotent for the same revision
    - list_entries reflects every earlier upsert and delete (read-your-writes)
    """

    async def init(self) -> None:
        """Prepare the backend (create files or tables). Safe to call twice."""

    @abstractmethod
    async def list_entries(self) -> list[Entry]:
        """
        Return every stored entry.

        No ordering is guaranteed to callers.
        """
        pass

    @abstractmethod
    async def get_entry(self, entry_id: str) -> Optional[Entry]:
        """
        Retrieve an entry by its id.

        Returns:
            The entry if found, None otherwise
        """
        pass

    @abstractmethod
    async def upsert(self, entry: Entry) -> Entry:
        """
        Insert or replace the entry with the same id.

        Returns:
            The stored entry

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    async def delete(self, entry_id: str) -> bool:
        """
        Delete an entry by id.

        Returns:
            True if an entry was removed, False if it did not exist
        """
        pass

    async def upsert_many(self, entries: list[Entry]) -> int:
        """Upsert several entries. Returns how many were written."""
        for entry in entries:
            await self.upsert(entry)
        return len(entries)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class BackendUnavailableError(StorageError):
    """Could not connect to storage backend."""
    pass
