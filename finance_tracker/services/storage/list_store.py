"""
List-backed Entry Stores

Three stores that keep the whole entry set as one JSON-compatible list:
- InMemoryEntryStore: a Python list, for tests
- JsonFileEntryStore: a JSON array on disk, the default server store
- ClientStateEntryStore: the client's entry snapshot in ClientState

New entries go to the front of the list, so the stored order reads
newest-first, the way clients have always written the file.
"""

import json
import os
import tempfile
from abc import abstractmethod
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from finance_tracker.models.entry import Entry
from finance_tracker.services.storage.interface import (
    EntryStorageInterface,
    StorageError,
)
from finance_tracker.state.client_state import ClientState


class ListBackedEntryStore(EntryStorageInterface):
    """Shared logic; subclasses only load and save the raw list."""

    @abstractmethod
    def _load(self) -> list[dict]:
        pass

    @abstractmethod
    def _save(self, rows: list[dict]) -> None:
        pass

    def _rows(self) -> list[dict]:
        try:
            return self._load()
        except (OSError, ValueError) as e:
            raise StorageError(f"Failed to read entries: {e}")

    def _write(self, rows: list[dict]) -> None:
        try:
            self._save(rows)
        except (OSError, TypeError, ValueError) as e:
            raise StorageError(f"Failed to write entries: {e}")

    @staticmethod
    def _parse(row: dict) -> Entry:
        try:
            return Entry.model_validate(row)
        except ValidationError as e:
            raise StorageError(f"Malformed stored entry {row.get('id')!r}: {e}")

    async def list_entries(self) -> list[Entry]:
        return [self._parse(row) for row in self._rows()]

    async def get_entry(self, entry_id: str) -> Optional[Entry]:
        for row in self._rows():
            if row.get("id") == entry_id:
                return self._parse(row)
        return None

    async def upsert(self, entry: Entry) -> Entry:
        rows = self._rows()
        wire = entry.to_wire()
        for index, row in enumerate(rows):
            if row.get("id") == entry.id:
                rows[index] = wire
                break
        else:
            rows.insert(0, wire)
        self._write(rows)
        return entry

    async def upsert_many(self, entries: list[Entry]) -> int:
        """One read and one write for the whole batch."""
        if not entries:
            return 0
        rows = self._rows()
        positions = {row.get("id"): index for index, row in enumerate(rows)}
        fresh = []
        for entry in entries:
            wire = entry.to_wire()
            if entry.id in positions:
                rows[positions[entry.id]] = wire
            else:
                fresh.append(wire)
        self._write(fresh[::-1] + rows)
        return len(entries)

    async def delete(self, entry_id: str) -> bool:
        rows = self._rows()
        remaining = [row for row in rows if row.get("id") != entry_id]
        if len(remaining) == len(rows):
            return False
        self._write(remaining)
        return True


class InMemoryEntryStore(ListBackedEntryStore):
    """Entries in a plain list. Nothing survives the process."""

    def __init__(self, entries: Optional[list[Entry]] = None):
        self._data: list[dict] = [entry.to_wire() for entry in entries or []]

    def _load(self) -> list[dict]:
        return [dict(row) for row in self._data]

    def _save(self, rows: list[dict]) -> None:
        self._data = rows


class JsonFileEntryStore(ListBackedEntryStore):
    """Entries as a pretty-printed JSON array in a single file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    async def init(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        if not self._path.exists():
            self._path.write_text("[]", encoding="utf-8")

    def _load(self) -> list[dict]:
        if not self._path.exists():
            return []
        data = json.loads(self._path.read_text(encoding="utf-8") or "[]")
        if not isinstance(data, list):
            raise ValueError(f"{self._path} does not hold a JSON array")
        if not all(isinstance(row, dict) for row in data):
            raise ValueError(f"{self._path} holds a non-object entry")
        return data

    def _save(self, rows: list[dict]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(rows, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except Exception:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise


class ClientStateEntryStore(ListBackedEntryStore):
    """The client's entry snapshot, stored under a fixed ClientState key."""

    def __init__(self, state: ClientState):
        self._state = state

    def _load(self) -> list[dict]:
        return [row for row in self._state.entries() if isinstance(row, dict)]

    def _save(self, rows: list[dict]) -> None:
        self._state.set_entries(rows)
