"""
Relational Entry Store

Entries in a single `entries` table via SQLAlchemy Core. Any SQLAlchemy URL
works; in practice that is SQLite locally and PostgreSQL when DATABASE_URL
points at a hosted database.

TRADEOFFS:
- Upsert is select-then-insert/update inside one transaction instead of a
  dialect-specific ON CONFLICT, so the same code runs everywhere
- Tags are stored comma-joined in one TEXT column
- Calls are blocking and run in a worker thread
"""

import asyncio
from typing import Optional

from sqlalchemy import (
    BigInteger,
    Column,
    Date,
    MetaData,
    Numeric,
    String,
    Table,
    Text,
    create_engine,
    delete,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool
from tenacity import retry, stop_after_attempt, wait_exponential

from finance_tracker.models.entry import Entry
from finance_tracker.services.storage.interface import (
    BackendUnavailableError,
    EntryStorageInterface,
    StorageError,
)


metadata = MetaData()

entries_table = Table(
    "entries",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("type", String(20), nullable=False),
    Column("amount", Numeric(18, 4), nullable=False),
    Column("principal", Numeric(18, 4)),
    Column("date", Date, nullable=False),
    Column("due_date", Date),
    Column("note", Text),
    Column("who", Text),
    Column("category", Text),
    Column("account", Text),
    Column("tags", Text),
    Column("updated_at", BigInteger, nullable=False),
)


def create_db_engine(database_url: str) -> Engine:
    """Build an engine, with the SQLite settings a threaded caller needs."""
    connect_args = {}
    kwargs = {}
    if database_url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    return create_engine(database_url, connect_args=connect_args, **kwargs)


class SqlEntryStore(EntryStorageInterface):
    """
    SQLAlchemy implementation of entry storage.

    One row per entry id; updated_at doubles as the list ordering.
    """

    def __init__(self, database_url: Optional[str] = None, engine: Optional[Engine] = None):
        if engine is None and not database_url:
            raise ValueError("SqlEntryStore needs a database_url or an engine")
        self._engine = engine or create_db_engine(database_url)

    @property
    def engine(self) -> Engine:
        return self._engine

    def _entry_to_row(self, entry: Entry) -> dict:
        """Convert an Entry to a table row."""
        return {
            "id": entry.id,
            "type": entry.type.value,
            "amount": entry.amount,
            "principal": entry.principal,
            "date": entry.date,
            "due_date": entry.due_date,
            "note": entry.note or None,
            "who": entry.who or None,
            "category": entry.category or None,
            "account": entry.account or None,
            "tags": ",".join(entry.tags) if entry.tags else None,
            "updated_at": entry.updated_at,
        }

    def _row_to_entry(self, row) -> Entry:
        """Convert a table row to an Entry."""
        data = dict(row._mapping)
        return Entry.model_validate(data)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _create_schema(self) -> None:
        try:
            metadata.create_all(self._engine)
        except SQLAlchemyError as e:
            raise BackendUnavailableError(f"Failed to prepare entries table: {e}")

    async def init(self) -> None:
        await asyncio.to_thread(self._create_schema)

    def _list_sync(self) -> list[Entry]:
        with self._engine.connect() as conn:
            rows = conn.execute(
                select(entries_table).order_by(entries_table.c.updated_at.desc())
            ).fetchall()
        return [self._row_to_entry(row) for row in rows]

    def _get_sync(self, entry_id: str) -> Optional[Entry]:
        with self._engine.connect() as conn:
            row = conn.execute(
                select(entries_table).where(entries_table.c.id == entry_id)
            ).first()
        return self._row_to_entry(row) if row else None

    def _upsert_sync(self, entries: list[Entry]) -> None:
        with self._engine.begin() as conn:
            for entry in entries:
                row = self._entry_to_row(entry)
                exists = conn.execute(
                    select(entries_table.c.id).where(entries_table.c.id == entry.id)
                ).first()
                if exists:
                    conn.execute(
                        update(entries_table)
                        .where(entries_table.c.id == entry.id)
                        .values(**{k: v for k, v in row.items() if k != "id"})
                    )
                else:
                    conn.execute(insert(entries_table).values(**row))

    def _delete_sync(self, entry_id: str) -> bool:
        with self._engine.begin() as conn:
            result = conn.execute(
                delete(entries_table).where(entries_table.c.id == entry_id)
            )
        return result.rowcount > 0

    async def list_entries(self) -> list[Entry]:
        try:
            return await asyncio.to_thread(self._list_sync)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to list entries: {e}")

    async def get_entry(self, entry_id: str) -> Optional[Entry]:
        try:
            return await asyncio.to_thread(self._get_sync, entry_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to get entry: {e}")

    async def upsert(self, entry: Entry) -> Entry:
        try:
            await asyncio.to_thread(self._upsert_sync, [entry])
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save entry: {e}")
        return entry

    async def upsert_many(self, entries: list[Entry]) -> int:
        if not entries:
            return 0
        try:
            await asyncio.to_thread(self._upsert_sync, entries)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to save entries: {e}")
        return len(entries)

    async def delete(self, entry_id: str) -> bool:
        try:
            return await asyncio.to_thread(self._delete_sync, entry_id)
        except SQLAlchemyError as e:
            raise StorageError(f"Failed to delete entry: {e}")
