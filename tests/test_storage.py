"""
Tests for the entry stores.

Every implementation must behave the same through the interface, so the
shared behaviour runs against each of them.
"""

import asyncio
import json
from decimal import Decimal

import pytest

from finance_tracker.config.settings import AppSettings, Settings
from finance_tracker.orchestrator import create_app_components
from finance_tracker.services.storage import (
    ClientStateEntryStore,
    InMemoryEntryStore,
    JsonFileEntryStore,
    SqlEntryStore,
    StorageError,
    create_entry_store,
)
from finance_tracker.state import ENTRIES_KEY, ClientState


def run(coro):
    return asyncio.run(coro)


@pytest.fixture(params=["memory", "file", "client_state", "sql"])
def store(request, tmp_path):
    if request.param == "memory":
        store = InMemoryEntryStore()
    elif request.param == "file":
        store = JsonFileEntryStore(tmp_path / "entries.json")
    elif request.param == "client_state":
        store = ClientStateEntryStore(ClientState(tmp_path / "state.json"))
    else:
        store = SqlEntryStore("sqlite:///:memory:")
    run(store.init())
    return store


class TestEntryStoreContract:
    """Behaviour every store shares."""

    def test_empty_store(self, store):
        assert run(store.list_entries()) == []

    def test_upsert_and_get(self, store, make_entry):
        entry = make_entry("a", amount=50, note="Salary", tags=["work"])
        run(store.upsert(entry))
        assert run(store.get_entry("a")) == entry
        assert run(store.get_entry("missing")) is None

    def test_upsert_replaces_by_id(self, store, make_entry):
        run(store.upsert(make_entry("a", updated_at=1, amount=1)))
        run(store.upsert(make_entry("a", updated_at=2, amount=2)))
        entries = run(store.list_entries())
        assert len(entries) == 1
        assert entries[0].amount == Decimal("2")

    def test_upsert_is_idempotent(self, store, make_entry):
        entry = make_entry("a")
        run(store.upsert(entry))
        run(store.upsert(entry))
        assert run(store.list_entries()) == [entry]

    def test_delete(self, store, make_entry):
        run(store.upsert(make_entry("a")))
        assert run(store.delete("a")) is True
        assert run(store.delete("a")) is False
        assert run(store.list_entries()) == []

    def test_upsert_many(self, store, make_entry):
        written = run(store.upsert_many([make_entry("a"), make_entry("b"), make_entry("c")]))
        assert written == 3
        assert {e.id for e in run(store.list_entries())} == {"a", "b", "c"}

    def test_optional_fields_round_trip(self, store, make_entry):
        from datetime import date
        entry = make_entry(
            "d",
            principal=Decimal("300"),
            due_date=date(2024, 2, 15),
            account="Nequi",
        )
        run(store.upsert(entry))
        assert run(store.get_entry("d")) == entry


class TestJsonFileEntryStore:
    """File-specific behaviour."""

    def test_init_creates_file(self, tmp_path):
        path = tmp_path / "nested" / "entries.json"
        run(JsonFileEntryStore(path).init())
        assert json.loads(path.read_text()) == []

    def test_new_entries_go_first(self, tmp_path, make_entry):
        path = tmp_path / "entries.json"
        store = JsonFileEntryStore(path)
        run(store.upsert(make_entry("old")))
        run(store.upsert(make_entry("new")))
        assert [row["id"] for row in json.loads(path.read_text())] == ["new", "old"]

    def test_file_uses_wire_shape(self, tmp_path, make_entry):
        path = tmp_path / "entries.json"
        run(JsonFileEntryStore(path).upsert(make_entry("a", updated_at=7)))
        row = json.loads(path.read_text())[0]
        assert row["updatedAt"] == 7
        assert row["amount"] == 50

    def test_corrupt_file_raises_storage_error(self, tmp_path):
        path = tmp_path / "entries.json"
        path.write_text("{not json")
        with pytest.raises(StorageError):
            run(JsonFileEntryStore(path).list_entries())

    def test_malformed_entry_raises_storage_error_on_get(self, tmp_path, make_entry):
        """A stored row that fails validation surfaces as StorageError, not ValidationError."""
        path = tmp_path / "entries.json"
        good = make_entry("good").to_wire()
        path.write_text(json.dumps([{"id": "bad", "type": "income", "amount": "lots"}, good]))
        store = JsonFileEntryStore(path)

        with pytest.raises(StorageError, match="bad"):
            run(store.get_entry("bad"))
        assert run(store.get_entry("good")).id == "good"

    def test_non_object_row_raises_storage_error(self, tmp_path):
        path = tmp_path / "entries.json"
        path.write_text("[1, 2]")
        with pytest.raises(StorageError):
            run(JsonFileEntryStore(path).get_entry("a"))


class TestClientStateEntryStore:
    def test_entries_live_under_fixed_key(self, make_entry):
        state = ClientState()
        run(ClientStateEntryStore(state).upsert(make_entry("a")))
        assert state.get(ENTRIES_KEY)[0]["id"] == "a"


class TestSqlEntryStore:
    def test_list_is_newest_first(self, make_entry):
        store = SqlEntryStore("sqlite:///:memory:")
        run(store.init())
        run(store.upsert(make_entry("a", updated_at=1)))
        run(store.upsert(make_entry("b", updated_at=3)))
        run(store.upsert(make_entry("c", updated_at=2)))
        assert [e.id for e in run(store.list_entries())] == ["b", "c", "a"]


class TestCreateEntryStore:
    def test_file_store_without_database(self, tmp_path):
        settings = AppSettings(data_dir=str(tmp_path), database_url=None)
        assert isinstance(create_entry_store(settings), JsonFileEntryStore)

    def test_sql_store_with_database(self, tmp_path):
        settings = AppSettings(data_dir=str(tmp_path), database_url="sqlite:///:memory:")
        assert isinstance(create_entry_store(settings), SqlEntryStore)

    def test_client_state_store_shares_state(self, tmp_path, make_entry):
        """ENTRY_STORE=client_state keeps entries in the given ClientState."""
        settings = AppSettings(data_dir=str(tmp_path), database_url=None, entry_store="client_state")
        state = ClientState(settings.client_state_path)
        store = create_entry_store(settings, state)

        assert isinstance(store, ClientStateEntryStore)
        run(store.upsert(make_entry("a")))
        assert state.entries()[0]["id"] == "a"
        assert json.loads(settings.client_state_path.read_text())[ENTRIES_KEY][0]["id"] == "a"

    def test_database_wins_over_entry_store(self, tmp_path):
        settings = AppSettings(
            data_dir=str(tmp_path),
            database_url="sqlite:///:memory:",
            entry_store="client_state",
        )
        assert isinstance(create_entry_store(settings), SqlEntryStore)

    def test_unknown_entry_store_rejected(self, tmp_path):
        with pytest.raises(ValueError):
            AppSettings(data_dir=str(tmp_path), entry_store="redis")


class TestComponentStore:
    """Store selection inside the application factory."""

    def test_client_state_store_shares_engine_state(self, tmp_path, monkeypatch, make_entry):
        for name in ("DATABASE_URL", "SHEETS_WEBAPP_URL", "GOOGLE_SHEETS_CREDENTIALS_PATH"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.setenv("DATA_DIR", str(tmp_path))
        monkeypatch.setenv("ENTRY_STORE", "client_state")

        components = create_app_components(settings=Settings())
        run(components.store.upsert(make_entry("a")))

        assert isinstance(components.store, ClientStateEntryStore)
        assert components.state.entries()[0]["id"] == "a"
