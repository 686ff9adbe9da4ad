"""
Tests for settings and persisted client state.
"""

import json

import pytest

from finance_tracker.config.settings import (
    AppSettings,
    GoogleSheetsSettings,
    Settings,
    SyncSettings,
)
from finance_tracker.state import (
    AUTO_SYNC_KEY,
    ENTRIES_KEY,
    LAST_SYNC_KEY,
    SYNC_CONFIG_KEY,
    ClientState,
)


class TestSettings:
    """Tests for environment-driven settings."""

    def test_sync_defaults(self, monkeypatch):
        monkeypatch.delenv("SYNC_DEBOUNCE_MS", raising=False)
        monkeypatch.delenv("SYNC_POLL_INTERVAL_SECONDS", raising=False)
        settings = SyncSettings()
        assert settings.debounce_ms == 800
        assert settings.debounce_seconds == 0.8
        assert settings.poll_interval_seconds == 30.0

    def test_sync_reads_environment(self, monkeypatch):
        monkeypatch.setenv("SYNC_DEBOUNCE_MS", "1500")
        monkeypatch.setenv("SYNC_AUTO_SYNC", "false")
        settings = SyncSettings()
        assert settings.debounce_seconds == 1.5
        assert settings.auto_sync is False

    def test_accounts_list(self):
        settings = AppSettings(accounts=" Cash , Nequi,,Otros ")
        assert settings.accounts_list == ["Cash", "Nequi", "Otros"]

    def test_paths_follow_data_dir(self, tmp_path):
        settings = AppSettings(data_dir=str(tmp_path))
        assert settings.entries_path == tmp_path / "entries.json"
        assert settings.client_state_path == tmp_path / "client_state.json"

    def test_port_bounds(self):
        with pytest.raises(ValueError):
            AppSettings(port=0)

    def test_worksheet_configured_needs_both_values(self, tmp_path):
        credentials = tmp_path / "creds.json"
        credentials.write_text("{}")
        assert not GoogleSheetsSettings(credentials_path=None, spreadsheet_id="x").is_configured
        assert GoogleSheetsSettings(
            credentials_path=str(credentials), spreadsheet_id="x",
        ).is_configured

    def test_missing_credentials_file_warns(self, tmp_path):
        with pytest.warns(UserWarning):
            GoogleSheetsSettings(credentials_path=str(tmp_path / "missing.json"))

    def test_root_settings_sections(self, monkeypatch):
        monkeypatch.setenv("GIST_ID", "abc")
        settings = Settings()
        assert settings.gist.gist_id == "abc"
        assert settings.gist.gist_filename == "finanzas.json"


class TestClientState:
    """Tests for the JSON-file key-value state."""

    def test_memory_only(self):
        state = ClientState()
        state.put("k", 1)
        assert state.get("k") == 1

    def test_persists_under_fixed_keys(self, tmp_path):
        path = tmp_path / "state.json"
        state = ClientState(path)
        state.set_last_sync(99)
        state.set_sync_config("tok", "gid")
        state.set_auto_sync(False)

        raw = json.loads(path.read_text())
        assert raw[LAST_SYNC_KEY] == 99
        assert raw[SYNC_CONFIG_KEY] == {"token": "tok", "gistId": "gid"}
        assert raw[AUTO_SYNC_KEY] == "0"

        reloaded = ClientState(path)
        assert reloaded.last_sync() == 99
        assert reloaded.auto_sync() is False

    def test_corrupt_file_degrades_to_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("{broken")
        state = ClientState(path)
        assert state.entries() == []
        assert state.last_sync() == 0

    def test_non_object_file_degrades_to_empty(self, tmp_path):
        path = tmp_path / "state.json"
        path.write_text("[1, 2]")
        assert ClientState(path).get(ENTRIES_KEY) is None

    @pytest.mark.parametrize("stored,expected", [("1", True), ("0", False), (True, True), ("yes", False)])
    def test_auto_sync_flag(self, stored, expected):
        state = ClientState()
        state.put(AUTO_SYNC_KEY, stored)
        assert state.auto_sync() is expected

    def test_auto_sync_default(self):
        assert ClientState().auto_sync(default=False) is False
        assert ClientState().auto_sync() is True

    def test_malformed_values_are_tolerated(self):
        state = ClientState()
        state.put(ENTRIES_KEY, {"not": "a list"})
        state.put(LAST_SYNC_KEY, "soon")
        state.put(SYNC_CONFIG_KEY, "junk")
        assert state.entries() == []
        assert state.last_sync() == 0
        assert state.sync_config() == {"token": "", "gistId": ""}

    def test_remote_ids_by_backend(self):
        state = ClientState()
        state.set_remote_ids("gist", {"b", "a"})
        assert state.remote_ids("gist") == {"a", "b"}
        assert state.remote_ids("sheets_webapp") == set()

    def test_webapp_url_default(self):
        state = ClientState()
        assert state.webapp_url("https://env") == "https://env"
        state.set_webapp_url("https://saved")
        assert state.webapp_url("https://env") == "https://saved"
