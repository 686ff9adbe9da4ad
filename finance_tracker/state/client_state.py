"""
Persisted Client State

A small key-value store backed by one JSON file. It holds everything a
client needs to survive a restart: the entry snapshot, pending ids, the ids
last seen on each remote, the last sync time and the remote configuration.

DESIGN DECISION: Keys are fixed strings and values are plain JSON. The
file can be inspected and repaired by hand, and an unreadable file degrades
to empty state instead of stopping the app.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Union

import structlog


ENTRIES_KEY = "finanzas_entries_v1"
PENDING_IDS_KEY = "finanzas_pending_ids"
REMOTE_IDS_KEY = "finanzas_remote_ids"
LAST_SYNC_KEY = "finanzas_last_sync"
SYNC_CONFIG_KEY = "finanzas_sync_config_v1"
WEBAPP_URL_KEY = "finanzas_sheets_webapp_url"
AUTO_SYNC_KEY = "finanzas_auto_sync_google"


logger = structlog.get_logger(__name__)


class ClientState:
    """
    JSON-file key-value state.

    With no path the state lives only in memory, which is what tests and
    throwaway sessions want.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self._path = Path(path) if path else None
        self._values: dict[str, Any] = self._load()

    def _load(self) -> dict[str, Any]:
        if self._path is None or not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as e:
            logger.warning("client_state_unreadable", path=str(self._path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("client_state_not_an_object", path=str(self._path))
            return {}
        return data

    def _save(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        # Write-then-rename so a crash never leaves half a file behind
        fd, tmp_name = tempfile.mkstemp(dir=self._path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(self._values, handle, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self._path)
        except Exception:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

    # -------------------------------------------------------------------------
    # Raw access
    # -------------------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def put(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._save()

    def remove(self, key: str) -> None:
        if key in self._values:
            del self._values[key]
            self._save()

    # -------------------------------------------------------------------------
    # Entry snapshot
    # -------------------------------------------------------------------------

    def entries(self) -> list[dict]:
        value = self.get(ENTRIES_KEY, [])
        return value if isinstance(value, list) else []

    def set_entries(self, entries: list[dict]) -> None:
        self.put(ENTRIES_KEY, entries)

    # -------------------------------------------------------------------------
    # Pending and known remote ids (keyed by backend)
    # -------------------------------------------------------------------------

    def _ids_by_backend(self, key: str) -> dict[str, list[str]]:
        value = self.get(key, {})
        if not isinstance(value, dict):
            return {}
        return {
            backend: [str(i) for i in ids]
            for backend, ids in value.items()
            if isinstance(ids, list)
        }

    def pending_ids(self) -> dict[str, list[str]]:
        return self._ids_by_backend(PENDING_IDS_KEY)

    def set_pending_ids(self, pending: dict[str, list[str]]) -> None:
        self.put(PENDING_IDS_KEY, pending)

    def remote_ids(self, backend: str) -> set[str]:
        return set(self._ids_by_backend(REMOTE_IDS_KEY).get(backend, []))

    def set_remote_ids(self, backend: str, ids: set[str]) -> None:
        value = self._ids_by_backend(REMOTE_IDS_KEY)
        value[backend] = sorted(ids)
        self.put(REMOTE_IDS_KEY, value)

    # -------------------------------------------------------------------------
    # Sync bookkeeping and remote configuration
    # -------------------------------------------------------------------------

    def last_sync(self) -> int:
        try:
            return int(self.get(LAST_SYNC_KEY, 0) or 0)
        except (TypeError, ValueError):
            return 0

    def set_last_sync(self, timestamp_ms: int) -> None:
        self.put(LAST_SYNC_KEY, int(timestamp_ms))

    def sync_config(self) -> dict[str, str]:
        """Gist credentials as {token, gistId}."""
        value = self.get(SYNC_CONFIG_KEY, {})
        if not isinstance(value, dict):
            return {"token": "", "gistId": ""}
        return {
            "token": str(value.get("token") or ""),
            "gistId": str(value.get("gistId") or ""),
        }

    def set_sync_config(self, token: Optional[str], gist_id: Optional[str]) -> dict[str, str]:
        config = {"token": token or "", "gistId": gist_id or ""}
        self.put(SYNC_CONFIG_KEY, config)
        return config

    def webapp_url(self, default: Optional[str] = None) -> Optional[str]:
        return self.get(WEBAPP_URL_KEY) or default

    def set_webapp_url(self, url: Optional[str]) -> None:
        self.put(WEBAPP_URL_KEY, url or "")

    def auto_sync(self, default: bool = True) -> bool:
        value = self.get(AUTO_SYNC_KEY)
        if value is None:
            return default
        return value in (True, "1", 1)

    def set_auto_sync(self, enabled: bool) -> None:
        self.put(AUTO_SYNC_KEY, "1" if enabled else "0")
