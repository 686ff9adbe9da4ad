"""Persisted client state package."""

from finance_tracker.state.client_state import (
    AUTO_SYNC_KEY,
    ENTRIES_KEY,
    LAST_SYNC_KEY,
    PENDING_IDS_KEY,
    REMOTE_IDS_KEY,
    SYNC_CONFIG_KEY,
    WEBAPP_URL_KEY,
    ClientState,
)

__all__ = [
    "AUTO_SYNC_KEY",
    "ENTRIES_KEY",
    "LAST_SYNC_KEY",
    "PENDING_IDS_KEY",
    "REMOTE_IDS_KEY",
    "SYNC_CONFIG_KEY",
    "WEBAPP_URL_KEY",
    "ClientState",
]
