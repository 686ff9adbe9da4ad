"""Configuration package."""

from finance_tracker.config.settings import (
    AppSettings,
    GistSettings,
    GoogleSheetsSettings,
    Settings,
    SheetsSettings,
    SyncSettings,
    get_settings,
    validate_all_settings,
)

__all__ = [
    "AppSettings",
    "GistSettings",
    "GoogleSheetsSettings",
    "Settings",
    "SheetsSettings",
    "SyncSettings",
    "get_settings",
    "validate_all_settings",
]
