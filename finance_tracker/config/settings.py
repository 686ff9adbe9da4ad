"""
Configuration Management for Finance Tracker

Uses pydantic-settings for type-safe configuration from environment variables.

DESIGN DECISION: All configuration is centralized here.
This makes it easy to see what external dependencies exist and
ensures all required configuration is validated at startup.

Remote credentials are optional at this level: a missing Gist token or
web app URL only disables that backend, it never stops the app from
serving local data.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class GistSettings(BaseSettings):
    """GitHub Gist remote configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    github_token: Optional[str] = Field(
        default=None,
        description="GitHub token with gist scope"
    )
    gist_id: Optional[str] = Field(
        default=None,
        description="ID of the gist holding the entries file"
    )
    gist_filename: str = Field(
        default="finanzas.json",
        description="Name of the file inside the gist"
    )


class SheetsSettings(BaseSettings):
    """Google Sheets web app and published CSV configuration."""

    model_config = SettingsConfigDict(
        env_prefix="SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    webapp_url: Optional[str] = Field(
        default=None,
        description="URL of the Apps Script web app (GET returns entries, POST appends)"
    )
    csv_url: Optional[str] = Field(
        default=None,
        description="URL of a spreadsheet published as CSV, used for imports"
    )


class GoogleSheetsSettings(BaseSettings):
    """Google Sheets worksheet remote configuration (service account)."""

    model_config = SettingsConfigDict(
        env_prefix="GOOGLE_SHEETS_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    credentials_path: Optional[str] = Field(
        default=None,
        description="Path to Google service account credentials JSON"
    )
    spreadsheet_id: Optional[str] = Field(
        default=None,
        description="ID of the Google Sheets spreadsheet to use"
    )
    worksheet_name: str = Field(
        default="Finanzas",
        description="Name of the worksheet holding the entries"
    )

    @field_validator('credentials_path')
    @classmethod
    def validate_credentials_path(cls, v: Optional[str]) -> Optional[str]:
        """Warn if credentials file doesn't exist (but don't fail - might be mounted later)."""
        if v and not Path(v).exists():
            import warnings
            warnings.warn(
                f"Google credentials file not found at {v}. "
                "Make sure it exists before enabling the worksheet remote."
            )
        return v

    @property
    def is_configured(self) -> bool:
        return bool(self.credentials_path and self.spreadsheet_id)


class SyncSettings(BaseSettings):
    """Timing for the debounced push and periodic poll."""

    model_config = SettingsConfigDict(
        env_prefix="SYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    debounce_ms: int = Field(
        default=800,
        ge=0,
        le=60000,
        description="Quiet period after the last local edit before pushing"
    )
    poll_interval_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Interval between background pulls"
    )
    auto_sync: bool = Field(
        default=True,
        description="Push and poll the Sheets web app automatically"
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout for every remote HTTP request"
    )

    @property
    def debounce_seconds(self) -> float:
        return self.debounce_ms / 1000


class AppSettings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Logging
    debug_mode: bool = Field(
        default=False,
        description="Log at DEBUG level"
    )

    # HTTP server
    host: str = Field(
        default="0.0.0.0",
        description="Interface the API listens on"
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port the API listens on"
    )
    cors_origin: str = Field(
        default="*",
        description="Allowed CORS origin"
    )

    # Storage
    data_dir: str = Field(
        default="data",
        description="Directory for the entries file and client state"
    )
    database_url: Optional[str] = Field(
        default=None,
        description="SQLAlchemy URL; when set, entries live in a relational table"
    )
    entry_store: Literal["file", "client_state"] = Field(
        default="file",
        description="Where entries live without a database: entries.json or the client state file"
    )

    # Ledger
    accounts: str = Field(
        default="Efectivo,Nequi,Daviplata,Banco,Otros",
        description="Comma-separated list of accounts shown in balances"
    )

    @property
    def accounts_list(self) -> list[str]:
        """Get accounts as a list."""
        return [acc.strip() for acc in self.accounts.split(",") if acc.strip()]

    @property
    def entries_path(self) -> Path:
        return Path(self.data_dir) / "entries.json"

    @property
    def client_state_path(self) -> Path:
        return Path(self.data_dir) / "client_state.json"


class Settings(BaseSettings):
    """
    Root settings container.

    Aggregates all sub-settings for easy access.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    # Note: These are loaded lazily to allow partial configuration

    @property
    def gist(self) -> GistSettings:
        return GistSettings()

    @property
    def sheets(self) -> SheetsSettings:
        return SheetsSettings()

    @property
    def google_sheets(self) -> GoogleSheetsSettings:
        return GoogleSheetsSettings()

    @property
    def sync(self) -> SyncSettings:
        return SyncSettings()

    @property
    def app(self) -> AppSettings:
        return AppSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get application settings (cached).

    Uses LRU cache to ensure settings are only loaded once.
    Call get_settings.cache_clear() to reload if needed.
    """
    return Settings()


def validate_all_settings() -> dict[str, bool]:
    """
    Validate all settings are properly configured.

    Returns a dict of {setting_name: is_valid}.
    Useful for startup checks.
    """
    results = {}

    settings = get_settings()

    for name in ("gist", "sheets", "google_sheets", "sync", "app"):
        try:
            _ = getattr(settings, name)
            results[name] = True
        except Exception as e:
            results[name] = False
            results[f"{name}_error"] = str(e)

    return results
