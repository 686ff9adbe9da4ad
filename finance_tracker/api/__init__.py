"""REST API package."""

from finance_tracker.api.app import create_app
from finance_tracker.api.export import CSV_COLUMNS, entries_to_csv, entries_to_xlsx

__all__ = [
    "CSV_COLUMNS",
    "create_app",
    "entries_to_csv",
    "entries_to_xlsx",
]
