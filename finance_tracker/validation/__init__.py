"""Validation package."""

from finance_tracker.validation.validator import (
    REQUIRED_DEBT_FIELDS_MESSAGE,
    REQUIRED_ENTRY_FIELDS_MESSAGE,
    DebtSchedule,
    EntryValidationError,
    EntryValidator,
)

__all__ = [
    "REQUIRED_DEBT_FIELDS_MESSAGE",
    "REQUIRED_ENTRY_FIELDS_MESSAGE",
    "DebtSchedule",
    "EntryValidationError",
    "EntryValidator",
]
