"""
Data Models Package

This package contains all Pydantic models used in the Finance Tracker.
All data flowing through the system must conform to these schemas.
"""

from finance_tracker.models.entry import (
    OUTFLOW_TYPES,
    Entry,
    EntryType,
    PushMode,
    new_entry_id,
    normalize_entry_type,
    now_ms,
    parse_amount,
    parse_date_or_today,
)
from finance_tracker.models.sync import (
    BackendStatus,
    SyncResult,
    SyncStatus,
)
from finance_tracker.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entry models
    "OUTFLOW_TYPES",
    "Entry",
    "EntryType",
    "PushMode",
    "new_entry_id",
    "normalize_entry_type",
    "now_ms",
    "parse_amount",
    "parse_date_or_today",
    # Sync models
    "BackendStatus",
    "SyncResult",
    "SyncStatus",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
