"""
Audit Models for Finance Tracker

Every local mutation and every sync attempt is logged for audit purposes.
This provides:
1. Traceability of what changed locally and when
2. Debugging information when a remote misbehaves
3. A history to reconstruct why an entry looks the way it does

DESIGN DECISION: Audit events are append-only. We never delete or modify them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """
    Types of events we audit.
    """
    # Local mutations
    ENTRY_SAVED = "entry_saved"
    ENTRY_DELETED = "entry_deleted"
    DEBT_SCHEDULED = "debt_scheduled"
    ENTRY_SETTLED = "entry_settled"

    # Sync
    PULL_COMPLETED = "pull_completed"
    PULL_STALE_DROPPED = "pull_stale_dropped"
    PUSH_COMPLETED = "push_completed"
    PUSH_SKIPPED = "push_skipped"
    IMPORT_COMPLETED = "import_completed"
    SYNC_FAILED = "sync_failed"
    REMOTE_RECONFIGURED = "remote_reconfigured"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    Every significant action creates one of these.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Context - which entry or backend is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity ('entry' or 'backend')"
    )
    entity_id: Optional[str] = Field(
        default=None,
        description="Entry id or backend name"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )

    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.entry_saved(entry_id, "income", "1500")
        event = AuditEventBuilder.sync_failed("gist", "pull", "Gist 404")
    """

    @staticmethod
    def entry_saved(
        entry_id: str,
        entry_type: str,
        amount: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_SAVED,
            entity_type="entry",
            entity_id=entry_id,
            description=f"Entry saved: {entry_type} {amount}",
            details={
                "type": entry_type,
                "amount": amount,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_deleted(entry_id: str, existed: bool) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_DELETED,
            entity_type="entry",
            entity_id=entry_id,
            description="Entry deleted" if existed else "Delete requested for unknown entry",
            details={"existed": existed},
            is_user_action=True,
        )

    @staticmethod
    def debt_scheduled(
        installment_ids: list[str],
        total: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.DEBT_SCHEDULED,
            entity_type="entry",
            description=f"Debt of {total} split into {len(installment_ids)} installments",
            details={
                "installment_ids": installment_ids,
                "total": total,
            },
            is_user_action=True,
        )

    @staticmethod
    def entry_settled(
        source_id: str,
        settlement_id: str,
        settlement_type: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.ENTRY_SETTLED,
            entity_type="entry",
            entity_id=settlement_id,
            description=f"Entry {source_id} settled as {settlement_type}",
            details={
                "source_id": source_id,
                "settlement_type": settlement_type,
            },
            is_user_action=True,
        )

    @staticmethod
    def pull_completed(
        backend: str,
        pulled: int,
        merged: int,
        changed: int,
        acknowledged: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PULL_COMPLETED,
            entity_type="backend",
            entity_id=backend,
            description=f"Pulled {pulled} entries from {backend}, {changed} local changes",
            details={
                "pulled": pulled,
                "merged": merged,
                "changed": changed,
                "acknowledged_pending": acknowledged,
            },
        )

    @staticmethod
    def pull_stale_dropped(backend: str, sequence: int, latest: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PULL_STALE_DROPPED,
            severity=AuditSeverity.WARNING,
            entity_type="backend",
            entity_id=backend,
            description=f"Dropped stale snapshot from {backend}",
            details={"sequence": sequence, "latest": latest},
        )

    @staticmethod
    def push_completed(
        backend: str,
        mode: str,
        pushed: int,
        pending: int,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUSH_COMPLETED,
            entity_type="backend",
            entity_id=backend,
            description=f"Pushed {pushed} entries to {backend} ({mode})",
            details={
                "mode": mode,
                "pushed": pushed,
                "pending": pending,
            },
        )

    @staticmethod
    def push_skipped(backend: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PUSH_SKIPPED,
            severity=AuditSeverity.DEBUG,
            entity_type="backend",
            entity_id=backend,
            description=f"Nothing new to push to {backend}",
        )

    @staticmethod
    def import_completed(backend: str, imported: int) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            entity_type="backend",
            entity_id=backend,
            description=f"Imported {imported} rows from {backend}",
            details={"imported": imported},
        )

    @staticmethod
    def sync_failed(
        backend: str,
        operation: str,
        error_message: str,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYNC_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type="backend",
            entity_id=backend,
            description=f"{operation.capitalize()} against {backend} failed",
            details={"operation": operation},
            error_message=error_message,
        )

    @staticmethod
    def remote_reconfigured(backend: str) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REMOTE_RECONFIGURED,
            entity_type="backend",
            entity_id=backend,
            description=f"Remote {backend} reconfigured, timers restarted",
            is_user_action=True,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            details=details or {},
            error_message=error_message,
        )
