"""
Audit Logger

DESIGN DECISION: Every local mutation and every sync attempt is logged.
This provides:
1. Complete traceability of what the reconciler did and why
2. Debugging capability when a remote returns something unexpected
3. A recent-events list the status endpoint can show to the user

The audit logger:
- Never raises; a logging failure must not break a sync
- Keeps a bounded in-memory history (no remote persistence)
"""

from collections import deque
from typing import Optional

import structlog

from finance_tracker.models.audit import AuditEvent, AuditEventBuilder


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events to the structured local log and remembers the most
    recent ones in memory.
    """

    def __init__(self, history_size: int = 100):
        """
        Initialize audit logger.

        Args:
            history_size: How many recent events to keep in memory.
        """
        self._logger = structlog.get_logger("finance_tracker.audit")
        self._recent: deque[AuditEvent] = deque(maxlen=history_size)

    def log(self, event: AuditEvent) -> None:
        """Log an audit event locally and remember it."""
        self._recent.append(event)
        log_dict = event.to_log_dict()

        try:
            if event.severity.value in ("error", "critical"):
                self._logger.error("audit_event", **log_dict)
            elif event.severity.value == "warning":
                self._logger.warning("audit_event", **log_dict)
            elif event.severity.value == "debug":
                self._logger.debug("audit_event", **log_dict)
            else:
                self._logger.info("audit_event", **log_dict)
        except Exception as e:
            # A broken handler must not take a sync down with it
            self._logger.error("audit_log_failed", error=str(e))

    def recent_events(self, limit: int = 20) -> list[AuditEvent]:
        """Most recent events, newest first."""
        return list(reversed(self._recent))[:limit]

    def log_entry_saved(self, entry_id: str, entry_type: str, amount: str) -> None:
        self.log(AuditEventBuilder.entry_saved(entry_id, entry_type, amount))

    def log_entry_deleted(self, entry_id: str, existed: bool) -> None:
        self.log(AuditEventBuilder.entry_deleted(entry_id, existed))

    def log_debt_scheduled(self, installment_ids: list[str], total: str) -> None:
        self.log(AuditEventBuilder.debt_scheduled(installment_ids, total))

    def log_entry_settled(
        self,
        source_id: str,
        settlement_id: str,
        settlement_type: str,
    ) -> None:
        self.log(AuditEventBuilder.entry_settled(source_id, settlement_id, settlement_type))

    def log_pull_completed(
        self,
        backend: str,
        pulled: int,
        merged: int,
        changed: int,
        acknowledged: int,
    ) -> None:
        """Log a successful pull-and-merge."""
        self.log(AuditEventBuilder.pull_completed(
            backend=backend,
            pulled=pulled,
            merged=merged,
            changed=changed,
            acknowledged=acknowledged,
        ))

    def log_pull_stale_dropped(self, backend: str, sequence: int, latest: int) -> None:
        self.log(AuditEventBuilder.pull_stale_dropped(backend, sequence, latest))

    def log_push_completed(
        self,
        backend: str,
        mode: str,
        pushed: int,
        pending: int,
    ) -> None:
        """Log a successful push."""
        self.log(AuditEventBuilder.push_completed(
            backend=backend,
            mode=mode,
            pushed=pushed,
            pending=pending,
        ))

    def log_push_skipped(self, backend: str) -> None:
        self.log(AuditEventBuilder.push_skipped(backend))

    def log_import_completed(self, backend: str, imported: int) -> None:
        self.log(AuditEventBuilder.import_completed(backend, imported))

    def log_sync_failed(
        self,
        backend: str,
        operation: str,
        error_message: str,
    ) -> None:
        """Log a failed pull, push or import."""
        self.log(AuditEventBuilder.sync_failed(
            backend=backend,
            operation=operation,
            error_message=error_message,
        ))

    def log_remote_reconfigured(self, backend: str) -> None:
        self.log(AuditEventBuilder.remote_reconfigured(backend))

    def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """Log an error."""
        self.log(AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
        ))
