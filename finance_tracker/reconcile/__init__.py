"""Reconciliation package: merging snapshots and pending-id bookkeeping."""

from finance_tracker.reconcile.merge import changed_entries, merge_entries
from finance_tracker.reconcile.pending import PendingIdTracker

__all__ = [
    "PendingIdTracker",
    "changed_entries",
    "merge_entries",
]
