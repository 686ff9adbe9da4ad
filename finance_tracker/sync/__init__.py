"""
Sync Package

SyncEngine runs pulls and pushes; SyncScheduler decides when.
"""

from finance_tracker.sync.engine import SyncEngine
from finance_tracker.sync.scheduler import SyncScheduler

__all__ = [
    "SyncEngine",
    "SyncScheduler",
]
