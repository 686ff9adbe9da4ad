"""
Sync Result Models

What a sync operation reports back to its caller (API route, scheduler).
"""

from typing import Optional

from pydantic import BaseModel, Field


class SyncResult(BaseModel):
    """Outcome of one pull, push or import against a single backend."""

    backend: str
    operation: str = Field(
        ...,
        pattern="^(pull|push|import)$",
        description="Which sync operation ran"
    )
    pulled: int = Field(default=0, ge=0, description="Entries in the remote snapshot")
    pushed: int = Field(default=0, ge=0, description="Entries sent to the remote")
    merged: int = Field(default=0, ge=0, description="Entries in the merged local set")
    changed: int = Field(default=0, ge=0, description="Local entries written by the merge")
    stale: bool = Field(
        default=False,
        description="A newer pull started meanwhile; this snapshot was dropped"
    )
    skipped: bool = Field(
        default=False,
        description="Nothing to send, no remote call was made"
    )
    finished_at: int = Field(..., description="Epoch milliseconds")


class BackendStatus(BaseModel):
    """Per-backend bookkeeping shown on the status endpoint."""

    backend: str
    push_mode: str
    pending_ids: list[str] = Field(default_factory=list)
    known_remote_ids: int = 0


class SyncStatus(BaseModel):
    """Snapshot of the engine's sync bookkeeping."""

    last_sync_at: int = 0
    message: str = ""
    last_error: Optional[str] = None
    backends: list[BackendStatus] = Field(default_factory=list)
