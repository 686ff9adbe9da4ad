"""
Sync Engine

The one object that owns sync state: the local store, the registered
remote adapters, pending ids, known remote ids and the last status message.
It is built once at startup and passed to whoever needs it (API routes,
the scheduler); nothing about sync lives in module globals.

PULL:
1. Fetch the remote snapshot
2. Drop it if a newer pull against the same backend started meanwhile
3. Acknowledge pending ids the snapshot now contains
4. Remember the snapshot's ids (known remote ids)
5. Under the write lock, merge with the local set as it is NOW, after the
   await, so edits made while the request was in flight are not lost
6. Write back only the entries the merge changed, still under the lock, so
   no local edit can land between the read and the write

PUSH:
1. Read the local set as of the call
2. In append mode send only ids the remote has not returned yet and that
   are not already pending (sent, waiting for a pull to confirm them)
3. After a successful append, mark the sent ids pending
Pushes to one backend run one at a time, so the next one sees the pending
ids the previous one recorded.
A failed push touches nothing and re-raises.

DESIGN DECISION: The engine never retries. A failure is logged, recorded
in the status and re-raised; the scheduler's next debounce or poll cycle
is the retry.
"""

import asyncio
from collections.abc import Callable
from typing import Optional

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.models.entry import PushMode, now_ms
from finance_tracker.models.sync import BackendStatus, SyncResult, SyncStatus
from finance_tracker.reconcile import PendingIdTracker, changed_entries, merge_entries
from finance_tracker.services.remote import RemoteAdapter, RemoteConfigurationError, SyncError
from finance_tracker.services.storage import EntryStorageInterface, StorageError
from finance_tracker.state import ClientState


logger = structlog.get_logger(__name__)


class SyncEngine:
    """
    Pull, push and import against named backends.

    Usage:
        engine = SyncEngine(store, state)
        engine.register_adapter(GistRemote(token, gist_id))
        result = await engine.pull("gist")
    """

    def __init__(
        self,
        store: EntryStorageInterface,
        state: ClientState,
        pending: Optional[PendingIdTracker] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], int] = now_ms,
    ):
        self._store = store
        self._state = state
        self._pending = pending or PendingIdTracker(state)
        self._audit_logger = audit_logger
        self._clock = clock
        self._write_lock = asyncio.Lock()
        self._push_locks: dict[str, asyncio.Lock] = {}

        self._adapters: dict[str, RemoteAdapter] = {}
        self._pull_sequence: dict[str, int] = {}
        self._message = ""
        self._last_error: Optional[str] = None

    # =========================================================================
    # ADAPTER REGISTRY
    # =========================================================================

    @property
    def store(self) -> EntryStorageInterface:
        return self._store

    @property
    def state(self) -> ClientState:
        return self._state

    @property
    def pending(self) -> PendingIdTracker:
        return self._pending

    @property
    def write_lock(self) -> asyncio.Lock:
        """Held by every read-modify-write of the local store."""
        return self._write_lock

    @property
    def backends(self) -> list[str]:
        return sorted(self._adapters)

    def register_adapter(self, adapter: RemoteAdapter) -> None:
        """
        Install an adapter under its name, replacing any previous one.

        Replacing an adapter invalidates pulls still in flight against the
        old one.
        """
        if adapter.name in self._adapters:
            self._next_sequence(adapter.name)
        self._adapters[adapter.name] = adapter

    def adapter(self, backend: str) -> RemoteAdapter:
        try:
            return self._adapters[backend]
        except KeyError:
            raise RemoteConfigurationError(f"Unknown backend: {backend}")

    def _next_sequence(self, backend: str) -> int:
        sequence = self._pull_sequence.get(backend, 0) + 1
        self._pull_sequence[backend] = sequence
        return sequence

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    async def pull(self, backend: str) -> SyncResult:
        """
        Fetch a snapshot and merge it into the local store.

        Raises:
            SyncError: remote failure; local state is untouched
            StorageError: local store failure
        """
        adapter = self.adapter(backend)
        sequence = self._next_sequence(backend)

        try:
            snapshot = await adapter.pull()
        except SyncError as e:
            self._record_failure(backend, "pull", e)
            raise

        latest = self._pull_sequence.get(backend, 0)
        if sequence != latest:
            if self._audit_logger:
                self._audit_logger.log_pull_stale_dropped(backend, sequence, latest)
            return SyncResult(
                backend=backend,
                operation="pull",
                pulled=len(snapshot),
                stale=True,
                finished_at=self._clock(),
            )

        snapshot_ids = {entry.id for entry in snapshot}
        acknowledged = self._pending.acknowledge(backend, snapshot_ids)
        self._state.set_remote_ids(backend, snapshot_ids)

        try:
            async with self._write_lock:
                local = await self._store.list_entries()
                merged = merge_entries(local, snapshot, self._pending.pending(backend))
                changed = changed_entries(local, merged)
                if changed:
                    await self._store.upsert_many(changed)
        except StorageError as e:
            self._record_failure(backend, "pull", e)
            raise

        result = SyncResult(
            backend=backend,
            operation="pull",
            pulled=len(snapshot),
            merged=len(merged),
            changed=len(changed),
            finished_at=self._clock(),
        )
        self._record_success(result, f"Pulled {len(snapshot)} from {backend}")
        if self._audit_logger:
            self._audit_logger.log_pull_completed(
                backend=backend,
                pulled=result.pulled,
                merged=result.merged,
                changed=result.changed,
                acknowledged=len(acknowledged),
            )
        return result

    async def push(self, backend: str, mode: Optional[PushMode] = None) -> SyncResult:
        """
        Send local entries to a backend.

        Raises:
            SyncError: remote failure; pending ids are untouched
            StorageError: local store failure
        """
        async with self._push_locks.setdefault(backend, asyncio.Lock()):
            return await self._push(backend, mode)

    async def _push(self, backend: str, mode: Optional[PushMode]) -> SyncResult:
        adapter = self.adapter(backend)
        mode = mode or adapter.push_mode
        if mode is None:
            raise RemoteConfigurationError(f"{backend} is read-only")

        entries = await self._store.list_entries()
        if mode is PushMode.APPEND:
            known = self._state.remote_ids(backend) | self._pending.pending(backend)
            outgoing = [entry for entry in entries if entry.id not in known]
        else:
            outgoing = entries

        if mode is PushMode.APPEND and not outgoing:
            if self._audit_logger:
                self._audit_logger.log_push_skipped(backend)
            return SyncResult(
                backend=backend,
                operation="push",
                skipped=True,
                finished_at=self._clock(),
            )

        try:
            await adapter.push(outgoing, mode)
        except SyncError as e:
            self._record_failure(backend, "push", e)
            raise

        outgoing_ids = {entry.id for entry in outgoing}
        if mode is PushMode.APPEND:
            pending = self._pending.mark_pushed(backend, outgoing_ids)
        else:
            pending = self._pending.pending(backend)
            if mode is PushMode.REPLACE_ALL:
                self._state.set_remote_ids(backend, outgoing_ids)
            else:
                self._state.set_remote_ids(backend, self._state.remote_ids(backend) | outgoing_ids)

        result = SyncResult(
            backend=backend,
            operation="push",
            pushed=len(outgoing),
            finished_at=self._clock(),
        )
        self._record_success(result, f"Pushed {len(outgoing)} to {backend}")
        if self._audit_logger:
            self._audit_logger.log_push_completed(
                backend=backend,
                mode=mode.value,
                pushed=len(outgoing),
                pending=len(pending),
            )
        return result

    async def import_rows(self, backend: str) -> SyncResult:
        """
        Pull a backend and upsert every row as-is, without merging.

        Used for hand-maintained sheets, where the sheet is the source of
        truth for the rows it contains.
        """
        adapter = self.adapter(backend)
        try:
            rows = await adapter.pull()
            async with self._write_lock:
                imported = await self._store.upsert_many(rows)
        except (SyncError, StorageError) as e:
            self._record_failure(backend, "import", e)
            raise

        result = SyncResult(
            backend=backend,
            operation="import",
            pulled=len(rows),
            changed=imported,
            finished_at=self._clock(),
        )
        self._record_success(result, f"Imported {imported} from {backend}")
        if self._audit_logger:
            self._audit_logger.log_import_completed(backend, imported)
        return result

    def status(self) -> SyncStatus:
        backends = []
        for name in self.backends:
            adapter = self._adapters[name]
            backends.append(BackendStatus(
                backend=name,
                push_mode=adapter.push_mode.value if adapter.push_mode else "read-only",
                pending_ids=sorted(self._pending.pending(name)),
                known_remote_ids=len(self._state.remote_ids(name)),
            ))
        return SyncStatus(
            last_sync_at=self._state.last_sync(),
            message=self._message,
            last_error=self._last_error,
            backends=backends,
        )

    # =========================================================================
    # BOOKKEEPING
    # =========================================================================

    def _record_success(self, result: SyncResult, message: str) -> None:
        self._state.set_last_sync(result.finished_at)
        self._message = message
        self._last_error = None
        logger.info(
            "sync_completed",
            backend=result.backend,
            operation=result.operation,
            pulled=result.pulled,
            pushed=result.pushed,
            changed=result.changed,
        )

    def _record_failure(self, backend: str, operation: str, error: Exception) -> None:
        self._message = f"{operation.capitalize()} failed: {error}"
        self._last_error = str(error)
        if self._audit_logger:
            self._audit_logger.log_sync_failed(backend, operation, str(error))
