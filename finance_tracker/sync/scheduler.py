"""
Background Sync Scheduler

Drives one backend without user action:
- every local change restarts a short debounce timer; when it fires, one
  push covers the whole burst
- a poll loop pulls and merges periodically, starting with a pull right away

Scheduled runs never raise. A failure is already recorded by the engine;
here it is logged and the loop carries on with local state.

DESIGN DECISION: Only the debounce wait is cancellable. Once a push has
started it runs to completion in its own task, because the remote request
is already on its way and its bookkeeping (pending and known ids) must land.
The engine runs pushes to one backend one at a time, so a push triggered
while another is in flight waits for it and then reads the entries that are
still unsent.

reconfigure() cancels the timers and waits for an in-flight push before the
new adapter is installed, so nothing started against the old remote lands
after the switch.
"""

import asyncio
from contextlib import suppress
from typing import Optional

import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.services.remote import RemoteAdapter, SyncError
from finance_tracker.services.storage import StorageError
from finance_tracker.sync.engine import SyncEngine


logger = structlog.get_logger(__name__)


class SyncScheduler:
    """Debounced push and periodic pull for a single backend."""

    def __init__(
        self,
        engine: SyncEngine,
        backend: str,
        debounce_seconds: float = 0.8,
        poll_interval_seconds: float = 30.0,
        enabled: bool = True,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._engine = engine
        self._backend = backend
        self._debounce_seconds = debounce_seconds
        self._poll_interval_seconds = poll_interval_seconds
        self._enabled = enabled
        self._audit_logger = audit_logger

        self._debounce_task: Optional[asyncio.Task] = None
        self._poll_task: Optional[asyncio.Task] = None
        self._push_tasks: set[asyncio.Task] = set()

    @property
    def backend(self) -> str:
        return self._backend

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    @property
    def enabled(self) -> bool:
        return self._enabled

    @property
    def pushing(self) -> bool:
        return any(not task.done() for task in self._push_tasks)

    def _adapter_ready(self) -> bool:
        try:
            return self._engine.adapter(self._backend).configured
        except SyncError:
            return False

    # =========================================================================
    # TIMERS
    # =========================================================================

    def start(self) -> None:
        """Start polling (initial pull included). Must run inside an event loop."""
        if not self._enabled or self.running or not self._adapter_ready():
            return
        self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())

    async def stop(self) -> None:
        """Cancel the debounce timer and the poll loop; let a started push finish."""
        tasks = [t for t in (self._debounce_task, self._poll_task) if t is not None]
        self._debounce_task = None
        self._poll_task = None
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        if self._push_tasks:
            await asyncio.gather(*self._push_tasks, return_exceptions=True)

    def notify_local_change(self) -> None:
        """Restart the debounce timer; the push runs once the burst settles."""
        if not self._enabled or not self._adapter_ready():
            return
        if self._debounce_task is not None and not self._debounce_task.done():
            self._debounce_task.cancel()
        self._debounce_task = asyncio.get_running_loop().create_task(self._debounce())

    async def reconfigure(self, adapter: RemoteAdapter, enabled: Optional[bool] = None) -> None:
        """Swap the backend's adapter and restart the timers."""
        await self.stop()
        self._engine.register_adapter(adapter)
        self._backend = adapter.name
        if enabled is not None:
            self._enabled = enabled
        if self._audit_logger:
            self._audit_logger.log_remote_reconfigured(adapter.name)
        self.start()

    async def _debounce(self) -> None:
        await asyncio.sleep(self._debounce_seconds)
        # The push is its own task so a later notify_local_change() only
        # cancels this wait, never the request.
        task = asyncio.get_running_loop().create_task(self.run_once("push"))
        self._push_tasks.add(task)
        task.add_done_callback(self._push_tasks.discard)

    async def _poll_loop(self) -> None:
        while True:
            await self.run_once("pull")
            await asyncio.sleep(self._poll_interval_seconds)

    # =========================================================================
    # RUNS
    # =========================================================================

    async def run_once(self, operation: str) -> bool:
        """Run one pull or push, swallowing sync failures. Returns success."""
        try:
            if operation == "push":
                await self._engine.push(self._backend)
            else:
                await self._engine.pull(self._backend)
        except (SyncError, StorageError) as e:
            logger.warning(
                "scheduled_sync_failed",
                backend=self._backend,
                operation=operation,
                error=str(e),
            )
            return False
        return True
