"""
Main Orchestrator for Finance Tracker

This module ties together all the components and defines the
end-to-end flows for:
1. Entry changes (validate → store → audit → schedule a push)
2. Sync (pull / push / import against a named backend, remote configuration)

DESIGN DECISION: The orchestrator enforces the boundaries:
- No entry is stored without validation
- Every local change refreshes updatedAt and wakes the scheduler
- Every step is audited

Nothing here is global. create_app_components() builds one set of
components and the API holds on to it.
"""

import asyncio
import datetime as dt
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Optional

import requests
import structlog

from finance_tracker.audit import AuditLogger
from finance_tracker.config import Settings, get_settings
from finance_tracker.ledger import settle, split_installments
from finance_tracker.models.entry import Entry, PushMode, now_ms
from finance_tracker.models.sync import SyncResult, SyncStatus
from finance_tracker.services.remote import (
    GistRemote,
    SheetsCsvSource,
    SheetsWebAppRemote,
    WorksheetClient,
    WorksheetRemote,
)
from finance_tracker.services.storage import (
    EntryStorageInterface,
    InMemoryEntryStore,
    NotFoundError,
    create_entry_store,
)
from finance_tracker.state import ClientState
from finance_tracker.sync import SyncEngine, SyncScheduler
from finance_tracker.validation import EntryValidationError, EntryValidator


logger = structlog.get_logger(__name__)

GIST_BACKEND = GistRemote.name
WEBAPP_BACKEND = SheetsWebAppRemote.name
CSV_BACKEND = SheetsCsvSource.name
WORKSHEET_BACKEND = WorksheetRemote.name


class EntryFlow:
    """
    Orchestrates local entry changes.

    Flow:
    1. Validate → reject incomplete payloads
    2. Store → upsert with a fresh updatedAt, holding the engine's write lock
       so a pull writeback cannot interleave with the change
    3. Audit → record what changed
    4. Notify → the scheduler pushes once the burst settles
    """

    def __init__(
        self,
        store: EntryStorageInterface,
        validator: Optional[EntryValidator] = None,
        scheduler: Optional[SyncScheduler] = None,
        audit_logger: Optional[AuditLogger] = None,
        clock: Callable[[], int] = now_ms,
        write_lock: Optional[asyncio.Lock] = None,
    ):
        self._store = store
        self._validator = validator or EntryValidator(clock)
        self._write_lock = write_lock or asyncio.Lock()
        self._scheduler = scheduler
        self._audit_logger = audit_logger
        self._clock = clock

    def _local_change(self) -> None:
        if self._scheduler:
            self._scheduler.notify_local_change()

    async def list_entries(self) -> list[Entry]:
        return await self._store.list_entries()

    async def save_entry(self, payload: Any) -> Entry:
        """
        Validate a client payload and store it as the newest revision.

        Raises:
            EntryValidationError: if the payload is incomplete or invalid
        """
        entry = self._validator.validate_entry(payload)
        async with self._write_lock:
            stored = await self._store.upsert(entry)

        if self._audit_logger:
            self._audit_logger.log_entry_saved(
                entry_id=stored.id,
                entry_type=stored.type.value,
                amount=str(stored.amount),
            )
        self._local_change()
        return stored

    async def delete_entry(self, entry_id: str) -> bool:
        """
        Purge an entry by id.

        Deletion is not versioned: a remote snapshot that still holds the
        id will bring it back on the next pull.
        """
        async with self._write_lock:
            existed = await self._store.delete(entry_id)
        if self._audit_logger:
            self._audit_logger.log_entry_deleted(entry_id, existed)
        if existed:
            self._local_change()
        return existed

    async def schedule_debt(self, payload: Any) -> list[Entry]:
        """
        Record a debt as monthly installments.

        Raises:
            EntryValidationError: if the request is incomplete or invalid
        """
        schedule = self._validator.validate_debt(payload)
        installments = split_installments(
            amount=schedule.amount,
            installments=schedule.installments,
            first_due=schedule.first_due,
            note=schedule.note,
            who=schedule.who,
            category=schedule.category,
            account=schedule.account,
            updated_at=self._clock(),
        )
        async with self._write_lock:
            await self._store.upsert_many(installments)

        if self._audit_logger:
            self._audit_logger.log_debt_scheduled(
                installment_ids=[entry.id for entry in installments],
                total=str(schedule.amount),
            )
        self._local_change()
        return installments

    async def settle_entry(self, entry_id: str, today: Optional[dt.date] = None) -> Entry:
        """
        Record the payment of a debt, or the collection of a receivable.

        Raises:
            NotFoundError: no entry with that id
            EntryValidationError: the entry is neither a debt nor a receivable
        """
        async with self._write_lock:
            source = await self._store.get_entry(entry_id)
            if source is None:
                raise NotFoundError(f"Entry not found: {entry_id}")
            try:
                settlement = settle(source, today=today, updated_at=self._clock())
            except ValueError as e:
                raise EntryValidationError(str(e))
            stored = await self._store.upsert(settlement)

        if self._audit_logger:
            self._audit_logger.log_entry_settled(
                source_id=source.id,
                settlement_id=stored.id,
                settlement_type=stored.type.value,
            )
        self._local_change()
        return stored


class SyncFlow:
    """
    Orchestrates explicit sync requests and remote configuration.

    Explicit requests raise on failure (the caller shows the error);
    scheduled runs go through the scheduler, which does not.
    """

    def __init__(
        self,
        engine: SyncEngine,
        scheduler: SyncScheduler,
        settings: Settings,
        session: Optional[requests.Session] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._engine = engine
        self._scheduler = scheduler
        self._settings = settings
        self._session = session
        self._audit_logger = audit_logger

    @property
    def engine(self) -> SyncEngine:
        return self._engine

    @property
    def scheduler(self) -> SyncScheduler:
        return self._scheduler

    async def pull(self, backend: str) -> SyncResult:
        return await self._engine.pull(backend)

    async def push(self, backend: str, mode: Optional[PushMode] = None) -> SyncResult:
        return await self._engine.push(backend, mode)

    async def import_rows(self, backend: str) -> SyncResult:
        return await self._engine.import_rows(backend)

    def status(self) -> SyncStatus:
        return self._engine.status()

    def remote_config(self) -> dict[str, Any]:
        state = self._engine.state
        gist = state.sync_config()
        return {
            "gistId": gist["gistId"],
            "hasToken": bool(gist["token"]),
            "webAppUrl": state.webapp_url(self._settings.sheets.webapp_url) or "",
            "autoSync": self._scheduler.enabled,
        }

    async def configure(
        self,
        token: Optional[str] = None,
        gist_id: Optional[str] = None,
        webapp_url: Optional[str] = None,
        auto_sync: Optional[bool] = None,
    ) -> dict[str, Any]:
        """
        Persist new remote settings and swap the affected adapters.

        Fields left as None keep their current value.
        """
        state = self._engine.state

        if token is not None or gist_id is not None:
            current = state.sync_config()
            config = state.set_sync_config(
                token if token is not None else current["token"],
                gist_id if gist_id is not None else current["gistId"],
            )
            self._engine.register_adapter(build_gist_remote(
                self._settings, config, self._session,
            ))
            if self._audit_logger:
                self._audit_logger.log_remote_reconfigured(GIST_BACKEND)

        if webapp_url is not None or auto_sync is not None:
            if webapp_url is not None:
                state.set_webapp_url(webapp_url)
            if auto_sync is not None:
                state.set_auto_sync(auto_sync)
            url = state.webapp_url(self._settings.sheets.webapp_url)
            enabled = self._settings.sync.auto_sync and state.auto_sync(bool(url))
            await self._scheduler.reconfigure(
                SheetsWebAppRemote(url, self._session, self._settings.sync.request_timeout_seconds),
                enabled=enabled,
            )

        return self.remote_config()


def build_gist_remote(
    settings: Settings,
    config: dict[str, str],
    session: Optional[requests.Session] = None,
) -> GistRemote:
    """Gist adapter from the client config, falling back to the environment."""
    gist_settings = settings.gist
    return GistRemote(
        token=config.get("token") or gist_settings.github_token,
        gist_id=config.get("gistId") or gist_settings.gist_id,
        filename=gist_settings.gist_filename,
        session=session,
        timeout=settings.sync.request_timeout_seconds,
    )


@dataclass
class AppComponents:
    """Everything the API needs, built once at startup."""
    settings: Settings
    store: EntryStorageInterface
    state: ClientState
    audit_logger: AuditLogger
    engine: SyncEngine
    scheduler: SyncScheduler
    entry_flow: EntryFlow
    sync_flow: SyncFlow


def create_app_components(
    settings: Optional[Settings] = None,
    use_storage: bool = True,
    store: Optional[EntryStorageInterface] = None,
    state: Optional[ClientState] = None,
    session: Optional[requests.Session] = None,
    clock: Callable[[], int] = now_ms,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        settings: Settings to use; loaded from the environment when None.
        use_storage: Whether to persist to disk (or DATABASE_URL).
                    Set to False for testing without storage.
        store: Entry store override.
        state: Client state override.
        session: requests session shared by the HTTP remotes.
        clock: Epoch-millisecond clock used for updatedAt.

    Returns:
        AppComponents
    """
    settings = settings or get_settings()
    app_settings = settings.app
    sync_settings = settings.sync

    if state is None:
        state = ClientState(app_settings.client_state_path if use_storage else None)
    if store is None:
        store = create_entry_store(app_settings, state) if use_storage else InMemoryEntryStore()

    audit_logger = AuditLogger()
    engine = SyncEngine(store, state, audit_logger=audit_logger, clock=clock)

    timeout = sync_settings.request_timeout_seconds
    engine.register_adapter(build_gist_remote(settings, state.sync_config(), session))
    webapp_url = state.webapp_url(settings.sheets.webapp_url)
    engine.register_adapter(SheetsWebAppRemote(webapp_url, session, timeout))
    engine.register_adapter(SheetsCsvSource(settings.sheets.csv_url, session, timeout))
    engine.register_adapter(WorksheetRemote(WorksheetClient(settings.google_sheets)))

    scheduler = SyncScheduler(
        engine,
        WEBAPP_BACKEND,
        debounce_seconds=sync_settings.debounce_seconds,
        poll_interval_seconds=sync_settings.poll_interval_seconds,
        enabled=sync_settings.auto_sync and state.auto_sync(bool(webapp_url)),
        audit_logger=audit_logger,
    )

    entry_flow = EntryFlow(
        store=store,
        validator=EntryValidator(clock),
        scheduler=scheduler,
        audit_logger=audit_logger,
        clock=clock,
        write_lock=engine.write_lock,
    )
    sync_flow = SyncFlow(
        engine=engine,
        scheduler=scheduler,
        settings=settings,
        session=session,
        audit_logger=audit_logger,
    )

    logger.info(
        "components_created",
        store=type(store).__name__,
        backends=engine.backends,
        auto_sync=scheduler.enabled,
    )

    return AppComponents(
        settings=settings,
        store=store,
        state=state,
        audit_logger=audit_logger,
        engine=engine,
        scheduler=scheduler,
        entry_flow=entry_flow,
        sync_flow=sync_flow,
    )
