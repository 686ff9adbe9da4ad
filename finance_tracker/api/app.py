"""
FastAPI Application

DESIGN DECISION: create_app() takes ready-built components instead of
reading globals, so tests can hand in an in-memory store and a fake remote
and get the exact same routes.

Every failure a client can cause or observe answers {error: message}:
- EntryValidationError, SyncError, bad query parameters → 400
- NotFoundError → 404
- StorageError → 500
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from finance_tracker.api.routes import router
from finance_tracker.orchestrator import AppComponents, create_app_components
from finance_tracker.services.remote import SyncError
from finance_tracker.services.storage import NotFoundError, StorageError
from finance_tracker.validation import EntryValidationError


logger = structlog.get_logger(__name__)


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(components: Optional[AppComponents] = None) -> FastAPI:
    """
    Build the API around one set of components.

    The lifespan prepares the store and starts the sync scheduler; shutdown
    cancels its timers.
    """
    components = components or create_app_components()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await components.store.init()
        components.scheduler.start()
        logger.info("api_started", auto_sync=components.scheduler.running)
        try:
            yield
        finally:
            await components.scheduler.stop()
            logger.info("api_stopped")

    app = FastAPI(title="Finance Tracker", lifespan=lifespan)
    app.state.components = components

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[components.settings.app.cors_origin],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(EntryValidationError)
    async def validation_error(request: Request, exc: EntryValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(RequestValidationError)
    async def request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        return _error(400, "Invalid request parameters")

    @app.exception_handler(SyncError)
    async def sync_error(request: Request, exc: SyncError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(NotFoundError)
    async def not_found(request: Request, exc: NotFoundError) -> JSONResponse:
        return _error(404, str(exc))

    @app.exception_handler(StorageError)
    async def storage_error(request: Request, exc: StorageError) -> JSONResponse:
        logger.error("storage_error", path=request.url.path, error=str(exc))
        components.audit_logger.log_error("StorageError", str(exc), {"path": request.url.path})
        return _error(500, str(exc))

    app.include_router(router)
    return app
