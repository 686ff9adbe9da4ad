"""
REST Routes

Thin handlers: parse the request, call a flow, shape the response. Entry
payloads are read as raw JSON and validated by EntryValidator so that a bad
request always answers 400 {error}, the same shape clients already handle.
"""

from decimal import Decimal
from typing import Any, Optional

from fastapi import APIRouter, Query, Request, Response

from finance_tracker.api.export import entries_to_csv, entries_to_xlsx
from finance_tracker.ledger import (
    Period,
    balances_by_account,
    movement_groups,
    period_report,
    summarize,
    upcoming,
)
from finance_tracker.models.entry import EntryType, PushMode
from finance_tracker.orchestrator import (
    CSV_BACKEND,
    GIST_BACKEND,
    WEBAPP_BACKEND,
    WORKSHEET_BACKEND,
    AppComponents,
)
from finance_tracker.validation import EntryValidationError


router = APIRouter(prefix="/api")

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _components(request: Request) -> AppComponents:
    return request.app.state.components


async def _json_body(request: Request) -> Any:
    body = await request.body()
    if not body:
        return {}
    try:
        return await request.json()
    except ValueError:
        raise EntryValidationError("Request body is not valid JSON")


def _plain(value: Any) -> Any:
    """Decimals become JSON numbers; containers are walked."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_plain(v) for v in value]
    return value


def _parse_enum(enum_type: type, raw: str, field: str):
    try:
        return enum_type(raw.strip().lower())
    except ValueError:
        allowed = ", ".join(m.value for m in enum_type)
        raise EntryValidationError(f"Invalid {field}: {raw!r} (expected one of {allowed})")


async def _push_mode(request: Request, default: Optional[PushMode]) -> Optional[PushMode]:
    """The optional {mode} of a push request body."""
    payload = await _json_body(request)
    raw_mode = payload.get("mode") if isinstance(payload, dict) else None
    return _parse_enum(PushMode, str(raw_mode), "mode") if raw_mode else default


# =============================================================================
# ENTRIES
# =============================================================================

@router.get("/health")
async def health() -> dict:
    return {"ok": True}


@router.get("/entries")
async def list_entries(request: Request) -> list[dict]:
    entries = await _components(request).entry_flow.list_entries()
    return [entry.to_wire() for entry in entries]


@router.post("/entries")
async def save_entry(request: Request) -> dict:
    payload = await _json_body(request)
    entry = await _components(request).entry_flow.save_entry(payload)
    return entry.to_wire()


@router.delete("/entries/{entry_id}")
async def delete_entry(entry_id: str, request: Request) -> dict:
    await _components(request).entry_flow.delete_entry(entry_id)
    return {"ok": True}


@router.post("/debts")
async def schedule_debt(request: Request) -> list[dict]:
    payload = await _json_body(request)
    installments = await _components(request).entry_flow.schedule_debt(payload)
    return [entry.to_wire() for entry in installments]


@router.post("/entries/{entry_id}/settle")
async def settle_entry(entry_id: str, request: Request) -> dict:
    settlement = await _components(request).entry_flow.settle_entry(entry_id)
    return settlement.to_wire()


# =============================================================================
# REPORTS
# =============================================================================

@router.get("/summary")
async def summary(request: Request) -> dict:
    components = _components(request)
    entries = await components.entry_flow.list_entries()
    accounts = balances_by_account(entries, components.settings.app.accounts_list)
    return _plain({
        **summarize(entries).model_dump(),
        "accounts": [row.model_dump() for row in accounts],
    })


@router.get("/reports")
async def reports(request: Request, period: str = Query("monthly")) -> list[dict]:
    selected = _parse_enum(Period, period, "period")
    entries = await _components(request).entry_flow.list_entries()
    return [_plain(row.model_dump()) for row in period_report(entries, selected)]


@router.get("/movements")
async def movements(request: Request, period: str = Query("daily")) -> list[dict]:
    selected = _parse_enum(Period, period, "period")
    entries = await _components(request).entry_flow.list_entries()
    return [
        {
            "key": group.key,
            "start": group.start.isoformat(),
            "entries": [entry.to_wire() for entry in group.entries],
        }
        for group in movement_groups(entries, selected)
    ]


@router.get("/upcoming")
async def upcoming_entries(
    request: Request,
    type: str = Query("debt"),
    limit: Optional[int] = Query(None, ge=1),
) -> list[dict]:
    entry_type = _parse_enum(EntryType, type, "type")
    if entry_type not in (EntryType.DEBT, EntryType.RECEIVABLE):
        raise EntryValidationError("Invalid type: only debt or receivable have due dates")
    entries = await _components(request).entry_flow.list_entries()
    return [entry.to_wire() for entry in upcoming(entries, entry_type, limit)]


# =============================================================================
# EXPORT
# =============================================================================

@router.get("/export/csv")
async def export_csv(request: Request) -> Response:
    entries = await _components(request).entry_flow.list_entries()
    return Response(
        content=entries_to_csv(entries),
        media_type="text/csv",
        headers={"Content-Disposition": 'attachment; filename="finanzas.csv"'},
    )


@router.get("/export/xlsx")
async def export_xlsx(request: Request) -> Response:
    entries = await _components(request).entry_flow.list_entries()
    return Response(
        content=entries_to_xlsx(entries),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": 'attachment; filename="finanzas.xlsx"'},
    )


# =============================================================================
# SYNC
# =============================================================================

@router.post("/sync/pull")
async def sync_pull(request: Request) -> dict:
    result = await _components(request).sync_flow.pull(GIST_BACKEND)
    return {"ok": True, "merged": result.merged}


@router.post("/sync/push")
async def sync_push(request: Request) -> dict:
    result = await _components(request).sync_flow.push(GIST_BACKEND)
    return {"ok": True, "pushed": result.pushed}


@router.post("/sync/sheets/pull")
async def sheets_import(request: Request) -> dict:
    result = await _components(request).sync_flow.import_rows(CSV_BACKEND)
    return {"ok": True, "imported": result.changed}


@router.post("/sync/sheets/push")
async def sheets_push(request: Request) -> dict:
    mode = await _push_mode(request, PushMode.REPLACE_ALL)
    result = await _components(request).sync_flow.push(WEBAPP_BACKEND, mode)
    return {"ok": True, "pushed": result.pushed, "skipped": result.skipped}


@router.post("/sync/webapp/pull")
async def webapp_pull(request: Request) -> dict:
    result = await _components(request).sync_flow.pull(WEBAPP_BACKEND)
    return {
        "ok": True,
        "merged": result.merged,
        "changed": result.changed,
        "stale": result.stale,
    }


@router.post("/sync/worksheet/pull")
async def worksheet_pull(request: Request) -> dict:
    result = await _components(request).sync_flow.pull(WORKSHEET_BACKEND)
    return {
        "ok": True,
        "merged": result.merged,
        "changed": result.changed,
        "stale": result.stale,
    }


@router.post("/sync/worksheet/push")
async def worksheet_push(request: Request) -> dict:
    """Upsert by default; {mode} may ask for append or replace-all."""
    mode = await _push_mode(request, None)
    result = await _components(request).sync_flow.push(WORKSHEET_BACKEND, mode)
    return {"ok": True, "pushed": result.pushed, "skipped": result.skipped}


@router.get("/sync/status")
async def sync_status(request: Request) -> dict:
    components = _components(request)
    status = components.sync_flow.status()
    return {
        **status.model_dump(mode="json"),
        "config": components.sync_flow.remote_config(),
        "recentEvents": [
            event.to_log_dict() for event in components.audit_logger.recent_events()
        ],
    }


@router.put("/sync/config")
async def sync_config(request: Request) -> dict:
    payload = await _json_body(request)
    if not isinstance(payload, dict):
        raise EntryValidationError("Sync config must be an object")
    auto_sync = payload.get("autoSync")
    return await _components(request).sync_flow.configure(
        token=payload.get("token"),
        gist_id=payload.get("gistId"),
        webapp_url=payload.get("webAppUrl"),
        auto_sync=bool(auto_sync) if auto_sync is not None else None,
    )
