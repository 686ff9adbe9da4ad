"""
Tests for the remote adapters.

HTTP adapters get a mocked requests session; the worksheet adapter gets a
mocked gspread worksheet. No test reaches the network.
"""

import asyncio
import json
from decimal import Decimal
from unittest.mock import MagicMock

import gspread
import pytest
import requests

from finance_tracker.config.settings import GoogleSheetsSettings
from finance_tracker.models.entry import EntryType, PushMode
from finance_tracker.services.remote import (
    ENTRY_COLUMNS,
    FormatError,
    GistRemote,
    RemoteConfigurationError,
    SheetsCsvSource,
    SheetsWebAppRemote,
    TransportError,
    WorksheetClient,
    WorksheetRemote,
    parse_csv_rows,
)


def run(coro):
    return asyncio.run(coro)


def make_response(status_code=200, payload=None, text=None):
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    response.encoding = "utf-8"
    if payload is not None:
        response.json.return_value = payload
        response.text = json.dumps(payload)
    else:
        response.json.side_effect = ValueError("no json")
        response.text = text or ""
    return response


def make_session(*responses):
    session = MagicMock(spec=requests.Session)
    session.request.side_effect = list(responses)
    return session


# =============================================================================
# GIST
# =============================================================================

class TestGistRemote:
    """Tests for the Gist adapter."""

    def test_pull_reads_entries_file(self):
        content = json.dumps([{"id": "a", "type": "income", "amount": 10, "date": "2024-01-01", "updatedAt": 5}])
        session = make_session(make_response(payload={"files": {"finanzas.json": {"content": content}}}))
        remote = GistRemote("token", "gist123", session=session)

        entries = run(remote.pull())

        assert [e.id for e in entries] == ["a"]
        assert entries[0].updated_at == 5
        method, url = session.request.call_args.args
        assert method == "GET"
        assert url == "https://api.github.com/gists/gist123"
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer token"

    def test_pull_missing_file_is_empty(self):
        session = make_session(make_response(payload={"files": {}}))
        assert run(GistRemote("t", "g", session=session).pull()) == []

    def test_pull_follows_raw_url_when_truncated(self):
        full = json.dumps([{"id": "big", "type": "payment", "amount": 1, "date": "2024-01-01"}])
        session = make_session(
            make_response(payload={"files": {"finanzas.json": {
                "content": "[", "truncated": True, "raw_url": "https://raw/finanzas.json",
            }}}),
            make_response(text=full),
        )
        entries = run(GistRemote("t", "g", session=session).pull())
        assert [e.id for e in entries] == ["big"]

    def test_pull_invalid_content_is_format_error(self):
        session = make_session(make_response(payload={"files": {"finanzas.json": {"content": "{oops"}}}))
        with pytest.raises(FormatError):
            run(GistRemote("t", "g", session=session).pull())

    def test_pull_non_list_is_format_error(self):
        session = make_session(make_response(payload={"files": {"finanzas.json": {"content": "{}"}}}))
        with pytest.raises(FormatError):
            run(GistRemote("t", "g", session=session).pull())

    def test_http_error_is_transport_error_with_status(self):
        session = make_session(make_response(status_code=404))
        with pytest.raises(TransportError) as exc_info:
            run(GistRemote("t", "g", session=session).pull())
        assert exc_info.value.status_code == 404
        assert "Gist 404" in str(exc_info.value)

    def test_network_failure_is_transport_error(self):
        session = MagicMock(spec=requests.Session)
        session.request.side_effect = requests.ConnectionError("down")
        with pytest.raises(TransportError):
            run(GistRemote("t", "g", session=session).pull())

    def test_missing_config(self):
        remote = GistRemote(None, "g", session=MagicMock())
        assert remote.configured is False
        with pytest.raises(RemoteConfigurationError, match="Missing token or gistId"):
            run(remote.pull())

    def test_push_replaces_file(self, make_entry):
        session = make_session(make_response(payload={}))
        remote = GistRemote("t", "g", session=session)

        assert run(remote.push([make_entry("a"), make_entry("b")])) is True

        method, _ = session.request.call_args.args
        assert method == "PATCH"
        body = session.request.call_args.kwargs["json"]
        stored = json.loads(body["files"]["finanzas.json"]["content"])
        assert [row["id"] for row in stored] == ["a", "b"]

    def test_push_rejects_append(self, make_entry):
        remote = GistRemote("t", "g", session=MagicMock())
        with pytest.raises(RemoteConfigurationError):
            run(remote.push([make_entry("a")], PushMode.APPEND))


# =============================================================================
# SHEETS WEB APP
# =============================================================================

class TestSheetsWebAppRemote:
    """Tests for the Apps Script web app adapter."""

    def test_pull_decodes_and_normalizes(self):
        rows = [
            {"id": "a", "type": "Ingreso", "amount": "$1.500", "date": "2024-01-01T05:00:00.000Z"},
            {"id": "b", "type": "gasto", "amount": 20, "date": "2024-01-02", "updatedAt": 9},
        ]
        session = make_session(make_response(payload=rows))
        entries = run(SheetsWebAppRemote("https://script/exec", session=session).pull())
        assert entries[0].type == EntryType.INCOME
        assert entries[0].amount == Decimal("1500")
        assert entries[1].type == EntryType.PAYMENT
        assert entries[1].updated_at == 9

    def test_pull_non_list_is_format_error(self):
        session = make_session(make_response(payload={"error": "boom"}))
        with pytest.raises(FormatError):
            run(SheetsWebAppRemote("https://script/exec", session=session).pull())

    def test_pull_non_json_is_format_error(self):
        session = make_session(make_response(text="<html>"))
        with pytest.raises(FormatError):
            run(SheetsWebAppRemote("https://script/exec", session=session).pull())

    def test_push_sends_entries_and_mode(self, make_entry):
        session = make_session(make_response(payload={"ok": True}))
        remote = SheetsWebAppRemote("https://script/exec", session=session)

        run(remote.push([make_entry("a")]))

        method, url = session.request.call_args.args
        assert (method, url) == ("POST", "https://script/exec")
        body = session.request.call_args.kwargs["json"]
        assert body["mode"] == "append"
        assert body["entries"][0]["id"] == "a"

    def test_push_replace_all_flag(self, make_entry):
        session = make_session(make_response(payload={"ok": True}))
        run(SheetsWebAppRemote("u", session=session).push([make_entry("a")], PushMode.REPLACE_ALL))
        assert session.request.call_args.kwargs["json"]["mode"] == "replace-all"

    def test_push_failure_status(self, make_entry):
        session = make_session(make_response(status_code=500))
        with pytest.raises(TransportError, match="Sheets 500"):
            run(SheetsWebAppRemote("u", session=session).push([make_entry("a")]))

    def test_unconfigured(self):
        remote = SheetsWebAppRemote(None, session=MagicMock())
        assert remote.configured is False
        with pytest.raises(RemoteConfigurationError):
            run(remote.pull())


# =============================================================================
# SHEETS CSV
# =============================================================================

CSV_TEXT = (
    "Fecha,Tipo,Monto,Nota,Quién\n"
    "2024-01-05,Ingresos,\"1.500.000\",Salario,Ana\n"
    "2024-01-06,Gasto,20000,Mercado,\n"
    ",,,,\n"
    "2024-01-07,Deuda,300000,Tarjeta,Banco\n"
)


class TestSheetsCsvSource:
    """Tests for the published-CSV import."""

    def test_parse_csv_rows_maps_headers(self):
        rows = parse_csv_rows(CSV_TEXT)
        assert len(rows) == 3
        assert rows[0] == {
            "date": "2024-01-05",
            "type": "Ingresos",
            "amount": "1.500.000",
            "note": "Salario",
            "who": "Ana",
        }

    def test_parse_csv_requires_known_columns(self):
        with pytest.raises(FormatError):
            parse_csv_rows("foo,bar\n1,2\n")

    def test_pull_normalizes_types(self):
        session = make_session(make_response(text=CSV_TEXT))
        entries = run(SheetsCsvSource("https://sheet/csv", session=session).pull())
        assert [e.type for e in entries] == [EntryType.INCOME, EntryType.PAYMENT, EntryType.DEBT]
        assert entries[0].amount == Decimal("1500000")

    def test_ids_are_stable_across_imports(self):
        first = run(SheetsCsvSource("u", session=make_session(make_response(text=CSV_TEXT))).pull())
        second = run(SheetsCsvSource("u", session=make_session(make_response(text=CSV_TEXT))).pull())
        assert [e.id for e in first] == [e.id for e in second]
        assert len({e.id for e in first}) == 3

    def test_duplicate_rows_get_distinct_ids(self):
        text = "date,type,amount\n2024-01-01,pago,10\n2024-01-01,pago,10\n"
        entries = run(SheetsCsvSource("u", session=make_session(make_response(text=text))).pull())
        assert len({e.id for e in entries}) == 2

    def test_explicit_ids_are_kept(self):
        text = "id,date,type,amount\nabc,2024-01-01,income,10\n"
        entries = run(SheetsCsvSource("u", session=make_session(make_response(text=text))).pull())
        assert entries[0].id == "abc"

    def test_push_is_read_only(self, make_entry):
        with pytest.raises(RemoteConfigurationError):
            run(SheetsCsvSource("u", session=MagicMock()).push([make_entry("a")]))


# =============================================================================
# WORKSHEET
# =============================================================================

def make_worksheet_remote(values):
    sheet = MagicMock()
    sheet.get_all_values.return_value = values
    client = MagicMock(spec=WorksheetClient)
    client.get_worksheet.return_value = sheet
    client.configured = True
    return WorksheetRemote(client), sheet


class TestWorksheetRemote:
    """Tests for the service-account worksheet adapter."""

    def test_pull_reads_rows(self):
        values = [
            ENTRY_COLUMNS,
            ["a", "income", "10", "", "2024-01-01", "", "note", "", "", "Nequi", "x,y", "5"],
            [""] * len(ENTRY_COLUMNS),
            ["b", "payment", "3"],
        ]
        remote, _ = make_worksheet_remote(values)
        entries = run(remote.pull())
        assert [e.id for e in entries] == ["a", "b"]
        assert entries[0].tags == ["x", "y"]
        assert entries[0].account == "Nequi"
        assert entries[0].updated_at == 5

    def test_pull_without_id_column_is_format_error(self):
        remote, _ = make_worksheet_remote([["foo", "bar"], ["1", "2"]])
        with pytest.raises(FormatError):
            run(remote.pull())

    def test_upsert_updates_existing_and_appends_new(self, make_entry):
        values = [ENTRY_COLUMNS, ["a", "income", "10"], ["b", "income", "20"]]
        remote, sheet = make_worksheet_remote(values)

        run(remote.push([make_entry("b", amount=25), make_entry("c")]))

        updates = sheet.batch_update.call_args.args[0]
        assert updates[0]["range"] == "A3"
        assert updates[0]["values"][0][0] == "b"
        appended = sheet.append_rows.call_args.args[0]
        assert [row[0] for row in appended] == ["c"]

    def test_upsert_follows_sheet_header(self, make_entry):
        """Rows are laid out by the sheet's own header; extra columns keep their cells."""
        header = ["amount", "id", "receipt", "type", "updatedAt"]
        values = [header, ["20", "b", "scan.pdf", "income", "1"]]
        remote, sheet = make_worksheet_remote(values)

        run(remote.push([make_entry("b", amount=25), make_entry("c")]))

        updates = sheet.batch_update.call_args.args[0]
        assert updates == [{"range": "A2", "values": [[25, "b", "scan.pdf", "income", 100]]}]
        appended = sheet.append_rows.call_args.args[0]
        assert appended == [[50, "c", "", "income", 100]]

    def test_append_follows_sheet_header(self, make_entry):
        remote, sheet = make_worksheet_remote([["type", "id", "amount"]])
        run(remote.push([make_entry("a")], PushMode.APPEND))
        assert sheet.append_rows.call_args.args[0] == [["income", "a", 50]]

    def test_upsert_into_empty_sheet_writes_header(self, make_entry):
        remote, sheet = make_worksheet_remote([])
        run(remote.push([make_entry("a")]))
        sheet.append_row.assert_called_once_with(ENTRY_COLUMNS)
        assert sheet.append_rows.call_args.args[0][0][0] == "a"

    def test_replace_all_rewrites_sheet(self, make_entry):
        remote, sheet = make_worksheet_remote([ENTRY_COLUMNS])
        run(remote.push([make_entry("a")], PushMode.REPLACE_ALL))
        sheet.clear.assert_called_once()
        rows = sheet.append_rows.call_args.args[0]
        assert rows[0] == ENTRY_COLUMNS
        assert rows[1][0] == "a"

    def test_api_error_is_transport_error(self):
        remote, sheet = make_worksheet_remote([])
        response = MagicMock()
        response.status_code = 429
        response.json.return_value = {"error": {"code": 429, "message": "quota", "status": "RESOURCE_EXHAUSTED"}}
        sheet.get_all_values.side_effect = gspread.exceptions.APIError(response)
        with pytest.raises(TransportError) as exc_info:
            run(remote.pull())
        assert exc_info.value.status_code == 429

    def test_client_without_credentials_is_not_configured(self):
        client = WorksheetClient(GoogleSheetsSettings(credentials_path=None, spreadsheet_id=None))
        assert client.configured is False
        with pytest.raises(RemoteConfigurationError):
            client.connect()
