"""
Job-Work Tracker Dashboard: FastAPI backend.

All records live in a single SQLite database (output/tracker.db).  Report
endpoints return JSON by default; ``?format=xlsx`` returns a spreadsheet and
``?format=html`` a printable document.

Endpoints
---------
  GET    /api/health                          → liveness probe
  GET    /api/stats                           → row counts per table
  GET    /api/dashboard                       → totals, recent invoices, chart (?period=)
  GET    /api/goods                           → goods master, by name
  POST   /api/goods                           → add goods (idempotent)
  GET    /api/supply-invoices                 → list, newest first
  POST   /api/supply-invoices                 → create
  GET    /api/supply-invoices/{id}            → one invoice
  PUT    /api/supply-invoices/{id}            → edit (body carries reason)
  DELETE /api/supply-invoices/{id}            → delete
  GET|POST|PUT|DELETE /api/receipt-invoices…  → same for receipts
  GET    /api/changes                         → change log (?tab=supply|receipt)
  GET    /api/changes/{id}/preview            → current state of the changed invoice
  GET    /api/reports/{name}                  → dynamic | original | receipts | attributes | goods
  GET    /api/reports/dynamic/{id}/status     → single supply invoice status sheet
  GET    /api/reports/attributes/details      → items behind one attribute cell
  GET    /api/reports/goods/{name}/history    → receipt history for one goods name
  GET    /api/backup/export                   → full JSON export
  POST   /api/backup/import                   → import JSON (?mode=merge|replace&filename=)
  POST   /api/backup                          → write a backup file
  GET    /api/backup/history                  → backup / restore log
  POST   /api/backup/clear                    → wipe data tables
"""
import json
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Optional

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse, JSONResponse, Response

from config import Config
from models.invoice import (
    NewReceiptInvoice,
    NewSupplyInvoice,
    ReceiptInvoiceUpdate,
    SupplyInvoiceUpdate,
)
from tracker.attributes import aggregate, attribute_details
from tracker.backup import BackupService
from tracker.change_log import change_view, filter_changes, preview_invoice
from tracker.database import Database
from tracker.date_ranges import RANGE_CUSTOM, resolve_window
from tracker.errors import InvoiceNotFoundError, InvoiceValidationError, StoreError
from tracker.goods_report import goods_history_rows, goods_report
from tracker.reconciliation import dynamic_supply_report
from tracker.service import InvoiceService
from tracker.summary import CHART_PERIODS, dashboard_totals, recent_invoices, supply_chart
from .models import ClearRequest, GoodsCreate, ReceiptInvoiceEdit, SupplyInvoiceEdit
from .services.export import ReportTable, render_table, supply_status_table, table_workbook
from .services.reports import build_report

logger = logging.getLogger(__name__)

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# ---------------------------------------------------------------------------
# Config + database (lazy, opened on first request)
# ---------------------------------------------------------------------------
_config: Optional[Config] = None
_db: Optional[Database] = None


def configure(config: Optional[Config] = None) -> None:
    """Point the app at *config*; the database is reopened on next use."""
    global _config, _db
    _config = config
    _db = None


def get_config() -> Config:
    global _config
    if _config is None:
        _config = Config()
    return _config


def get_db() -> Database:
    global _db
    if _db is None:
        config = get_config()
        config.ensure_dirs()
        _db = Database(config.db_path)
    return _db


def get_service() -> InvoiceService:
    return InvoiceService(get_db())


def get_backup_service() -> BackupService:
    return BackupService(get_config(), get_db())


@contextmanager
def _http_errors():
    try:
        yield
    except InvoiceValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except InvoiceNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except StoreError as exc:
        logger.error("Store error: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc))


def _window(range_name: Optional[str], start: Optional[str], end: Optional[str]):
    range_name = range_name or get_config().default_date_range
    if start or end:
        range_name = RANGE_CUSTOM
    try:
        return resolve_window(range_name, start, end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))


def _table_response(table: ReportTable, fmt: str, stem: str):
    stamp = datetime.now().strftime("%Y%m%d%H%M%S")
    if fmt == "xlsx":
        return Response(
            content=table_workbook(table),
            media_type=XLSX_MIME,
            headers={"Content-Disposition": f'attachment; filename="{stem}-{stamp}.xlsx"'},
        )
    if fmt == "html":
        return HTMLResponse(render_table(table))
    raise HTTPException(400, f"Unsupported format: {fmt}")


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(title="Job-Work Tracker", docs_url=None, redoc_url=None)


@app.get("/api/health")
def health():
    config = get_config()
    return {
        "status": "ok",
        "db_path":    str(config.db_path),
        "db_exists":  config.db_path.exists(),
        "backup_dir": str(config.backup_dir),
    }


@app.get("/api/stats")
def stats():
    with _http_errors():
        return get_db().get_stats()


@app.get("/api/dashboard")
def dashboard(period: str = Query(default="monthly")):
    if period not in CHART_PERIODS:
        raise HTTPException(400, f"Invalid chart period {period!r}. Must be one of {CHART_PERIODS}")
    db = get_db()
    with _http_errors():
        supplies = db.get_supply_invoices()
        receipts = db.get_receipt_invoices()
    chart = supply_chart(supplies, period)
    return {
        "totals": dashboard_totals(supplies, receipts).model_dump(),
        "recent": [
            r.model_dump()
            for r in recent_invoices(supplies, receipts, get_config().recent_invoice_limit)
        ],
        "chart": [p.model_dump() for p in chart],
    }


# ── Goods ────────────────────────────────────────────────────────────────────

@app.get("/api/goods")
def list_goods():
    with _http_errors():
        return [g.model_dump() for g in get_db().get_goods()]


@app.post("/api/goods", status_code=201)
def add_goods(body: GoodsCreate):
    if not body.name.strip():
        raise HTTPException(400, "Goods name is required")
    with _http_errors():
        return get_service().ensure_goods(body.name).model_dump()


# ── Supply invoices ──────────────────────────────────────────────────────────

@app.get("/api/supply-invoices")
def list_supply_invoices():
    with _http_errors():
        return [s.model_dump(by_alias=True) for s in get_db().get_supply_invoices()]


@app.post("/api/supply-invoices", status_code=201)
def create_supply_invoice(body: NewSupplyInvoice):
    with _http_errors():
        return get_service().create_supply_invoice(body).model_dump(by_alias=True)


@app.get("/api/supply-invoices/{invoice_id}")
def get_supply_invoice(invoice_id: str):
    with _http_errors():
        inv = get_db().get_supply_invoice(invoice_id)
    if inv is None:
        raise HTTPException(404, f"Supply invoice not found: {invoice_id}")
    return inv.model_dump(by_alias=True)


@app.put("/api/supply-invoices/{invoice_id}")
def edit_supply_invoice(invoice_id: str, body: SupplyInvoiceEdit):
    update = SupplyInvoiceUpdate(**body.model_dump(exclude={"reason"}))
    with _http_errors():
        changes = get_service().update_supply_invoice(invoice_id, update, body.reason)
        inv = get_db().get_supply_invoice(invoice_id)
    return {
        "invoice": inv.model_dump(by_alias=True) if inv else None,
        "changes": [c.model_dump() for c in changes],
    }


@app.delete("/api/supply-invoices/{invoice_id}")
def delete_supply_invoice(invoice_id: str):
    with _http_errors():
        deleted = get_service().delete_supply_invoice(invoice_id)
    if not deleted:
        raise HTTPException(404, f"Supply invoice not found: {invoice_id}")
    return {"deleted": invoice_id}


# ── Receipt invoices ─────────────────────────────────────────────────────────

@app.get("/api/receipt-invoices")
def list_receipt_invoices():
    with _http_errors():
        return [r.model_dump(by_alias=True) for r in get_db().get_receipt_invoices()]


@app.post("/api/receipt-invoices", status_code=201)
def create_receipt_invoice(body: NewReceiptInvoice):
    with _http_errors():
        return get_service().create_receipt_invoice(body).model_dump(by_alias=True)


@app.get("/api/receipt-invoices/{invoice_id}")
def get_receipt_invoice(invoice_id: str):
    with _http_errors():
        inv = get_db().get_receipt_invoice(invoice_id)
    if inv is None:
        raise HTTPException(404, f"Receipt invoice not found: {invoice_id}")
    return inv.model_dump(by_alias=True)


@app.put("/api/receipt-invoices/{invoice_id}")
def edit_receipt_invoice(invoice_id: str, body: ReceiptInvoiceEdit):
    update = ReceiptInvoiceUpdate(**body.model_dump(exclude={"reason"}))
    with _http_errors():
        changes = get_service().update_receipt_invoice(invoice_id, update, body.reason)
        inv = get_db().get_receipt_invoice(invoice_id)
    return {
        "invoice": inv.model_dump(by_alias=True) if inv else None,
        "changes": [c.model_dump() for c in changes],
    }


@app.delete("/api/receipt-invoices/{invoice_id}")
def delete_receipt_invoice(invoice_id: str):
    with _http_errors():
        deleted = get_service().delete_receipt_invoice(invoice_id)
    if not deleted:
        raise HTTPException(404, f"Receipt invoice not found: {invoice_id}")
    return {"deleted": invoice_id}


# ── Change history ───────────────────────────────────────────────────────────

@app.get("/api/changes")
def list_changes(tab: Optional[str] = Query(default=None)):
    with _http_errors():
        changes = get_db().get_invoice_changes()
    if tab:
        try:
            changes = filter_changes(changes, tab)
        except ValueError as exc:
            raise HTTPException(400, str(exc))
    return [change_view(c) for c in changes]


@app.get("/api/changes/{change_id}/preview")
def preview_change(change_id: str):
    db = get_db()
    with _http_errors():
        change = next((c for c in db.get_invoice_changes() if c.id == change_id), None)
        if change is None:
            raise HTTPException(404, f"Change not found: {change_id}")
        invoice = preview_invoice(db, change)
    if invoice is None:
        raise HTTPException(404, "Invoice data not found (it might have been deleted).")
    return invoice.model_dump(by_alias=True)


# ── Reports ──────────────────────────────────────────────────────────────────

@app.get("/api/reports/dynamic/{invoice_id}/status")
def supply_status(invoice_id: str, format: str = Query(default="json")):
    db = get_db()
    with _http_errors():
        supply = db.get_supply_invoice(invoice_id)
        if supply is None:
            raise HTTPException(404, f"Supply invoice not found: {invoice_id}")
        record = dynamic_supply_report([supply], db.get_receipt_invoices())[0]
    if format == "json":
        return record.model_dump()
    return _table_response(
        supply_status_table(record), format, f"dynamic-supply-{record.invoice_number}"
    )


@app.get("/api/reports/attributes/details")
def attribute_cell_details(
    date: str = Query(...),
    receipt: str = Query(...),
    attribute: str = Query(...),
):
    with _http_errors():
        rows = aggregate(get_db().get_receipt_invoices())
    return [d.model_dump() for d in attribute_details(rows, date, receipt, attribute)]


@app.get("/api/reports/goods/{name}/history")
def goods_history(
    name: str,
    range: Optional[str] = Query(default=None),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
):
    window = _window(range, start, end)
    db = get_db()
    with _http_errors():
        rows = goods_report(db.get_goods(), db.get_supply_invoices(), db.get_receipt_invoices(), window)
    row = next((r for r in rows if r.name == name), None)
    if row is None:
        raise HTTPException(404, f"Goods not found: {name}")
    return goods_history_rows(row)


@app.get("/api/reports/{name}")
def report(
    name: str,
    range: Optional[str] = Query(default=None),
    start: Optional[str] = Query(default=None),
    end: Optional[str] = Query(default=None),
    search: Optional[str] = Query(default=None),
    format: str = Query(default="json"),
):
    window = _window(range, start, end)
    with _http_errors():
        try:
            rows, table = build_report(
                get_db(), name, window, search, range_label=range or RANGE_CUSTOM
            )
        except ValueError as exc:
            raise HTTPException(404, str(exc))
    if format == "json":
        return [r.model_dump() for r in rows]
    return _table_response(table, format, f"{name}-report")


# ── Backup ───────────────────────────────────────────────────────────────────

@app.get("/api/backup/export")
def export_backup():
    with _http_errors():
        filename, content = get_backup_service().export_backup()
    return Response(
        content=content,
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@app.post("/api/backup/import")
def import_backup(
    payload: dict = Body(...),
    mode: str = Query(default="merge"),
    filename: str = Query(default="upload.json"),
):
    try:
        ok = get_backup_service().restore_content(json.dumps(payload), mode, filename)
    except ValueError as exc:
        raise HTTPException(400, str(exc))
    if not ok:
        raise HTTPException(400, "Import failed; see server log")
    return {"imported": True, "mode": mode}


@app.post("/api/backup", status_code=201)
def create_backup():
    try:
        filename = get_backup_service().create_backup()
    except (OSError, StoreError) as exc:
        raise HTTPException(500, f"Backup failed: {exc}")
    return {"filename": filename}


@app.get("/api/backup/history")
def backup_history():
    with _http_errors():
        return [e.model_dump(by_alias=True) for e in get_db().get_backup_history()]


@app.post("/api/backup/clear")
def clear_data(body: ClearRequest):
    if not body.confirm:
        raise HTTPException(400, "Set confirm=true to clear all data")
    if not get_backup_service().clear_database():
        raise HTTPException(500, "Failed to clear database")
    return JSONResponse({"cleared": True})
