"""
Report assembly: load records, apply the date window and search, and hand
back both the structured rows and the flattened export table.
"""
import logging
from typing import Optional

from tracker.attributes import aggregate, search_attribute_rows
from tracker.database import Database
from tracker.date_ranges import DateWindow
from tracker.goods_report import goods_report, search_goods_rows
from tracker.reconciliation import (
    dynamic_supply_report,
    summarize_receipts,
    summarize_supplies,
)
from .export import (
    ReportTable,
    attribute_table,
    dynamic_supply_table,
    goods_table,
    original_supply_table,
    receipt_table,
)

logger = logging.getLogger(__name__)

REPORT_NAMES = ("dynamic", "original", "receipts", "attributes", "goods")


def _matches(query: str, *values: str) -> bool:
    needle = query.lower()
    return any(needle in (v or "").lower() for v in values)


def build_report(
    db: Database,
    name: str,
    window: Optional[DateWindow] = None,
    search: Optional[str] = None,
    range_label: str = "",
) -> tuple[list, ReportTable]:
    """
    Return ``(rows, table)`` for the named report.

    rows are the report models (for JSON); table is the export shape.
    """
    if name == "dynamic":
        rows = dynamic_supply_report(db.get_supply_invoices(), db.get_receipt_invoices(), window)
        if search and search.strip():
            rows = [r for r in rows if _matches(search, r.invoice_number)]
        return rows, dynamic_supply_table(rows)

    if name == "original":
        rows = summarize_supplies(db.get_supply_invoices(), window)
        if search and search.strip():
            rows = [r for r in rows if _matches(search, r.invoice_number)]
        return rows, original_supply_table(rows)

    if name == "receipts":
        rows = summarize_receipts(db.get_receipt_invoices(), window)
        if search and search.strip():
            rows = [
                r for r in rows
                if _matches(search, r.receipt_invoice_number, r.supply_invoice_number)
            ]
        return rows, receipt_table(rows)

    if name == "attributes":
        rows = search_attribute_rows(aggregate(db.get_receipt_invoices(), window), search)
        return rows, attribute_table(rows)

    if name == "goods":
        rows = goods_report(
            db.get_goods(), db.get_supply_invoices(), db.get_receipt_invoices(), window
        )
        rows = search_goods_rows(rows, search)
        return rows, goods_table(rows, range_label)

    raise ValueError(f"Invalid report {name!r}. Must be one of {REPORT_NAMES}")
