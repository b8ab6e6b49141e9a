"""
Attribute report aggregation.

Receipt items carry zero or more attribute tags from the fixed A-H taxonomy.
aggregate() groups receipts by (date, receipt invoice number) and, for each
category, sums the *finished* quantity of every item carrying that tag.  An
item tagged with several categories counts in full towards each of them.

Grouping key collisions
-----------------------
Two different receipt records sharing a receipt number on the same date land
in the same row.  This is kept as-is; find_colliding_receipts() reports such
collisions and aggregate() logs a warning whenever it merges them.
"""
import logging
from typing import Optional

from models.invoice import ATTRIBUTE_CATEGORIES, ReceiptInvoice
from models.report import AttributeDetail, AttributeRow
from .date_ranges import DateWindow, filter_by_date, format_display_date, parse_record_date

logger = logging.getLogger(__name__)


def _group_key(receipt: ReceiptInvoice) -> tuple[str, str]:
    return (receipt.date, receipt.receipt_invoice_number)


def find_colliding_receipts(receipts: list[ReceiptInvoice]) -> dict[tuple[str, str], list[str]]:
    """Return {(date, receipt number): [receipt ids]} for keys shared by several receipts."""
    seen: dict[tuple[str, str], list[str]] = {}
    for receipt in receipts:
        seen.setdefault(_group_key(receipt), []).append(receipt.id)
    return {key: ids for key, ids in seen.items() if len(ids) > 1}


def _date_sort_value(row: AttributeRow) -> float:
    try:
        return parse_record_date(row.date).timestamp()
    except (TypeError, ValueError, OverflowError):
        return float("-inf")


def aggregate(
    receipt_invoices: list[ReceiptInvoice],
    window: Optional[DateWindow] = None,
) -> list[AttributeRow]:
    """Build attribute report rows for receipts inside *window*, newest date first."""
    receipts = filter_by_date(receipt_invoices, window) if window else receipt_invoices

    collisions = find_colliding_receipts(receipts)
    for (date, number), ids in collisions.items():
        logger.warning(
            "Attribute report merges %d receipts sharing number %s on %s: %s",
            len(ids), number, date, ", ".join(ids),
        )

    rows: dict[tuple[str, str], AttributeRow] = {}
    for receipt in receipts:
        for item in receipt.items:
            key = _group_key(receipt)
            row = rows.get(key)
            if row is None:
                row = AttributeRow(
                    date=receipt.date,
                    receipt_invoice_number=receipt.receipt_invoice_number,
                    supply_invoice_number=receipt.supply_invoice_number,
                )
                rows[key] = row
            for attr in item.attributes:
                if attr not in ATTRIBUTE_CATEGORIES:
                    continue
                row.totals[attr] += item.finished_quantity
                row.details[attr].append(AttributeDetail(
                    goods_name=item.goods_name,
                    finished_quantity=item.finished_quantity,
                    damaged_quantity=item.damaged_quantity,
                ))

    return sorted(rows.values(), key=_date_sort_value, reverse=True)


def search_attribute_rows(rows: list[AttributeRow], query: Optional[str]) -> list[AttributeRow]:
    """
    Case-insensitive substring filter on receipt number, supply number or
    the displayed date.  A blank query returns every row.
    """
    if not query or not query.strip():
        return rows
    needle = query.lower()
    return [
        row for row in rows
        if needle in row.receipt_invoice_number.lower()
        or needle in row.supply_invoice_number.lower()
        or needle in format_display_date(row.date).lower()
    ]


def attribute_details(
    rows: list[AttributeRow],
    date: str,
    receipt_invoice_number: str,
    attribute: str,
) -> list[AttributeDetail]:
    """Drill-down items behind one attribute cell; empty when nothing matches."""
    for row in rows:
        if row.date == date and row.receipt_invoice_number == receipt_invoice_number:
            return list(row.details.get(attribute, []))
    return []
