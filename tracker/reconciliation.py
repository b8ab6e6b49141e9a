"""
Supply-to-receipt reconciliation.

Each receipt invoice references the supply invoice it returns goods against
(supply_invoice_id).  reconcile() folds all such receipts into the supply
invoice's original / received / remaining quantities.

The report's date window selects which *supply* invoices are shown; every
receipt ever recorded against a shown supply invoice counts, whatever its
own date.
"""
import logging
from datetime import datetime
from typing import Iterable, Optional

from models.invoice import ReceiptInvoice, SupplyInvoice
from models.report import DynamicSupplyRecord, ReceiptSummary, SupplySummary
from .date_ranges import DateWindow, filter_by_date, parse_record_date

logger = logging.getLogger(__name__)


def clamp_remaining(quantity: float) -> float:
    """
    Display policy for outstanding quantity.

    Over-receipt is accepted silently and shown as zero remaining.  Change the
    policy here (e.g. raise or warn) and every report follows.
    """
    return max(quantity, 0)


def _receipt_sort_key(receipt: ReceiptInvoice):
    try:
        return parse_record_date(receipt.date)
    except (TypeError, ValueError):
        return datetime.max


def received_quantity(receipts: Iterable[ReceiptInvoice]) -> float:
    return sum(
        item.finished_quantity + item.damaged_quantity
        for receipt in receipts
        for item in receipt.items
    )


def reconcile(
    supply_invoices: list[SupplyInvoice],
    receipt_invoices: list[ReceiptInvoice],
) -> list[DynamicSupplyRecord]:
    """Return one DynamicSupplyRecord per supply invoice, in input order."""
    by_supply: dict[str, list[ReceiptInvoice]] = {}
    for receipt in receipt_invoices:
        if receipt.supply_invoice_id:
            by_supply.setdefault(receipt.supply_invoice_id, []).append(receipt)

    records: list[DynamicSupplyRecord] = []
    for supply in supply_invoices:
        matched = sorted(by_supply.get(supply.id, []), key=_receipt_sort_key)
        original = supply.total_quantity
        received = received_quantity(matched)
        records.append(DynamicSupplyRecord(
            id=supply.id,
            date=supply.date,
            invoice_number=supply.invoice_number,
            original_qty=original,
            received_qty=received,
            remaining_qty=clamp_remaining(original - received),
            receipts=matched,
            items=supply.items,
        ))
    return records


def dynamic_supply_report(
    supply_invoices: list[SupplyInvoice],
    receipt_invoices: list[ReceiptInvoice],
    window: Optional[DateWindow] = None,
) -> list[DynamicSupplyRecord]:
    """Reconcile the supply invoices dated inside *window* against all receipts."""
    supplies = filter_by_date(supply_invoices, window) if window else supply_invoices
    records = reconcile(supplies, receipt_invoices)
    logger.debug(
        "Dynamic supply report: %d of %d supply invoices in window",
        len(records), len(supply_invoices),
    )
    return records


def summarize_supplies(
    supply_invoices: list[SupplyInvoice],
    window: Optional[DateWindow] = None,
) -> list[SupplySummary]:
    """Original supply bill: each supply invoice with its total sent quantity."""
    supplies = filter_by_date(supply_invoices, window) if window else supply_invoices
    return [
        SupplySummary(
            id=s.id, date=s.date, invoice_number=s.invoice_number, quantity=s.total_quantity,
        )
        for s in supplies
    ]


def summarize_receipts(
    receipt_invoices: list[ReceiptInvoice],
    window: Optional[DateWindow] = None,
) -> list[ReceiptSummary]:
    """Receipt report: finished, damaged and total returned per receipt invoice."""
    receipts = filter_by_date(receipt_invoices, window) if window else receipt_invoices
    summaries = []
    for r in receipts:
        finished = sum(i.finished_quantity for i in r.items)
        damaged = sum(i.damaged_quantity for i in r.items)
        summaries.append(ReceiptSummary(
            id=r.id,
            date=r.date,
            receipt_invoice_number=r.receipt_invoice_number,
            supply_invoice_number=r.supply_invoice_number,
            finished=finished,
            damaged=damaged,
            total=finished + damaged,
        ))
    return summaries
