"""
Read-side helpers for the invoice change log: tab classification, decoded
views and the invoice preview behind a change entry.
"""
from typing import Optional, Union

from models.history import InvoiceChange
from models.invoice import ReceiptInvoice, SupplyInvoice
from .database import Database
from .diff import parse_change_details

RECEIPT_KEYWORDS = ("receipt", "finished", "damaged")


def classify_change(change: InvoiceChange) -> str:
    """
    "receipt" when the details or reason mention a receipt-only word,
    otherwise "supply".  A keyword heuristic, not a stored type.
    """
    text = (change.change_details + change.reason).lower()
    return "receipt" if any(word in text for word in RECEIPT_KEYWORDS) else "supply"


def filter_changes(changes: list[InvoiceChange], tab: str) -> list[InvoiceChange]:
    if tab not in ("supply", "receipt"):
        raise ValueError(f"Invalid history tab {tab!r}. Must be 'supply' or 'receipt'")
    return [c for c in changes if classify_change(c) == tab]


def change_view(change: InvoiceChange) -> dict:
    """
    Flatten one change for display.  ``entries`` is None for legacy or
    malformed details, in which case ``raw`` is what should be shown.
    """
    entries = parse_change_details(change.change_details)
    return {
        "id": change.id,
        "invoiceId": change.invoice_id,
        "invoiceNumber": change.invoice_number,
        "changeDate": change.change_date,
        "reason": change.reason,
        "kind": classify_change(change),
        "entries": [e.model_dump() for e in entries] if entries is not None else None,
        "raw": change.change_details,
    }


def preview_invoice(
    db: Database,
    change: InvoiceChange,
) -> Optional[Union[SupplyInvoice, ReceiptInvoice]]:
    """Current state of the invoice a change refers to, or None once deleted."""
    if not change.invoice_id:
        return None
    if classify_change(change) == "receipt":
        return db.get_receipt_invoice(change.invoice_id) or db.get_supply_invoice(change.invoice_id)
    return db.get_supply_invoice(change.invoice_id) or db.get_receipt_invoice(change.invoice_id)
