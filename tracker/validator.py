"""
Form validation for invoice create and edit.

Checks run before any write and raise InvoiceValidationError with a message
fit to show the operator:

  Supply:   date and invoice number present, at least one line with a goods
            name and a positive quantity
  Receipt:  date and receipt number present, supply invoice selected, at least
            one line with a goods name and a positive finished or damaged
            quantity
  Edit:     a non-blank reason

Blank or zero-quantity lines are dropped rather than rejected, so the
returned invoice carries only the valid lines.  Goods names on kept lines are
stripped so they match the goods record registered for them.
"""
import logging
from typing import Optional

from models.invoice import (
    ATTRIBUTE_CATEGORIES,
    NewReceiptInvoice,
    NewSupplyInvoice,
    ReceiptItem,
    SupplyItem,
)
from .date_ranges import parse_record_date
from .errors import InvoiceValidationError

logger = logging.getLogger(__name__)


class InvoiceFormValidator:
    """
    Usage:
        validator = InvoiceFormValidator()
        clean = validator.validate_supply(new_invoice)
    """

    def validate_supply(self, invoice: NewSupplyInvoice) -> NewSupplyInvoice:
        invoice_date = self.validate_date(invoice.date)
        if not invoice.invoice_number.strip():
            raise InvoiceValidationError("Please enter invoice number")
        items = self.valid_supply_items(invoice.items)
        if not items:
            raise InvoiceValidationError(
                "Please add at least one item with goods name and quantity"
            )
        return invoice.model_copy(update={"date": invoice_date, "items": items})

    def validate_receipt(self, invoice: NewReceiptInvoice) -> NewReceiptInvoice:
        invoice_date = self.validate_date(invoice.date)
        if not invoice.receipt_invoice_number.strip():
            raise InvoiceValidationError("Please enter receipt invoice number")
        if not invoice.supply_invoice_id:
            raise InvoiceValidationError("Please select a supply invoice")
        items = self.valid_receipt_items(invoice.items)
        if not items:
            raise InvoiceValidationError("Please add at least one item with quantities")
        return invoice.model_copy(update={"date": invoice_date, "items": items})

    def validate_date(self, value: Optional[str]) -> str:
        """Return the stripped date, or raise if it is blank or not a date."""
        text = (value or "").strip()
        if not text:
            raise InvoiceValidationError("Please select a date")
        try:
            parse_record_date(text)
        except ValueError:
            raise InvoiceValidationError("Please select a date")
        return text

    def validate_reason(self, reason: Optional[str]) -> str:
        if not reason or not reason.strip():
            raise InvoiceValidationError("Please enter a reason for changing this invoice")
        return reason.strip()

    # ------------------------------------------------------------------
    # Line filtering
    # ------------------------------------------------------------------

    @staticmethod
    def valid_supply_items(items: list[SupplyItem]) -> list[SupplyItem]:
        return [
            i.model_copy(update={"goods_name": i.goods_name.strip()})
            for i in items
            if i.goods_name.strip() and i.quantity > 0
        ]

    @staticmethod
    def valid_receipt_items(items: list[ReceiptItem]) -> list[ReceiptItem]:
        kept = []
        for item in items:
            name = item.goods_name.strip()
            if not name:
                continue
            if item.finished_quantity <= 0 and item.damaged_quantity <= 0:
                continue
            unknown = [a for a in item.attributes if a not in ATTRIBUTE_CATEGORIES]
            if unknown:
                raise InvoiceValidationError(
                    f"Unknown attribute(s) {', '.join(unknown)} on {name}; "
                    f"allowed: {', '.join(ATTRIBUTE_CATEGORIES)}"
                )
            kept.append(item.model_copy(update={"goods_name": name}))
        return kept
