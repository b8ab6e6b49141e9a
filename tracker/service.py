"""
Invoice service: create, edit and delete invoices as single logical operations.

An edit runs as:

  1. validate the reason, any new date and any replacement item list
  2. read the stored record (InvoiceNotFoundError if it is gone)
  3. compute the field-level diff against the proposed update
  4. write header + item replacement (one transaction in the store)
  5. make sure every goods name on the invoice exists in the goods master
  6. append the change-log entry

Step 6 is best-effort: a failure is logged and the edit still stands.
"""
import logging
from datetime import datetime, timezone
from typing import Optional

from models.goods import Goods
from models.history import ChangeEntry, InvoiceChange
from models.invoice import (
    NewReceiptInvoice,
    NewSupplyInvoice,
    ReceiptInvoice,
    ReceiptInvoiceUpdate,
    SupplyInvoice,
    SupplyInvoiceUpdate,
)
from .database import Database
from .diff import compute_diff, serialize_changes
from .errors import InvoiceNotFoundError, InvoiceValidationError, StoreError
from .validator import InvoiceFormValidator

logger = logging.getLogger(__name__)


class InvoiceService:
    """
    Usage:
        service = InvoiceService(db)
        inv = service.create_supply_invoice(NewSupplyInvoice(...))
        service.update_supply_invoice(inv.id, SupplyInvoiceUpdate(...), reason="correction")
    """

    def __init__(self, db: Database, validator: Optional[InvoiceFormValidator] = None) -> None:
        self.db = db
        self.validator = validator or InvoiceFormValidator()

    # ------------------------------------------------------------------
    # Goods
    # ------------------------------------------------------------------

    def ensure_goods(self, name: str) -> Optional[Goods]:
        name = (name or "").strip()
        if not name:
            return None
        return self.db.add_goods(name)

    def _ensure_goods_for(self, items) -> None:
        for item in items:
            self.ensure_goods(item.goods_name)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_supply_invoice(self, invoice: NewSupplyInvoice) -> SupplyInvoice:
        clean = self.validator.validate_supply(invoice)
        created = self.db.add_supply_invoice(clean)
        self._ensure_goods_for(created.items)
        return created

    def create_receipt_invoice(self, invoice: NewReceiptInvoice) -> ReceiptInvoice:
        clean = self.validator.validate_receipt(invoice)
        if not clean.supply_invoice_number:
            supply = self.db.get_supply_invoice(clean.supply_invoice_id)
            if supply is None:
                raise InvoiceValidationError("Please select a supply invoice")
            clean = clean.model_copy(update={"supply_invoice_number": supply.invoice_number})
        created = self.db.add_receipt_invoice(clean)
        self._ensure_goods_for(created.items)
        return created

    # ------------------------------------------------------------------
    # Edit
    # ------------------------------------------------------------------

    def update_supply_invoice(
        self,
        invoice_id: str,
        update: SupplyInvoiceUpdate,
        reason: str,
    ) -> list[ChangeEntry]:
        """Apply *update* and log it.  Returns the recorded changes."""
        reason = self.validator.validate_reason(reason)
        if update.date is not None:
            update = update.model_copy(update={"date": self.validator.validate_date(update.date)})
        if update.invoice_number is not None and not update.invoice_number.strip():
            raise InvoiceValidationError("Please enter invoice number")
        if update.items is not None:
            items = self.validator.valid_supply_items(update.items)
            if not items:
                raise InvoiceValidationError(
                    "Please add at least one item with goods name and quantity"
                )
            update = update.model_copy(update={"items": items})

        old = self.db.get_supply_invoice_record(invoice_id)
        if old is None:
            raise InvoiceNotFoundError(f"Supply invoice {invoice_id} not found")

        changes = compute_diff(old, update, "supply")
        if not self.db.update_supply_invoice(invoice_id, update):
            raise InvoiceNotFoundError(f"Supply invoice {invoice_id} not found")
        if update.items is not None:
            self._ensure_goods_for(update.items)

        self._log_change(
            invoice_id,
            update.invoice_number or old.invoice_number,
            reason,
            changes,
        )
        return changes

    def _resolve_supply_ref(self, update: ReceiptInvoiceUpdate) -> ReceiptInvoiceUpdate:
        """Keep supply_invoice_id and supply_invoice_number pointing at the same invoice."""
        if update.supply_invoice_id:
            supply = self.db.get_supply_invoice(update.supply_invoice_id)
            if supply is None:
                raise InvoiceValidationError(
                    f"Supply invoice {update.supply_invoice_id} not found"
                )
            return update.model_copy(update={"supply_invoice_number": supply.invoice_number})
        if update.supply_invoice_number:
            supply = self.db.find_supply_by_number(update.supply_invoice_number)
            if supply is None:
                raise InvoiceValidationError(
                    f"Supply invoice {update.supply_invoice_number} not found"
                )
            return update.model_copy(update={"supply_invoice_id": supply.id})
        return update

    def update_receipt_invoice(
        self,
        invoice_id: str,
        update: ReceiptInvoiceUpdate,
        reason: str,
    ) -> list[ChangeEntry]:
        reason = self.validator.validate_reason(reason)
        if update.date is not None:
            update = update.model_copy(update={"date": self.validator.validate_date(update.date)})
        if update.receipt_invoice_number is not None and not update.receipt_invoice_number.strip():
            raise InvoiceValidationError("Please enter receipt invoice number")
        if update.items is not None:
            items = self.validator.valid_receipt_items(update.items)
            if not items:
                raise InvoiceValidationError("Please add at least one item with quantities")
            update = update.model_copy(update={"items": items})
        update = self._resolve_supply_ref(update)

        old = self.db.get_receipt_invoice_record(invoice_id)
        if old is None:
            raise InvoiceNotFoundError(f"Receipt invoice {invoice_id} not found")

        changes = compute_diff(old, update, "receipt")
        if not self.db.update_receipt_invoice(invoice_id, update):
            raise InvoiceNotFoundError(f"Receipt invoice {invoice_id} not found")
        if update.items is not None:
            self._ensure_goods_for(update.items)

        self._log_change(
            invoice_id,
            update.receipt_invoice_number or old.receipt_invoice_number,
            reason,
            changes,
        )
        return changes

    def _log_change(
        self,
        invoice_id: str,
        invoice_number: Optional[str],
        reason: str,
        changes: list[ChangeEntry],
    ) -> None:
        entry = InvoiceChange(
            invoice_id=invoice_id,
            invoice_number=invoice_number,
            change_date=datetime.now(timezone.utc).isoformat(),
            reason=reason,
            change_details=serialize_changes(changes),
        )
        try:
            self.db.add_invoice_change(entry)
        except StoreError as exc:
            logger.error("Failed to log change for invoice %s: %s", invoice_number, exc)
            return
        logger.info(
            "Invoice %s edited (%d change(s)): %s", invoice_number, len(changes), reason
        )

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_supply_invoice(self, invoice_id: str) -> bool:
        """Receipts recorded against the invoice are kept and simply stop matching."""
        deleted = self.db.delete_supply_invoice(invoice_id)
        if deleted:
            logger.info("Supply invoice deleted: %s", invoice_id)
        return deleted

    def delete_receipt_invoice(self, invoice_id: str) -> bool:
        deleted = self.db.delete_receipt_invoice(invoice_id)
        if deleted:
            logger.info("Receipt invoice deleted: %s", invoice_id)
        return deleted
