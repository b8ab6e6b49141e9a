"""
Integration tests for the invoice service (create, edit, delete, audit).
"""
import json

import pytest

from models.invoice import (
    NewReceiptInvoice,
    ReceiptInvoiceUpdate,
    ReceiptItem,
    SupplyInvoiceUpdate,
    SupplyItem,
)
from tracker.attributes import aggregate, attribute_details
from tracker.errors import InvoiceNotFoundError, InvoiceValidationError, StoreError
from tracker.goods_report import aggregate_by_goods
from tracker.reconciliation import reconcile


@pytest.mark.integration
class TestCreate:
    """Tests for invoice creation."""

    def test_supply_creation_registers_goods(self, service, test_db, supply_in_db):
        assert [g.name for g in test_db.get_goods()] == ["Cloth"]

    def test_ensure_goods_twice_creates_one_record(self, service, test_db):
        service.ensure_goods("Cloth")
        service.ensure_goods("Cloth")
        assert len(test_db.get_goods()) == 1

    def test_ensure_goods_ignores_blank(self, service, test_db):
        assert service.ensure_goods("  ") is None
        assert test_db.get_goods() == []

    def test_receipt_fills_supply_number(self, service, supply_in_db):
        created = service.create_receipt_invoice(NewReceiptInvoice(
            date="2024-01-20", receipt_invoice_number="REC-1",
            supply_invoice_id=supply_in_db.id,
            items=[ReceiptItem(goods_name="Cloth", finished_quantity=5)],
        ))
        assert created.supply_invoice_number == "INV-1"

    def test_invalid_supply_is_not_written(self, service, test_db, sample_supply):
        with pytest.raises(InvoiceValidationError):
            service.create_supply_invoice(sample_supply.model_copy(update={"invoice_number": ""}))
        assert test_db.get_supply_invoices() == []


    def test_padded_goods_name_matches_goods_record(self, service, test_db, sample_supply):
        """Test that 'Cloth ' is stored and registered as 'Cloth' so stock reports pair them."""
        service.create_supply_invoice(sample_supply.model_copy(update={
            "items": [SupplyItem(goods_name="Cloth ", quantity=100)],
        }))
        [stored] = test_db.get_supply_invoices()
        assert stored.items[0].goods_name == "Cloth"
        rows = aggregate_by_goods(test_db.get_goods(), test_db.get_supply_invoices(), [])
        assert [(r.name, r.stock_with_job_worker) for r in rows] == [("Cloth", 100)]

    def test_blank_date_is_not_written(self, service, test_db, sample_supply):
        with pytest.raises(InvoiceValidationError, match="select a date"):
            service.create_supply_invoice(sample_supply.model_copy(update={"date": ""}))
        assert test_db.get_supply_invoices() == []


@pytest.mark.integration
class TestEndToEnd:
    """Supply, receipt and report flow."""

    def test_reconciliation_and_attribute_drilldown(self, test_db, receipt_in_db):
        """Test INV-1 (Cloth 100) and REC-1 (60 finished, 10 damaged) → 100 / 70 / 30."""
        [record] = reconcile(test_db.get_supply_invoices(), test_db.get_receipt_invoices())
        assert (record.original_qty, record.received_qty, record.remaining_qty) == (100, 70, 30)
        assert [r.receipt_invoice_number for r in record.receipts] == ["REC-1"]

        rows = aggregate(test_db.get_receipt_invoices())
        details = attribute_details(rows, "2024-01-20", "REC-1", "A")
        assert len(details) == 1
        assert rows[0].totals["A"] == 60


@pytest.mark.integration
class TestEdit:
    """Tests for edits and the change log."""

    def test_quantity_edit_logs_one_change(self, service, test_db, supply_in_db):
        """Test editing Cloth 100 → 120 appends exactly one change entry."""
        update = SupplyInvoiceUpdate(items=[SupplyItem(goods_name="Cloth", quantity=120)])
        service.update_supply_invoice(supply_in_db.id, update, "correction")

        [logged] = test_db.get_invoice_changes()
        assert logged.reason == "correction"
        assert logged.invoice_id == supply_in_db.id
        assert logged.invoice_number == "INV-1"
        assert json.loads(logged.change_details) == [
            {"field": "Item Qty: Cloth", "old": "100", "new": "120"}
        ]
        assert test_db.get_supply_invoice(supply_in_db.id).items[0].quantity == 120

    def test_renumbered_invoice_logs_new_number(self, service, test_db, supply_in_db):
        service.update_supply_invoice(
            supply_in_db.id, SupplyInvoiceUpdate(invoice_number="INV-1A"), "typo"
        )
        assert test_db.get_invoice_changes()[0].invoice_number == "INV-1A"

    def test_edit_requires_reason(self, service, test_db, supply_in_db):
        with pytest.raises(InvoiceValidationError):
            service.update_supply_invoice(supply_in_db.id, SupplyInvoiceUpdate(date="2024-02-01"), "")
        assert test_db.get_invoice_changes() == []
        assert test_db.get_supply_invoice(supply_in_db.id).date == "2024-01-10"

    def test_edit_with_bad_date_rejected(self, service, test_db, supply_in_db):
        with pytest.raises(InvoiceValidationError, match="select a date"):
            service.update_supply_invoice(supply_in_db.id, SupplyInvoiceUpdate(date=" "), "x")
        assert test_db.get_supply_invoice(supply_in_db.id).date == "2024-01-10"

    def test_edit_unknown_invoice(self, service):
        with pytest.raises(InvoiceNotFoundError):
            service.update_supply_invoice("missing", SupplyInvoiceUpdate(date="2024-02-01"), "x")

    def test_edit_with_no_valid_items_rejected(self, service, supply_in_db):
        update = SupplyInvoiceUpdate(items=[SupplyItem(goods_name="Cloth", quantity=0)])
        with pytest.raises(InvoiceValidationError):
            service.update_supply_invoice(supply_in_db.id, update, "x")

    def test_edit_adds_new_goods(self, service, test_db, supply_in_db):
        update = SupplyInvoiceUpdate(items=[
            SupplyItem(goods_name="Cloth", quantity=100),
            SupplyItem(goods_name="Silk", quantity=5),
        ])
        service.update_supply_invoice(supply_in_db.id, update, "added silk")
        assert [g.name for g in test_db.get_goods()] == ["Cloth", "Silk"]

    def test_change_log_failure_does_not_fail_edit(self, service, test_db, supply_in_db, monkeypatch, caplog):
        def broken(change):
            raise StoreError("invoice_changes is locked")

        monkeypatch.setattr(test_db, "add_invoice_change", broken)
        service.update_supply_invoice(supply_in_db.id, SupplyInvoiceUpdate(date="2024-02-01"), "x")
        assert test_db.get_supply_invoice(supply_in_db.id).date == "2024-02-01"
        assert "Failed to log change" in caplog.text

    def test_receipt_edit_relinks_supply(self, service, test_db, receipt_in_db, sample_supply):
        other = service.create_supply_invoice(sample_supply.model_copy(update={"invoice_number": "INV-2"}))
        changes = service.update_receipt_invoice(
            receipt_in_db.id, ReceiptInvoiceUpdate(supply_invoice_number="INV-2"), "wrong lot",
        )
        fetched = test_db.get_receipt_invoice(receipt_in_db.id)
        assert fetched.supply_invoice_id == other.id
        assert [c.field for c in changes] == ["Supply Ref"]

        [inv1, inv2] = sorted(
            reconcile(test_db.get_supply_invoices(), test_db.get_receipt_invoices()),
            key=lambda r: r.invoice_number,
        )
        assert inv1.remaining_qty == 100
        assert inv2.remaining_qty == 30

    def test_receipt_edit_unknown_supply_ref(self, service, receipt_in_db):
        with pytest.raises(InvoiceValidationError, match="not found"):
            service.update_receipt_invoice(
                receipt_in_db.id, ReceiptInvoiceUpdate(supply_invoice_number="INV-404"), "x",
            )

    def test_receipt_quantity_edit(self, service, test_db, receipt_in_db):
        update = ReceiptInvoiceUpdate(items=[
            ReceiptItem(goods_name="Cloth", finished_quantity=65, damaged_quantity=10,
                        attributes=["C", "A"]),
        ])
        changes = service.update_receipt_invoice(receipt_in_db.id, update, "recount")
        assert [(c.field, c.old, c.new) for c in changes] == [("Item Finished: Cloth", "60", "65")]


@pytest.mark.integration
class TestDelete:
    """Tests for deletion."""

    def test_deleting_supply_orphans_receipts(self, service, test_db, receipt_in_db, supply_in_db):
        assert service.delete_supply_invoice(supply_in_db.id)
        assert test_db.get_receipt_invoice(receipt_in_db.id) is not None
        assert reconcile(test_db.get_supply_invoices(), test_db.get_receipt_invoices()) == []

    def test_delete_receipt_restores_remaining(self, service, test_db, receipt_in_db):
        assert service.delete_receipt_invoice(receipt_in_db.id)
        [record] = reconcile(test_db.get_supply_invoices(), test_db.get_receipt_invoices())
        assert record.remaining_qty == 100
