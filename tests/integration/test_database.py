"""
Integration tests for database operations.
"""
import sqlite3

import pytest

from models.history import BackupHistoryEntry, InvoiceChange
from models.invoice import (
    NewReceiptInvoice,
    NewSupplyInvoice,
    ReceiptInvoiceUpdate,
    ReceiptItem,
    SupplyInvoiceUpdate,
    SupplyItem,
)
from tracker.database import Database
from tracker.errors import StoreError


def new_supply(number="INV-1", date="2024-01-10", items=None) -> NewSupplyInvoice:
    return NewSupplyInvoice(
        date=date, invoice_number=number,
        items=items or [SupplyItem(goods_name="Cloth", quantity=100)],
    )


@pytest.mark.integration
class TestDatabase:
    """Integration tests for Database class."""

    def test_add_and_get_supply_invoice(self, test_db):
        """Test inserting and retrieving a supply invoice with items."""
        created = test_db.add_supply_invoice(new_supply(items=[
            SupplyItem(goods_name="Cloth", quantity=100),
            SupplyItem(goods_name="Thread", quantity=20),
        ]))
        fetched = test_db.get_supply_invoice(created.id)
        assert fetched is not None
        assert fetched.invoice_number == "INV-1"
        assert [(i.goods_name, i.quantity) for i in fetched.items] == [("Cloth", 100), ("Thread", 20)]
        assert all(i.id for i in fetched.items)
        assert fetched.created_at

    def test_supply_invoices_newest_first(self, test_db):
        test_db.add_supply_invoice(new_supply("INV-1", "2024-01-10"))
        test_db.add_supply_invoice(new_supply("INV-2", "2024-03-10"))
        test_db.add_supply_invoice(new_supply("INV-3", "2024-02-10"))
        assert [s.invoice_number for s in test_db.get_supply_invoices()] == ["INV-2", "INV-3", "INV-1"]

    def test_record_shape(self, test_db):
        created = test_db.add_supply_invoice(new_supply())
        record = test_db.get_supply_invoice_record(created.id)
        assert record.supply_invoice_items[0].supply_invoice_id == created.id
        assert test_db.get_supply_invoice_record("missing") is None

    def test_update_header_only_keeps_items(self, test_db):
        created = test_db.add_supply_invoice(new_supply())
        assert test_db.update_supply_invoice(created.id, SupplyInvoiceUpdate(narration="Rush"))
        fetched = test_db.get_supply_invoice(created.id)
        assert fetched.narration == "Rush"
        assert fetched.invoice_number == "INV-1"
        assert [i.goods_name for i in fetched.items] == ["Cloth"]

    def test_update_replaces_items(self, test_db):
        created = test_db.add_supply_invoice(new_supply())
        test_db.update_supply_invoice(
            created.id, SupplyInvoiceUpdate(items=[SupplyItem(goods_name="Silk", quantity=7)])
        )
        fetched = test_db.get_supply_invoice(created.id)
        assert [(i.goods_name, i.quantity) for i in fetched.items] == [("Silk", 7)]

    def test_update_missing_invoice(self, test_db):
        assert test_db.update_supply_invoice("missing", SupplyInvoiceUpdate(narration="x")) is False

    def test_delete_supply_invoice(self, test_db):
        created = test_db.add_supply_invoice(new_supply())
        assert test_db.delete_supply_invoice(created.id) is True
        assert test_db.get_supply_invoice(created.id) is None
        assert test_db.delete_supply_invoice(created.id) is False
        assert test_db.get_stats()["supply_invoice_items"] == 0

    def test_receipt_round_trip_with_attributes(self, test_db):
        supply = test_db.add_supply_invoice(new_supply())
        created = test_db.add_receipt_invoice(NewReceiptInvoice(
            date="2024-01-20", receipt_invoice_number="REC-1",
            supply_invoice_id=supply.id, supply_invoice_number="INV-1",
            items=[ReceiptItem(goods_name="Cloth", finished_quantity=60,
                               damaged_quantity=10, attributes=["A", "C"])],
        ))
        fetched = test_db.get_receipt_invoice(created.id)
        assert fetched.supply_invoice_id == supply.id
        assert fetched.items[0].attributes == ["A", "C"]
        assert fetched.items[0].received_quantity == 70

    def test_update_receipt_link(self, test_db):
        supply = test_db.add_supply_invoice(new_supply())
        other = test_db.add_supply_invoice(new_supply("INV-2"))
        receipt = test_db.add_receipt_invoice(NewReceiptInvoice(
            date="2024-01-20", receipt_invoice_number="REC-1",
            supply_invoice_id=supply.id, supply_invoice_number="INV-1",
            items=[ReceiptItem(goods_name="Cloth", finished_quantity=1)],
        ))
        test_db.update_receipt_invoice(receipt.id, ReceiptInvoiceUpdate(
            supply_invoice_id=other.id, supply_invoice_number="INV-2",
        ))
        fetched = test_db.get_receipt_invoice(receipt.id)
        assert (fetched.supply_invoice_id, fetched.supply_invoice_number) == (other.id, "INV-2")

    def test_add_goods_is_idempotent(self, test_db):
        first = test_db.add_goods("Cloth")
        second = test_db.add_goods("Cloth")
        assert first.id == second.id
        test_db.add_goods("Apron")
        assert [g.name for g in test_db.get_goods()] == ["Apron", "Cloth"]

    def test_invoice_changes_newest_first(self, test_db):
        test_db.add_invoice_change(InvoiceChange(
            invoice_id="a", invoice_number="INV-1", change_date="2024-01-01T00:00:00+00:00",
            reason="first",
        ))
        test_db.add_invoice_change(InvoiceChange(
            invoice_id="a", invoice_number="INV-1", change_date="2024-02-01T00:00:00+00:00",
            reason="second",
        ))
        assert [c.reason for c in test_db.get_invoice_changes()] == ["second", "first"]

    def test_clear_database_keeps_backup_history(self, test_db):
        test_db.add_supply_invoice(new_supply())
        test_db.add_goods("Cloth")
        test_db.add_backup_history_entry(BackupHistoryEntry(
            type="backup", timestamp="2024-01-01T00:00:00+00:00", filename="b.json",
        ))
        test_db.clear_database()
        stats = test_db.get_stats()
        assert stats["supply_invoices"] == 0
        assert stats["goods"] == 0
        assert stats["backup_history"] == 1

    def test_failed_item_insert_rolls_back_header(self, test_db, monkeypatch):
        """Test that header and items are written atomically."""
        def broken_insert(conn, invoice_id, items):
            raise sqlite3.OperationalError("disk I/O error")

        monkeypatch.setattr(Database, "_insert_supply_items", staticmethod(broken_insert))
        with pytest.raises(StoreError):
            test_db.add_supply_invoice(new_supply())
        assert test_db.get_supply_invoices() == []

    def test_schema_is_reusable(self, test_config):
        db1 = Database(test_config.db_path)
        db1.add_goods("Cloth")
        db2 = Database(test_config.db_path)
        assert [g.name for g in db2.get_goods()] == ["Cloth"]
