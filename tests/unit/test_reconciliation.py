"""
Unit tests for supply-to-receipt reconciliation.
"""
from datetime import datetime

import pytest

from models.invoice import ReceiptInvoice, ReceiptItem, SupplyInvoice, SupplyItem
from tracker.date_ranges import resolve_window
from tracker.reconciliation import (
    clamp_remaining,
    dynamic_supply_report,
    reconcile,
    summarize_receipts,
    summarize_supplies,
)


def supply(id_, date, qty, number=None) -> SupplyInvoice:
    return SupplyInvoice(
        id=id_, date=date, invoice_number=number or f"INV-{id_}",
        items=[SupplyItem(goods_name="Cloth", quantity=qty)],
    )


def receipt(id_, date, supply_id, finished, damaged=0) -> ReceiptInvoice:
    return ReceiptInvoice(
        id=id_, date=date, receipt_invoice_number=f"REC-{id_}",
        supply_invoice_id=supply_id, supply_invoice_number=f"INV-{supply_id}",
        items=[ReceiptItem(goods_name="Cloth", finished_quantity=finished,
                           damaged_quantity=damaged)],
    )


@pytest.mark.unit
class TestReconcile:
    """Tests for reconcile()."""

    def test_basic_reconciliation(self):
        """Test 100 sent, 60 finished + 10 damaged returned leaves 30."""
        [record] = reconcile([supply("1", "2024-01-10", 100)],
                             [receipt("r1", "2024-01-20", "1", 60, 10)])
        assert record.original_qty == 100
        assert record.received_qty == 70
        assert record.remaining_qty == 30
        assert [r.id for r in record.receipts] == ["r1"]

    def test_over_receipt_is_clamped(self):
        [record] = reconcile([supply("1", "2024-01-10", 50)],
                             [receipt("r1", "2024-01-20", "1", 60)])
        assert record.received_qty == 60
        assert record.remaining_qty == 0

    def test_receipts_sorted_oldest_first(self):
        [record] = reconcile(
            [supply("1", "2024-01-10", 100)],
            [receipt("r2", "2024-02-01", "1", 5), receipt("r1", "2024-01-15", "1", 5)],
        )
        assert [r.id for r in record.receipts] == ["r1", "r2"]

    def test_unlinked_receipts_are_ignored(self):
        [record] = reconcile(
            [supply("1", "2024-01-10", 100)],
            [receipt("r1", "2024-01-15", None, 40), receipt("r2", "2024-01-15", "9", 40)],
        )
        assert record.received_qty == 0
        assert record.remaining_qty == 100

    def test_output_follows_input_order(self):
        records = reconcile(
            [supply("b", "2024-01-02", 1), supply("a", "2024-01-01", 1)], []
        )
        assert [r.id for r in records] == ["b", "a"]

    def test_multi_item_supply_totals(self):
        inv = SupplyInvoice(
            id="1", date="2024-01-10", invoice_number="INV-1",
            items=[SupplyItem(goods_name="Cloth", quantity=100),
                   SupplyItem(goods_name="Thread", quantity=25)],
        )
        [record] = reconcile([inv], [])
        assert record.original_qty == 125


@pytest.mark.unit
class TestDynamicSupplyReport:
    """Tests for window handling in the dynamic supply report."""

    def test_receipts_outside_window_still_count(self):
        """Test that a receipt dated after the window still reduces remaining."""
        now = datetime(2024, 1, 31, 12, 0)
        window = resolve_window("1month", now=now)
        supplies = [supply("1", "2024-01-05", 100)]
        receipts = [receipt("r1", "2024-03-15", "1", 40)]
        [record] = dynamic_supply_report(supplies, receipts, window)
        assert record.remaining_qty == 60

    def test_supplies_outside_window_are_excluded(self):
        window = resolve_window("custom", "2024-01-01", "2024-01-31")
        supplies = [supply("1", "2024-01-05", 100), supply("2", "2023-12-20", 50)]
        records = dynamic_supply_report(supplies, [], window)
        assert [r.id for r in records] == ["1"]

    def test_no_window_returns_all(self):
        supplies = [supply("1", "2024-01-05", 100), supply("2", "2020-01-01", 50)]
        assert len(dynamic_supply_report(supplies, [])) == 2


@pytest.mark.unit
class TestSummaries:
    """Tests for the original supply and receipt summaries."""

    def test_clamp_remaining(self):
        assert clamp_remaining(30) == 30
        assert clamp_remaining(-10) == 0

    def test_summarize_supplies(self):
        [summary] = summarize_supplies([supply("1", "2024-01-05", 100)])
        assert summary.invoice_number == "INV-1"
        assert summary.quantity == 100

    def test_summarize_receipts(self):
        [summary] = summarize_receipts([receipt("r1", "2024-01-20", "1", 60, 10)])
        assert (summary.finished, summary.damaged, summary.total) == (60, 10, 70)
        assert summary.supply_invoice_number == "INV-1"

    def test_summaries_respect_window(self):
        window = resolve_window("custom", "2024-01-01", "2024-01-31")
        receipts = [receipt("r1", "2024-01-20", "1", 5), receipt("r2", "2024-02-20", "1", 5)]
        assert [s.id for s in summarize_receipts(receipts, window)] == ["r1"]
