"""
Unit tests for dashboard figures.
"""
from datetime import datetime

import pytest

from models.invoice import ReceiptInvoice, ReceiptItem, SupplyInvoice, SupplyItem
from tracker.summary import dashboard_totals, recent_invoices, supply_chart

NOW = datetime(2024, 6, 15, 12, 0)


def supply(id_, date, qty) -> SupplyInvoice:
    return SupplyInvoice(id=id_, date=date, invoice_number=f"INV-{id_}",
                         items=[SupplyItem(goods_name="Cloth", quantity=qty)])


def receipt(id_, date, finished, damaged) -> ReceiptInvoice:
    return ReceiptInvoice(id=id_, date=date, receipt_invoice_number=f"REC-{id_}",
                          items=[ReceiptItem(goods_name="Cloth", finished_quantity=finished,
                                             damaged_quantity=damaged)])


@pytest.mark.unit
class TestDashboardTotals:
    """Tests for dashboard_totals()."""

    def test_totals(self):
        totals = dashboard_totals(
            [supply("1", "2024-06-01", 100), supply("2", "2024-06-02", 50)],
            [receipt("1", "2024-06-05", 60, 10)],
        )
        assert totals.total_sent == 150
        assert totals.finished_returns == 60
        assert totals.damaged_returns == 10
        assert totals.pending == 80

    def test_pending_can_go_negative(self):
        totals = dashboard_totals([supply("1", "2024-06-01", 10)], [receipt("1", "2024-06-05", 20, 0)])
        assert totals.pending == -10


@pytest.mark.unit
class TestRecentInvoices:
    """Tests for recent_invoices()."""

    def test_merged_newest_first_and_limited(self):
        recent = recent_invoices(
            [supply("1", "2024-06-01", 100), supply("2", "2024-06-10", 10)],
            [receipt("1", "2024-06-05", 60, 10)],
            limit=2,
        )
        assert [(r.type, r.number) for r in recent] == [("supply", "INV-2"), ("receipt", "REC-1")]
        assert recent[1].total_finished == 60
        assert recent[1].total_damaged == 10


@pytest.mark.unit
class TestSupplyChart:
    """Tests for supply_chart()."""

    def test_monthly(self):
        points = supply_chart(
            [supply("1", "2024-06-01", 100), supply("2", "2024-01-20", 5),
             supply("3", "2023-06-01", 999)],
            "monthly", now=NOW,
        )
        assert len(points) == 12
        assert points[0].name == "JAN" and points[0].value == 5
        assert points[5].name == "JUN" and points[5].value == 100

    def test_weekly_labels_and_values(self):
        points = supply_chart([supply("1", "2024-05-20", 7)], "weekly", now=NOW)
        assert [p.name for p in points] == ["18 May", "25 May", "1 Jun", "8 Jun"]
        assert [p.value for p in points] == [7, 0, 0, 0]

    def test_yearly(self):
        points = supply_chart(
            [supply("1", "2021-03-01", 4), supply("2", "2024-03-01", 6)], "yearly", now=NOW,
        )
        assert [(p.name, p.value) for p in points] == [
            ("2021", 4), ("2022", 0), ("2023", 0), ("2024", 6),
        ]

    def test_unknown_period_raises(self):
        with pytest.raises(ValueError):
            supply_chart([], "daily", now=NOW)


@pytest.mark.unit
class TestUnparseableDates:
    """Imported records can carry dates that do not parse."""

    def test_recent_sorts_them_last(self):
        recent = recent_invoices(
            [supply("1", "", 5), supply("2", "2024-06-10", 10)], [], limit=10,
        )
        assert [r.number for r in recent] == ["INV-2", "INV-1"]

    @pytest.mark.parametrize("period", ["monthly", "weekly", "yearly"])
    def test_chart_skips_them(self, period):
        points = supply_chart(
            [supply("1", "not a date", 999), supply("2", "2024-06-10", 10)], period, now=NOW,
        )
        assert sum(p.value for p in points) == 10
