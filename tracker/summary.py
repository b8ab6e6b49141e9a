"""
Dashboard figures: overall totals, recent invoices and the supply chart.
"""
from datetime import datetime, timedelta
from typing import Optional

from models.invoice import ReceiptInvoice, SupplyInvoice
from models.report import ChartPoint, DashboardTotals, RecentInvoice
from .date_ranges import parse_record_date

MONTH_LABELS = ["JAN", "FEB", "MAR", "APR", "MAY", "JUN",
                "JUL", "AUG", "SEP", "OCT", "NOV", "DEC"]
CHART_PERIODS = ("monthly", "weekly", "yearly")


def dashboard_totals(
    supplies: list[SupplyInvoice],
    receipts: list[ReceiptInvoice],
) -> DashboardTotals:
    """All-time totals.  pending is not clamped, unlike the per-invoice report."""
    total_sent = sum(s.total_quantity for s in supplies)
    finished = sum(i.finished_quantity for r in receipts for i in r.items)
    damaged = sum(i.damaged_quantity for r in receipts for i in r.items)
    return DashboardTotals(
        total_sent=total_sent,
        finished_returns=finished,
        damaged_returns=damaged,
        pending=total_sent - finished - damaged,
    )


def recent_invoices(
    supplies: list[SupplyInvoice],
    receipts: list[ReceiptInvoice],
    limit: int = 10,
) -> list[RecentInvoice]:
    combined = [
        RecentInvoice(
            id=s.id, type="supply", date=s.date, number=s.invoice_number,
            total_qty=s.total_quantity,
        )
        for s in supplies
    ] + [
        RecentInvoice(
            id=r.id, type="receipt", date=r.date, number=r.receipt_invoice_number,
            total_finished=sum(i.finished_quantity for i in r.items),
            total_damaged=sum(i.damaged_quantity for i in r.items),
        )
        for r in receipts
    ]
    combined.sort(key=lambda inv: _record_date(inv.date) or datetime.min, reverse=True)
    return combined[:limit]


def _record_date(value: str) -> Optional[datetime]:
    """Parse a record date; imported records may carry one that does not parse."""
    try:
        return parse_record_date(value)
    except (TypeError, ValueError):
        return None


def _in_month(value: str, year: int, month: int) -> bool:
    when = _record_date(value)
    return when is not None and when.year == year and when.month == month


def _in_year(value: str, year: int) -> bool:
    when = _record_date(value)
    return when is not None and when.year == year


def _supplied_between(supplies: list[SupplyInvoice], start: datetime, end: datetime) -> float:
    total = 0.0
    for s in supplies:
        when = _record_date(s.date)
        if when is not None and start <= when <= end:
            total += s.total_quantity
    return total


def supply_chart(
    supplies: list[SupplyInvoice],
    period: str = "monthly",
    now: Optional[datetime] = None,
) -> list[ChartPoint]:
    """
    Supplied quantity series.

      monthly  JAN..DEC of the current year
      weekly   the four 7-day weeks starting 28, 21, 14 and 7 days ago
      yearly   the current year and the three before it
    """
    now = now or datetime.now()

    if period == "monthly":
        points = []
        for index, label in enumerate(MONTH_LABELS):
            value = sum(
                s.total_quantity for s in supplies
                if _in_month(s.date, now.year, index + 1)
            )
            points.append(ChartPoint(name=label, value=value))
        return points

    if period == "weekly":
        points = []
        for weeks_back in range(4, 0, -1):
            start = now - timedelta(days=weeks_back * 7)
            end = start + timedelta(days=6)
            points.append(ChartPoint(
                name=f"{start.day} {start.strftime('%b')}",
                value=_supplied_between(supplies, start, end),
            ))
        return points

    if period == "yearly":
        return [
            ChartPoint(
                name=str(year),
                value=sum(
                    s.total_quantity for s in supplies
                    if _in_year(s.date, year)
                ),
            )
            for year in range(now.year - 3, now.year + 1)
        ]

    raise ValueError(f"Invalid chart period {period!r}. Must be one of {CHART_PERIODS}")
