"""
Goods-level stock position ("activity in period").

Supplies and receipts are filtered by the same window independently, each on
its own date.  A receipt counted here may therefore reference a supply
invoice outside the window and vice versa; that is the intended view.
Contrast with reconciliation, where every receipt counts against an
in-window supply invoice.
"""
from datetime import datetime
from typing import Optional

from models.goods import Goods, goods_key
from models.invoice import ReceiptInvoice, SupplyInvoice
from models.report import GoodsRow, ReceiptTransaction, SupplyTransaction
from .date_ranges import DateWindow, filter_by_date, parse_record_date


def aggregate_by_goods(
    goods: list[Goods],
    supplies: list[SupplyInvoice],
    receipts: list[ReceiptInvoice],
) -> list[GoodsRow]:
    """One GoodsRow per known goods name, in the order of *goods*."""
    rows: list[GoodsRow] = []
    for good in goods:
        key = goods_key(good.name)
        row = GoodsRow(name=good.name)

        for inv in supplies:
            for item in inv.items:
                if goods_key(item.goods_name) != key:
                    continue
                row.supplied_qty += item.quantity
                row.supplies.append(SupplyTransaction(
                    date=inv.date, invoice_number=inv.invoice_number, quantity=item.quantity,
                ))

        for inv in receipts:
            for item in inv.items:
                if goods_key(item.goods_name) != key:
                    continue
                row.finished_qty += item.finished_quantity
                row.damaged_qty += item.damaged_quantity
                row.receipts.append(ReceiptTransaction(
                    date=inv.date,
                    receipt_number=inv.receipt_invoice_number,
                    finished=item.finished_quantity,
                    damaged=item.damaged_quantity,
                ))

        row.received_qty = row.finished_qty + row.damaged_qty
        row.stock_with_job_worker = row.supplied_qty - row.received_qty
        rows.append(row)
    return rows


def goods_report(
    goods: list[Goods],
    supplies: list[SupplyInvoice],
    receipts: list[ReceiptInvoice],
    window: Optional[DateWindow] = None,
) -> list[GoodsRow]:
    if window is not None:
        supplies = filter_by_date(supplies, window)
        receipts = filter_by_date(receipts, window)
    return aggregate_by_goods(goods, supplies, receipts)


def search_goods_rows(rows: list[GoodsRow], query: Optional[str]) -> list[GoodsRow]:
    if not query or not query.strip():
        return rows
    needle = query.lower()
    return [row for row in rows if needle in row.name.lower()]


def _sort_date(value: str) -> datetime:
    try:
        return parse_record_date(value)
    except (TypeError, ValueError):
        return datetime.min


def goods_history_rows(row: GoodsRow) -> list[dict]:
    """Receipt-only statement for one goods name, oldest first."""
    history = [
        {
            "date": r.date,
            "name": row.name,
            "rec_qty": r.finished + r.damaged,
            "finished": r.finished,
            "damaged": r.damaged,
        }
        for r in row.receipts
    ]
    return sorted(history, key=lambda h: _sort_date(h["date"]))
