from pydantic import BaseModel, Field
from typing import Dict, List, Optional

from .invoice import ATTRIBUTE_CATEGORIES, ReceiptInvoice, SupplyItem


class DynamicSupplyRecord(BaseModel):
    """
    Reconciled position of one supply invoice.

    receipts holds every receipt referencing the supply invoice, oldest first,
    regardless of the report's date window.
    """
    id: str
    date: str
    invoice_number: str
    original_qty: float
    received_qty: float
    remaining_qty: float
    receipts: List[ReceiptInvoice] = Field(default_factory=list)
    items: List[SupplyItem] = Field(default_factory=list)


class AttributeDetail(BaseModel):
    goods_name: str
    finished_quantity: float
    damaged_quantity: float


def _empty_totals() -> Dict[str, float]:
    return {cat: 0 for cat in ATTRIBUTE_CATEGORIES}


def _empty_details() -> Dict[str, List[AttributeDetail]]:
    return {cat: [] for cat in ATTRIBUTE_CATEGORIES}


class AttributeRow(BaseModel):
    """One (date, receipt number) row of the attribute report."""
    date: str
    receipt_invoice_number: str
    supply_invoice_number: str = ""
    totals: Dict[str, float] = Field(default_factory=_empty_totals)
    details: Dict[str, List[AttributeDetail]] = Field(default_factory=_empty_details)


class SupplyTransaction(BaseModel):
    date: str
    invoice_number: str
    quantity: float


class ReceiptTransaction(BaseModel):
    date: str
    receipt_number: str
    finished: float
    damaged: float


class GoodsRow(BaseModel):
    """
    Stock position for one goods name within a date window.

    stock_with_job_worker is NOT clamped: a negative value is the visible
    signal of over-receipt or a data entry error.
    """
    name: str
    supplied_qty: float = 0
    finished_qty: float = 0
    damaged_qty: float = 0
    received_qty: float = 0
    stock_with_job_worker: float = 0
    supplies: List[SupplyTransaction] = Field(default_factory=list)
    receipts: List[ReceiptTransaction] = Field(default_factory=list)


class SupplySummary(BaseModel):
    id: str
    date: str
    invoice_number: str
    quantity: float


class ReceiptSummary(BaseModel):
    id: str
    date: str
    receipt_invoice_number: str
    supply_invoice_number: str
    finished: float
    damaged: float
    total: float


class DashboardTotals(BaseModel):
    total_sent: float = 0
    finished_returns: float = 0
    damaged_returns: float = 0
    pending: float = 0


class RecentInvoice(BaseModel):
    id: str
    type: str                               # supply | receipt
    date: str
    number: str
    total_qty: Optional[float] = None
    total_finished: Optional[float] = None
    total_damaged: Optional[float] = None


class ChartPoint(BaseModel):
    name: str
    value: float
