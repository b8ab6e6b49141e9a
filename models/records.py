"""
Storage shapes: invoice rows exactly as the store returns them.

Column names follow the database (``invoice_number``, ``goods_name``,
``supply_invoice_items`` ...).  The ``*_from_record`` functions are the only
place that translates a stored row into the domain shape in models.invoice;
the gateway and the diff engine both go through them.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from .invoice import ReceiptInvoice, ReceiptItem, SupplyInvoice, SupplyItem


class SupplyItemRecord(BaseModel):
    id: Optional[str] = None
    supply_invoice_id: Optional[str] = None
    goods_name: str
    quantity: Optional[float] = 0


class SupplyInvoiceRecord(BaseModel):
    id: str
    date: Optional[str] = None
    invoice_number: Optional[str] = None
    job_worker: Optional[str] = None
    narration: Optional[str] = None
    created_at: Optional[str] = None
    supply_invoice_items: List[SupplyItemRecord] = Field(default_factory=list)


class ReceiptItemRecord(BaseModel):
    id: Optional[str] = None
    receipt_invoice_id: Optional[str] = None
    goods_name: str
    finished_quantity: Optional[float] = 0
    damaged_quantity: Optional[float] = 0
    attributes: Optional[List[str]] = None


class ReceiptInvoiceRecord(BaseModel):
    id: str
    date: Optional[str] = None
    receipt_invoice_number: Optional[str] = None
    supply_invoice_id: Optional[str] = None
    supply_invoice_number: Optional[str] = None
    job_worker: Optional[str] = None
    narration: Optional[str] = None
    created_at: Optional[str] = None
    receipt_invoice_items: List[ReceiptItemRecord] = Field(default_factory=list)


def supply_item_from_record(rec: SupplyItemRecord) -> SupplyItem:
    return SupplyItem(id=rec.id, goods_name=rec.goods_name, quantity=rec.quantity or 0)


def receipt_item_from_record(rec: ReceiptItemRecord) -> ReceiptItem:
    return ReceiptItem(
        id=rec.id,
        goods_name=rec.goods_name,
        finished_quantity=rec.finished_quantity or 0,
        damaged_quantity=rec.damaged_quantity or 0,
        attributes=list(rec.attributes or []),
    )


def supply_from_record(rec: SupplyInvoiceRecord) -> SupplyInvoice:
    """Map a stored supply invoice row (with nested items) to the domain shape."""
    return SupplyInvoice(
        id=rec.id,
        date=rec.date or "",
        invoice_number=rec.invoice_number or "",
        job_worker=rec.job_worker,
        narration=rec.narration or "",
        created_at=rec.created_at,
        items=[supply_item_from_record(i) for i in rec.supply_invoice_items],
    )


def receipt_from_record(rec: ReceiptInvoiceRecord) -> ReceiptInvoice:
    """Map a stored receipt invoice row (with nested items) to the domain shape."""
    return ReceiptInvoice(
        id=rec.id,
        date=rec.date or "",
        receipt_invoice_number=rec.receipt_invoice_number or "",
        supply_invoice_id=rec.supply_invoice_id,
        supply_invoice_number=rec.supply_invoice_number or "",
        job_worker=rec.job_worker,
        narration=rec.narration or "",
        created_at=rec.created_at,
        items=[receipt_item_from_record(i) for i in rec.receipt_invoice_items],
    )
