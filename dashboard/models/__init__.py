"""
Pydantic models for dashboard API requests.
"""
from pydantic import BaseModel

from models.invoice import ReceiptInvoiceUpdate, SupplyInvoiceUpdate


class GoodsCreate(BaseModel):
    name: str


class SupplyInvoiceEdit(SupplyInvoiceUpdate):
    reason: str = ""


class ReceiptInvoiceEdit(ReceiptInvoiceUpdate):
    reason: str = ""


class ClearRequest(BaseModel):
    confirm: bool = False
