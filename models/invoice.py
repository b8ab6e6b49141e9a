"""
Domain shapes for supply and receipt invoices.

Attributes use snake_case in Python and serialise with the application's
camelCase names (``invoiceNumber``, ``goodsName`` ...) when dumped with
``by_alias=True``; that is the shape written to backup files and returned
by the API.
"""
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ATTRIBUTE_CATEGORIES = ("A", "B", "C", "D", "E", "F", "G", "H")

InvoiceKind = Literal["supply", "receipt"]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SupplyItem(_CamelModel):
    """One goods line sent out to the job worker."""
    id: Optional[str] = None
    goods_name: str
    quantity: float = Field(default=0, ge=0)


class SupplyInvoice(_CamelModel):
    id: str
    date: str                               # YYYY-MM-DD
    invoice_number: str
    job_worker: Optional[str] = None
    narration: str = ""
    items: List[SupplyItem] = Field(default_factory=list)
    created_at: Optional[str] = None        # ISO 8601 datetime

    @property
    def total_quantity(self) -> float:
        return sum(item.quantity for item in self.items)


class ReceiptItem(_CamelModel):
    """One goods line returned by the job worker."""
    id: Optional[str] = None
    goods_name: str
    finished_quantity: float = Field(default=0, ge=0)
    damaged_quantity: float = Field(default=0, ge=0)
    attributes: List[str] = Field(default_factory=list)   # subset of A..H

    @property
    def received_quantity(self) -> float:
        return self.finished_quantity + self.damaged_quantity


class ReceiptInvoice(_CamelModel):
    id: str
    date: str                               # YYYY-MM-DD
    receipt_invoice_number: str
    supply_invoice_id: Optional[str] = None
    supply_invoice_number: str = ""
    job_worker: Optional[str] = None
    narration: str = ""
    items: List[ReceiptItem] = Field(default_factory=list)
    created_at: Optional[str] = None


class NewSupplyInvoice(_CamelModel):
    """A supply invoice as submitted for creation (no id yet)."""
    date: str
    invoice_number: str
    job_worker: Optional[str] = None
    narration: str = ""
    items: List[SupplyItem] = Field(default_factory=list)


class NewReceiptInvoice(_CamelModel):
    """A receipt invoice as submitted for creation (no id yet)."""
    date: str
    receipt_invoice_number: str
    supply_invoice_id: Optional[str] = None
    supply_invoice_number: str = ""
    job_worker: Optional[str] = None
    narration: str = ""
    items: List[ReceiptItem] = Field(default_factory=list)


class SupplyInvoiceUpdate(_CamelModel):
    """
    Partial update of a supply invoice.

    ``None`` means "not changing": the field is neither diffed nor written.
    """
    date: Optional[str] = None
    invoice_number: Optional[str] = None
    job_worker: Optional[str] = None
    narration: Optional[str] = None
    items: Optional[List[SupplyItem]] = None


class ReceiptInvoiceUpdate(_CamelModel):
    """Partial update of a receipt invoice.  ``None`` means "not changing"."""
    date: Optional[str] = None
    receipt_invoice_number: Optional[str] = None
    supply_invoice_id: Optional[str] = None
    supply_invoice_number: Optional[str] = None
    job_worker: Optional[str] = None
    narration: Optional[str] = None
    items: Optional[List[ReceiptItem]] = None
