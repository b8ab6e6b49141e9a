from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Literal, Optional


class ChangeEntry(BaseModel):
    """One field-level difference recorded when an invoice is edited."""
    field: str
    old: str
    new: str


class InvoiceChange(BaseModel):
    """
    An append-only audit record, written once per edit.

    change_details holds the JSON-encoded list of ChangeEntry dicts.
    invoice_id is a weak reference: the invoice may since have been deleted.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    invoice_id: str = ""
    invoice_number: Optional[str] = None
    change_date: str                    # ISO 8601 datetime
    reason: str = ""
    change_details: str = "[]"


class BackupHistoryEntry(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: Optional[str] = None
    type: Literal["backup", "restore"]
    timestamp: str                      # ISO 8601 datetime
    filename: str
