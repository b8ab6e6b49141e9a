"""
Field-level diff between a stored invoice and a proposed update.

compute_diff() is pure: it receives the stored row (storage shape, with its
nested items) and a partial update (domain shape), maps the stored row through
models.records, and returns the ordered list of ChangeEntry objects that will
be written to the change log.

Output order
------------
  1. Header fields: Date, Invoice Number, Supply Ref (receipts), Job Worker,
     Narration
  2. Item changes, in the order of the new item list
  3. Removed items, in the order of the old item list
"""
import json
import logging
from typing import Optional, Union

from models.goods import goods_key
from models.history import ChangeEntry
from models.invoice import (
    InvoiceKind,
    ReceiptInvoiceUpdate,
    ReceiptItem,
    SupplyInvoiceUpdate,
    SupplyItem,
)
from models.records import (
    ReceiptInvoiceRecord,
    SupplyInvoiceRecord,
    receipt_from_record,
    supply_from_record,
)

logger = logging.getLogger(__name__)

MISSING = "N/A"


def format_quantity(value: Optional[float]) -> str:
    """Render a quantity the way it was typed: 100, not 100.0."""
    if value is None:
        return "0"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _attrs_key(attributes: list[str]) -> str:
    return ",".join(sorted(attributes or []))


def _header_changes(old, update, kind: InvoiceKind) -> list[ChangeEntry]:
    changes: list[ChangeEntry] = []

    if update.date and old.date != update.date:
        changes.append(ChangeEntry(field="Date", old=old.date, new=update.date))

    if kind == "supply":
        old_number, new_number = old.invoice_number, update.invoice_number
    else:
        old_number, new_number = old.receipt_invoice_number, update.receipt_invoice_number
    if new_number and old_number != new_number:
        changes.append(ChangeEntry(
            field="Invoice Number", old=old_number or MISSING, new=new_number,
        ))

    if kind == "receipt":
        new_ref = update.supply_invoice_number
        if new_ref and old.supply_invoice_number != new_ref:
            changes.append(ChangeEntry(
                field="Supply Ref", old=old.supply_invoice_number or MISSING, new=new_ref,
            ))

    if update.job_worker is not None and (old.job_worker or "") != update.job_worker:
        changes.append(ChangeEntry(
            field="Job Worker", old=old.job_worker or MISSING, new=update.job_worker,
        ))

    if update.narration is not None and (old.narration or "") != update.narration:
        changes.append(ChangeEntry(
            field="Narration", old=old.narration or MISSING, new=update.narration,
        ))

    return changes


def _added_description(item: Union[SupplyItem, ReceiptItem], kind: InvoiceKind) -> str:
    if kind == "supply":
        return f"Qty: {format_quantity(item.quantity)}"
    return (
        f"Fin: {format_quantity(item.finished_quantity)}, "
        f"Dmg: {format_quantity(item.damaged_quantity)}"
    )


def _item_changes(old_items, new_items, kind: InvoiceKind) -> list[ChangeEntry]:
    changes: list[ChangeEntry] = []
    # Later duplicates of the same goods name win, on both sides.
    old_map = {goods_key(i.goods_name): i for i in old_items}
    new_map = {goods_key(i.goods_name): i for i in new_items}

    for key, new_item in new_map.items():
        name = new_item.goods_name
        old_item = old_map.get(key)

        if old_item is None:
            changes.append(ChangeEntry(
                field=f"Item Added: {name}", old="-", new=_added_description(new_item, kind),
            ))
            continue

        if kind == "supply":
            if float(old_item.quantity) != float(new_item.quantity):
                changes.append(ChangeEntry(
                    field=f"Item Qty: {name}",
                    old=format_quantity(old_item.quantity),
                    new=format_quantity(new_item.quantity),
                ))
            continue

        if float(old_item.finished_quantity) != float(new_item.finished_quantity):
            changes.append(ChangeEntry(
                field=f"Item Finished: {name}",
                old=format_quantity(old_item.finished_quantity),
                new=format_quantity(new_item.finished_quantity),
            ))
        if float(old_item.damaged_quantity) != float(new_item.damaged_quantity):
            changes.append(ChangeEntry(
                field=f"Item Damaged: {name}",
                old=format_quantity(old_item.damaged_quantity),
                new=format_quantity(new_item.damaged_quantity),
            ))

        old_attrs = _attrs_key(old_item.attributes)
        new_attrs = _attrs_key(new_item.attributes)
        if old_attrs != new_attrs:
            changes.append(ChangeEntry(
                field=f"Item Attrs: {name}", old=old_attrs or "None", new=new_attrs or "None",
            ))

    for key, old_item in old_map.items():
        if key not in new_map:
            changes.append(ChangeEntry(
                field=f"Item Removed: {old_item.goods_name}", old="Present", new="Removed",
            ))

    return changes


def compute_diff(
    old_record: Union[SupplyInvoiceRecord, ReceiptInvoiceRecord],
    update: Union[SupplyInvoiceUpdate, ReceiptInvoiceUpdate],
    kind: InvoiceKind,
) -> list[ChangeEntry]:
    """
    Return the ordered field/item changes *update* would make to *old_record*.

    Fields left as None in the update are "not changing" and never diffed.
    Items are compared only when the update carries an item list.
    """
    if kind == "supply":
        old = supply_from_record(old_record)
    elif kind == "receipt":
        old = receipt_from_record(old_record)
    else:
        raise ValueError(f"Invalid invoice kind {kind!r}. Must be 'supply' or 'receipt'")

    changes = _header_changes(old, update, kind)
    if update.items is not None:
        changes.extend(_item_changes(old.items, update.items, kind))
    return changes


def serialize_changes(changes: list[ChangeEntry]) -> str:
    """Encode changes as the JSON array stored in InvoiceChange.change_details."""
    return json.dumps([c.model_dump() for c in changes])


def parse_change_details(raw: Optional[str]) -> Optional[list[ChangeEntry]]:
    """
    Decode a stored change_details string.

    Returns None for legacy or malformed entries; callers then show the raw
    text instead.
    """
    if not raw:
        return []
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, list):
        return None
    entries: list[ChangeEntry] = []
    for item in data:
        if not isinstance(item, dict) or "field" not in item:
            return None
        entries.append(ChangeEntry(
            field=str(item.get("field")),
            old="" if item.get("old") is None else str(item.get("old")),
            new="" if item.get("new") is None else str(item.get("new")),
        ))
    return entries
