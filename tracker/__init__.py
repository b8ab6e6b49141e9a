from .errors import InvoiceValidationError, InvoiceNotFoundError, StoreError
from .database import Database
from .validator import InvoiceFormValidator
from .service import InvoiceService
from .backup import BackupService
from .diff import compute_diff, serialize_changes, parse_change_details
from .reconciliation import reconcile, dynamic_supply_report, clamp_remaining
from .attributes import aggregate, find_colliding_receipts
from .goods_report import aggregate_by_goods, goods_report
from .date_ranges import DateWindow, resolve_window, filter_by_date

__all__ = [
    "InvoiceValidationError", "InvoiceNotFoundError", "StoreError",
    "Database", "InvoiceFormValidator", "InvoiceService", "BackupService",
    "compute_diff", "serialize_changes", "parse_change_details",
    "reconcile", "dynamic_supply_report", "clamp_remaining",
    "aggregate", "find_colliding_receipts",
    "aggregate_by_goods", "goods_report",
    "DateWindow", "resolve_window", "filter_by_date",
]
