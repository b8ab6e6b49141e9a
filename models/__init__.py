from .goods import Goods, goods_key, same_goods
from .invoice import (
    ATTRIBUTE_CATEGORIES, InvoiceKind,
    SupplyItem, SupplyInvoice, NewSupplyInvoice, SupplyInvoiceUpdate,
    ReceiptItem, ReceiptInvoice, NewReceiptInvoice, ReceiptInvoiceUpdate,
)
from .records import (
    SupplyItemRecord, SupplyInvoiceRecord, ReceiptItemRecord, ReceiptInvoiceRecord,
    supply_from_record, receipt_from_record,
)
from .history import ChangeEntry, InvoiceChange, BackupHistoryEntry
from .report import (
    DynamicSupplyRecord, AttributeDetail, AttributeRow, GoodsRow,
    SupplyTransaction, ReceiptTransaction, SupplySummary, ReceiptSummary,
    DashboardTotals, RecentInvoice, ChartPoint,
)

__all__ = [
    "Goods", "goods_key", "same_goods",
    "ATTRIBUTE_CATEGORIES", "InvoiceKind",
    "SupplyItem", "SupplyInvoice", "NewSupplyInvoice", "SupplyInvoiceUpdate",
    "ReceiptItem", "ReceiptInvoice", "NewReceiptInvoice", "ReceiptInvoiceUpdate",
    "SupplyItemRecord", "SupplyInvoiceRecord", "ReceiptItemRecord", "ReceiptInvoiceRecord",
    "supply_from_record", "receipt_from_record",
    "ChangeEntry", "InvoiceChange", "BackupHistoryEntry",
    "DynamicSupplyRecord", "AttributeDetail", "AttributeRow", "GoodsRow",
    "SupplyTransaction", "ReceiptTransaction", "SupplySummary", "ReceiptSummary",
    "DashboardTotals", "RecentInvoice", "ChartPoint",
]
