"""
Dashboard business logic services.
"""
from .export import (
    ReportTable,
    render_report_document,
    build_workbook,
    render_table,
    table_workbook,
    dynamic_supply_table,
    supply_status_table,
    attribute_table,
    goods_table,
    original_supply_table,
    receipt_table,
    DEFAULT_REPORT_TEMPLATE,
)

__all__ = [
    "ReportTable",
    "render_report_document",
    "build_workbook",
    "render_table",
    "table_workbook",
    "dynamic_supply_table",
    "supply_status_table",
    "attribute_table",
    "goods_table",
    "original_supply_table",
    "receipt_table",
    "DEFAULT_REPORT_TEMPLATE",
]
