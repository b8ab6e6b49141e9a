"""
Report export: printable documents and spreadsheets.

Every report is first flattened into a ReportTable (title, headers, rows) by
one of the *_table() builders below; the same table then feeds either
render_report_document() (paginated HTML, print-to-PDF ready) or
build_workbook() (XLSX).
"""
import math
from dataclasses import dataclass, field
from datetime import datetime
from io import BytesIO
from pathlib import Path
from typing import Optional, Union

from jinja2 import BaseLoader, Environment, FileSystemLoader
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter

from models.invoice import ATTRIBUTE_CATEGORIES
from models.report import (
    AttributeRow,
    DynamicSupplyRecord,
    GoodsRow,
    ReceiptSummary,
    SupplySummary,
)
from tracker.date_ranges import format_display_date

Cell = Union[str, int, float]

ROWS_PER_PAGE = 35

# Default report template
DEFAULT_REPORT_TEMPLATE = """\
<!DOCTYPE html>
<!--
  Report template. Edit config/report_template.html.j2 to customise.
  Template engine : Jinja2  (https://jinja.palletsprojects.com/)

  Variables:
    title         report title
    headers       list of column headings
    pages         list of pages, each a list of rows (list of cells)
    generated_on  timestamp printed in every page footer
-->
<html>
<head>
<meta charset="utf-8">
<title>{{ title }}</title>
<style>
  body    { font-family: Helvetica, Arial, sans-serif; font-size: 10pt; margin: 0; }
  .page   { padding: 14mm; page-break-after: always; position: relative; min-height: 260mm; }
  .page:last-child { page-break-after: auto; }
  h1      { font-size: 16pt; margin: 0 0 8mm 0; }
  table   { border-collapse: collapse; width: 100%; }
  th, td  { border: 1px solid #999; padding: 3px 6px; text-align: left; }
  th      { background: #3B82F6; color: #fff; }
  footer  { position: absolute; bottom: 8mm; left: 14mm; right: 14mm;
            font-size: 8pt; display: flex; justify-content: space-between; }
</style>
</head>
<body>
{% for rows in pages %}
<section class="page">
  <h1>{{ title }}</h1>
  <table>
    <thead><tr>{% for h in headers %}<th>{{ h }}</th>{% endfor %}</tr></thead>
    <tbody>
    {% for row in rows %}
      <tr>{% for cell in row %}<td>{{ cell }}</td>{% endfor %}</tr>
    {% endfor %}
    </tbody>
  </table>
  <footer>
    <span>Generated on: {{ generated_on }}</span>
    <span>Page {{ loop.index }} of {{ loop.length }}</span>
  </footer>
</section>
{% endfor %}
</body>
</html>
"""


@dataclass
class ReportTable:
    title: str
    headers: list[str]
    rows: list[list[Cell]] = field(default_factory=list)
    sheet_name: str = "Sheet1"


def whole(value: Optional[float]) -> int:
    """Round half up to a whole quantity for display."""
    return int(math.floor((value or 0) + 0.5))


# ---------------------------------------------------------------------------
# Renderers
# ---------------------------------------------------------------------------

def _paginate(rows: list[list[Cell]], per_page: int) -> list[list[list[Cell]]]:
    if not rows:
        return [[]]
    return [rows[i:i + per_page] for i in range(0, len(rows), per_page)]


def render_report_document(
    title: str,
    headers: list[str],
    rows: list[list[Cell]],
    template_file: Optional[Path] = None,
    generated_on: Optional[datetime] = None,
    rows_per_page: int = ROWS_PER_PAGE,
) -> str:
    """
    Render a printable report as HTML: one page section per *rows_per_page*
    rows, each with the table header repeated and a "Generated on" footer.
    """
    if template_file and template_file.exists():
        env = Environment(
            loader=FileSystemLoader(str(template_file.parent)),
            autoescape=True,
            keep_trailing_newline=True,
        )
        tmpl = env.get_template(template_file.name)
    else:
        env = Environment(loader=BaseLoader(), autoescape=True, keep_trailing_newline=True)
        tmpl = env.from_string(DEFAULT_REPORT_TEMPLATE)
    stamp = (generated_on or datetime.now()).strftime("%d/%m/%Y, %H:%M:%S")
    return tmpl.render(
        title=title,
        headers=headers,
        pages=_paginate(rows, rows_per_page),
        generated_on=stamp,
    )


def build_workbook(
    title: str,
    headers: list[str],
    rows: list[list[Cell]],
    sheet_name: str = "Sheet1",
) -> bytes:
    """Return an XLSX file with one header row followed by one row per record."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_name[:31]
    wb.properties.title = title

    ws.append(headers)
    header_font = Font(bold=True, color="FFFFFF")
    header_fill = PatternFill("solid", fgColor="3B82F6")
    for cell in ws[1]:
        cell.font = header_font
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")

    for row in rows:
        ws.append(list(row))

    for idx, heading in enumerate(headers, start=1):
        values = [str(heading)] + [str(r[idx - 1]) for r in rows if len(r) >= idx]
        width = max(len(v) for v in values)
        ws.column_dimensions[get_column_letter(idx)].width = min(width + 2, 50)

    output = BytesIO()
    wb.save(output)
    return output.getvalue()


def render_table(table: ReportTable, template_file: Optional[Path] = None) -> str:
    return render_report_document(table.title, table.headers, table.rows, template_file)


def table_workbook(table: ReportTable) -> bytes:
    return build_workbook(table.title, table.headers, table.rows, table.sheet_name)


# ---------------------------------------------------------------------------
# Row builders
# ---------------------------------------------------------------------------

def dynamic_supply_table(records: list[DynamicSupplyRecord]) -> ReportTable:
    return ReportTable(
        title="Dynamic Supply Bill",
        headers=["Date", "Invoice Number", "Original Quantity", "Remaining Quantity"],
        rows=[
            [format_display_date(r.date), r.invoice_number,
             whole(r.original_qty), whole(r.remaining_qty)]
            for r in records
        ],
        sheet_name="DynamicSupply",
    )


def supply_status_table(record: DynamicSupplyRecord) -> ReportTable:
    """
    Single supply invoice statement: one row per receipt item, oldest
    receipt first, then the ORIGINAL QTY and REMAINING STOCK totals.
    """
    rows: list[list[Cell]] = []
    for receipt in record.receipts:
        for item in receipt.items:
            rows.append([
                format_display_date(receipt.date),
                receipt.receipt_invoice_number,
                item.goods_name,
                whole(item.finished_quantity),
                whole(item.damaged_quantity),
            ])
    rows.append(["", "", "", "", ""])
    rows.append(["", "ORIGINAL QTY", "", "", whole(record.original_qty)])
    rows.append(["", "REMAINING STOCK", "", "", whole(record.remaining_qty)])
    return ReportTable(
        title=f"Supply Status: {record.invoice_number}",
        headers=["Date", "Receipt #", "Goods", "Finished", "Damaged"],
        rows=rows,
        sheet_name="SupplyStatus",
    )


def attribute_table(rows: list[AttributeRow]) -> ReportTable:
    return ReportTable(
        title="Attribute Report",
        headers=["Date", "Receipt Invoice", "Supply Invoice", *ATTRIBUTE_CATEGORIES],
        rows=[
            [format_display_date(r.date), r.receipt_invoice_number, r.supply_invoice_number,
             *(whole(r.totals.get(cat, 0)) for cat in ATTRIBUTE_CATEGORIES)]
            for r in rows
        ],
        sheet_name="AttributeReport",
    )


def goods_table(rows: list[GoodsRow], range_label: str = "") -> ReportTable:
    title = f"Goods Report ({range_label})" if range_label else "Goods Report"
    return ReportTable(
        title=title,
        headers=["Goods Name", "Stock with Job Worker", "Received Qty",
                 "Finished Qty", "Damaged Qty"],
        rows=[
            [r.name, whole(r.stock_with_job_worker), whole(r.received_qty),
             whole(r.finished_qty), whole(r.damaged_qty)]
            for r in rows
        ],
        sheet_name="GoodsReport",
    )


def original_supply_table(summaries: list[SupplySummary]) -> ReportTable:
    return ReportTable(
        title="Original Supply Bill Report",
        headers=["Date", "Invoice Number", "Quantity"],
        rows=[
            [format_display_date(s.date), s.invoice_number, whole(s.quantity)]
            for s in summaries
        ],
        sheet_name="OriginalSupply",
    )


def receipt_table(summaries: list[ReceiptSummary]) -> ReportTable:
    return ReportTable(
        title="Receipt Report",
        headers=["Date", "Receipt Invoice", "Supply Invoice", "Finished", "Damaged", "Total"],
        rows=[
            [format_display_date(s.date), s.receipt_invoice_number, s.supply_invoice_number,
             whole(s.finished), whole(s.damaged), whole(s.total)]
            for s in summaries
        ],
        sheet_name="ReceiptReport",
    )
