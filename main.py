#!/usr/bin/env python3
"""
Job-Work Inventory Tracker: CLI entry point.

Usage examples:
  python main.py init                                         # Create the database
  python main.py add-supply INV-1 -i Cloth:100 -i Thread:20   # Record goods sent out
  python main.py add-receipt REC-1 --supply INV-1 -i Cloth:60:10:A,C
  python main.py report dynamic --range 1month                # Supply vs. returns
  python main.py report attributes --start 2024-01-01 --end 2024-01-31 --xlsx out.xlsx
  python main.py history --tab receipt                        # Edit audit log
  python main.py backup                                       # Write today's backup file
  python main.py restore backups/inventory-backup-2024-05-01.json --mode replace
"""
import logging
import sys
from datetime import date
from pathlib import Path

import click

from config import Config
from dashboard.services.export import render_table, table_workbook
from dashboard.services.reports import REPORT_NAMES, build_report
from models.invoice import (
    NewReceiptInvoice,
    NewSupplyInvoice,
    ReceiptItem,
    SupplyInvoiceUpdate,
    SupplyItem,
)
from tracker.backup import BackupService
from tracker.change_log import change_view, filter_changes
from tracker.database import Database
from tracker.date_ranges import ALL_RANGES, RANGE_CUSTOM, resolve_window
from tracker.errors import InvoiceNotFoundError, InvoiceValidationError, StoreError
from tracker.service import InvoiceService


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s  %(levelname)-8s  %(name)s — %(message)s",
        datefmt="%H:%M:%S",
    )


def _open(config: Config) -> Database:
    config.ensure_dirs()
    return Database(config.db_path)


def _fail(message: str) -> None:
    click.echo(f"✗ {message}", err=True)
    sys.exit(1)


def _parse_supply_item(text: str) -> SupplyItem:
    """NAME:QTY"""
    name, sep, qty = text.rpartition(":")
    if not sep or not name:
        raise click.BadParameter(f"expected NAME:QTY, got {text!r}")
    try:
        return SupplyItem(goods_name=name.strip(), quantity=float(qty))
    except ValueError:
        raise click.BadParameter(f"invalid quantity in {text!r}")


def _parse_receipt_item(text: str) -> ReceiptItem:
    """NAME:FIN:DMG[:ATTRS] with ATTRS a comma list such as A,C"""
    parts = text.split(":")
    if len(parts) not in (3, 4) or not parts[0].strip():
        raise click.BadParameter(f"expected NAME:FIN:DMG[:ATTRS], got {text!r}")
    attrs = [a.strip().upper() for a in parts[3].split(",") if a.strip()] if len(parts) == 4 else []
    try:
        return ReceiptItem(
            goods_name=parts[0].strip(),
            finished_quantity=float(parts[1] or 0),
            damaged_quantity=float(parts[2] or 0),
            attributes=attrs,
        )
    except ValueError:
        raise click.BadParameter(f"invalid quantities in {text!r}")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Job-Work Inventory Tracker: goods sent to job workers and what came back."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    _setup_logging(verbose)


# --------------------------------------------------------------------
# init command
# --------------------------------------------------------------------

@cli.command()
def init() -> None:
    """Create the database and output directories."""
    config = Config()
    db = _open(config)
    click.echo(f"\n  Database:  {db.db_path}")
    click.echo(f"  Exports:   {config.export_dir}/")
    click.echo(f"  Backups:   {config.backup_dir}/\n")
    for table, count in db.get_stats().items():
        click.echo(f"  {table:<24} {count}")
    click.echo()


# --------------------------------------------------------------------
# add-supply / add-receipt commands
# --------------------------------------------------------------------

@cli.command("add-supply")
@click.argument("invoice_number")
@click.option("--date", "-d", "invoice_date", default=None, help="YYYY-MM-DD (default: today)")
@click.option("--item", "-i", "items", multiple=True, required=True, help="NAME:QTY (repeatable)")
@click.option("--job-worker", default=None, help="Job worker name")
@click.option("--narration", default="", help="Free-text note")
def add_supply(
    invoice_number: str,
    invoice_date: str | None,
    items: tuple[str, ...],
    job_worker: str | None,
    narration: str,
) -> None:
    """Record a supply invoice (goods sent to the job worker)."""
    service = InvoiceService(_open(Config()))
    invoice = NewSupplyInvoice(
        date=invoice_date or date.today().isoformat(),
        invoice_number=invoice_number,
        job_worker=job_worker,
        narration=narration,
        items=[_parse_supply_item(s) for s in items],
    )
    try:
        created = service.create_supply_invoice(invoice)
    except (InvoiceValidationError, StoreError) as exc:
        _fail(str(exc))
        return
    click.echo(
        f"✓ Supply invoice {created.invoice_number} saved "
        f"({len(created.items)} items, qty {created.total_quantity:g})"
    )


@cli.command("add-receipt")
@click.argument("receipt_number")
@click.option("--supply", "-s", "supply_number", required=True, help="Supply invoice number")
@click.option("--date", "-d", "receipt_date", default=None, help="YYYY-MM-DD (default: today)")
@click.option(
    "--item", "-i", "items", multiple=True, required=True,
    help="NAME:FINISHED:DAMAGED[:ATTRS] (repeatable, ATTRS like A,C)",
)
@click.option("--job-worker", default=None, help="Job worker name")
@click.option("--narration", default="", help="Free-text note")
def add_receipt(
    receipt_number: str,
    supply_number: str,
    receipt_date: str | None,
    items: tuple[str, ...],
    job_worker: str | None,
    narration: str,
) -> None:
    """Record a receipt invoice (goods returned against a supply invoice)."""
    db = _open(Config())
    supply = db.find_supply_by_number(supply_number)
    if supply is None:
        _fail(f"Supply invoice {supply_number} not found")
        return
    invoice = NewReceiptInvoice(
        date=receipt_date or date.today().isoformat(),
        receipt_invoice_number=receipt_number,
        supply_invoice_id=supply.id,
        supply_invoice_number=supply.invoice_number,
        job_worker=job_worker,
        narration=narration,
        items=[_parse_receipt_item(s) for s in items],
    )
    try:
        created = InvoiceService(db).create_receipt_invoice(invoice)
    except (InvoiceValidationError, StoreError) as exc:
        _fail(str(exc))
        return
    click.echo(
        f"✓ Receipt {created.receipt_invoice_number} saved against {created.supply_invoice_number}"
    )


# --------------------------------------------------------------------
# edit command
# --------------------------------------------------------------------

@cli.command("edit-supply")
@click.argument("invoice_number")
@click.option("--reason", "-r", required=True, help="Why the invoice is being changed")
@click.option("--date", "-d", "new_date", default=None, help="New date (YYYY-MM-DD)")
@click.option("--number", "new_number", default=None, help="New invoice number")
@click.option("--item", "-i", "items", multiple=True, help="Replacement NAME:QTY lines")
def edit_supply(
    invoice_number: str,
    reason: str,
    new_date: str | None,
    new_number: str | None,
    items: tuple[str, ...],
) -> None:
    """Edit a supply invoice; the change is recorded in the history."""
    db = _open(Config())
    supply = db.find_supply_by_number(invoice_number)
    if supply is None:
        _fail(f"Supply invoice {invoice_number} not found")
        return
    update = SupplyInvoiceUpdate(
        date=new_date,
        invoice_number=new_number,
        items=[_parse_supply_item(s) for s in items] if items else None,
    )
    try:
        changes = InvoiceService(db).update_supply_invoice(supply.id, update, reason)
    except (InvoiceValidationError, InvoiceNotFoundError, StoreError) as exc:
        _fail(str(exc))
        return
    click.echo(f"✓ {invoice_number} updated ({len(changes)} change(s))")
    for c in changes:
        click.echo(f"    {c.field}: {c.old} → {c.new}")


# --------------------------------------------------------------------
# report command
# --------------------------------------------------------------------

@cli.command()
@click.argument("name", type=click.Choice(REPORT_NAMES))
@click.option("--range", "range_name", type=click.Choice(ALL_RANGES), default=None,
              help="Date range (default: DEFAULT_DATE_RANGE or 1month)")
@click.option("--start", default=None, help="Custom range start (YYYY-MM-DD)")
@click.option("--end", default=None, help="Custom range end (YYYY-MM-DD)")
@click.option("--search", default=None, help="Filter rows by text")
@click.option("--xlsx", "xlsx_path", default=None, type=click.Path(), help="Write a spreadsheet")
@click.option("--html", "html_path", default=None, type=click.Path(), help="Write a printable report")
def report(
    name: str,
    range_name: str | None,
    start: str | None,
    end: str | None,
    search: str | None,
    xlsx_path: str | None,
    html_path: str | None,
) -> None:
    """Print a report, optionally exporting it."""
    config = Config()
    range_name = range_name or config.default_date_range
    if start or end:
        range_name = RANGE_CUSTOM
    try:
        window = resolve_window(range_name, start, end)
        _, table = build_report(_open(config), name, window, search, range_label=range_name)
    except (ValueError, StoreError) as exc:
        _fail(str(exc))
        return

    click.echo(f"\n  {table.title}  ({window.start:%d/%m/%Y} – {window.end:%d/%m/%Y})\n")
    widths = [
        max([len(str(h))] + [len(str(r[i])) for r in table.rows if i < len(r)])
        for i, h in enumerate(table.headers)
    ]
    click.echo("  " + "  ".join(str(h).ljust(w) for h, w in zip(table.headers, widths)))
    click.echo("  " + "  ".join("-" * w for w in widths))
    for row in table.rows:
        click.echo("  " + "  ".join(str(c).ljust(w) for c, w in zip(row, widths)))
    click.echo(f"\n  {len(table.rows)} row(s)\n")

    if xlsx_path:
        Path(xlsx_path).write_bytes(table_workbook(table))
        click.echo(f"  Spreadsheet saved to: {xlsx_path}")
    if html_path:
        Path(html_path).write_text(render_table(table), encoding="utf-8")
        click.echo(f"  Printable report saved to: {html_path}")


# --------------------------------------------------------------------
# history command
# --------------------------------------------------------------------

@cli.command()
@click.option("--tab", type=click.Choice(["supply", "receipt"]), default=None)
def history(tab: str | None) -> None:
    """Show the invoice change log, newest first."""
    changes = _open(Config()).get_invoice_changes()
    if tab:
        changes = filter_changes(changes, tab)
    if not changes:
        click.echo("No changes recorded.")
        return
    for change in changes:
        view = change_view(change)
        click.echo(f"\n  {view['changeDate']}  {view['invoiceNumber'] or '(unknown)'}  [{view['kind']}]")
        click.echo(f"  Reason: {view['reason']}")
        if view["entries"] is None:
            click.echo(f"    {view['raw']}")
            continue
        for entry in view["entries"]:
            click.echo(f"    {entry['field']}: {entry['old']} → {entry['new']}")
    click.echo()


# --------------------------------------------------------------------
# backup / restore / clear commands
# --------------------------------------------------------------------

@cli.command()
def backup() -> None:
    """Write today's JSON backup and rotate old ones."""
    config = Config()
    service = BackupService(config, _open(config))
    try:
        filename = service.create_backup()
    except (OSError, StoreError) as exc:
        _fail(f"Backup failed: {exc}")
        return
    click.echo(f"\n✓ Backup successful: {config.backup_dir / filename}")


@cli.command()
@click.argument("backup_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--mode", type=click.Choice(["merge", "replace"]), default="merge",
              help="replace clears all data first")
def restore(backup_file: str, mode: str) -> None:
    """Load a JSON backup file."""
    config = Config()
    if mode == "replace":
        click.confirm("This deletes all current data before restoring. Continue?", abort=True)
    service = BackupService(config, _open(config))
    if not service.restore(Path(backup_file), mode):
        _fail("Restore failed; see log for details")
        return
    click.echo(f"✓ Restored {backup_file} ({mode})")


@cli.command()
@click.option("--yes", is_flag=True, help="Skip the confirmation prompt")
def clear(yes: bool) -> None:
    """Delete every goods, invoice and change record."""
    if not yes:
        click.confirm("Delete ALL data? This cannot be undone.", abort=True)
    config = Config()
    if not BackupService(config, _open(config)).clear_database():
        _fail("Clear failed; see log for details")
        return
    click.echo("✓ All data cleared")


# --------------------------------------------------------------------
# serve command
# --------------------------------------------------------------------

@cli.command()
@click.option("--host", default="127.0.0.1")
@click.option("--port", default=8000, type=int)
def serve(host: str, port: int) -> None:
    """Run the dashboard API."""
    import uvicorn

    uvicorn.run("dashboard.app:app", host=host, port=port)


if __name__ == "__main__":
    cli()
