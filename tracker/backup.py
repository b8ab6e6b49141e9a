"""
Backup service for the tracker.

Backups are JSON snapshots of every record collection, written as
inventory-backup-YYYY-MM-DD.json into the backup directory and rotated so only
the newest N files are kept.  Restore re-inserts the snapshot through the
ordinary add paths, so every restored record gets a fresh id.
"""
import json
import logging
import os
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Optional

from models.history import BackupHistoryEntry, InvoiceChange
from models.invoice import NewReceiptInvoice, NewSupplyInvoice
from .database import Database
from .errors import StoreError

logger = logging.getLogger(__name__)

BACKUP_PATTERN = "inventory-backup-*.json"
RESTORE_MODES = ("merge", "replace")


def backup_filename() -> str:
    return f"inventory-backup-{date.today():%Y-%m-%d}.json"


class BackupService:
    """
    Manages JSON export/import, backup files and rotation.
    """

    def __init__(self, config: Any, db: Database) -> None:
        self.config = config
        self.db = db
        self.backup_dir = Path(config.backup_dir)
        self.backup_dir.mkdir(parents=True, exist_ok=True)

    # ------------------------------------------------------------------
    # Export / import
    # ------------------------------------------------------------------

    def export_all_data(self) -> str:
        """Serialise every collection as the camelCase backup document."""
        data = {
            "goods": [g.model_dump(by_alias=True) for g in self.db.get_goods()],
            "supplyInvoices": [
                s.model_dump(by_alias=True) for s in self.db.get_supply_invoices()
            ],
            "receiptInvoices": [
                r.model_dump(by_alias=True) for r in self.db.get_receipt_invoices()
            ],
            "invoiceChanges": [
                c.model_dump(by_alias=True) for c in self.db.get_invoice_changes()
            ],
            "exportDate": datetime.now(timezone.utc).isoformat(),
        }
        return json.dumps(data, indent=2)

    def import_all_data(self, json_str: str) -> bool:
        """
        Insert every record from a backup document.

        Receipts pointing at a supply invoice from the same document are
        re-linked to that invoice's new id.  Records are inserted one by one;
        a failure partway leaves what was already written.
        """
        try:
            data = json.loads(json_str)

            for goods in data.get("goods", []):
                self.db.add_goods(goods["name"])

            id_map: dict[str, str] = {}
            for raw in data.get("supplyInvoices", []):
                created = self.db.add_supply_invoice(NewSupplyInvoice.model_validate(raw))
                if raw.get("id"):
                    id_map[raw["id"]] = created.id

            for raw in data.get("receiptInvoices", []):
                receipt = NewReceiptInvoice.model_validate(raw)
                if receipt.supply_invoice_id in id_map:
                    receipt = receipt.model_copy(
                        update={"supply_invoice_id": id_map[receipt.supply_invoice_id]}
                    )
                self.db.add_receipt_invoice(receipt)

            for raw in data.get("invoiceChanges", []):
                change = InvoiceChange.model_validate(raw)
                self.db.add_invoice_change(change.model_copy(update={"id": None}))

        except (ValueError, TypeError, KeyError, AttributeError, StoreError) as exc:
            logger.error("Error importing data: %s", exc)
            return False

        logger.info(
            "Imported %d supply and %d receipt invoice(s)",
            len(data.get("supplyInvoices", [])), len(data.get("receiptInvoices", [])),
        )
        return True

    def clear_database(self) -> bool:
        try:
            self.db.clear_database()
        except StoreError as exc:
            logger.error("Error clearing database: %s", exc)
            return False
        return True

    # ------------------------------------------------------------------
    # Backup files
    # ------------------------------------------------------------------

    def record_history(self, kind: str, filename: str) -> None:
        try:
            self.db.add_backup_history_entry(BackupHistoryEntry(
                type=kind,
                timestamp=datetime.now(timezone.utc).isoformat(),
                filename=filename,
            ))
        except StoreError as exc:
            logger.error("Failed to record %s history for %s: %s", kind, filename, exc)

    def create_backup(self) -> str:
        """
        Write today's backup file and return its filename.  A second backup on
        the same day overwrites the first.
        """
        filename = backup_filename()
        path = self.backup_dir / filename
        logger.info("Starting backup: %s", filename)

        try:
            path.write_text(self.export_all_data(), encoding="utf-8")
        except OSError as exc:
            logger.error("Backup failed: %s", exc)
            if path.exists():
                path.unlink()
            raise

        self.record_history("backup", filename)
        logger.info("Backup completed successfully: %s", filename)
        self.rotate_backups()
        return filename

    def export_backup(self) -> tuple[str, str]:
        """
        Serialise every collection for download and log it as a backup.
        Returns (filename, content).
        """
        filename = backup_filename()
        content = self.export_all_data()
        self.record_history("backup", filename)
        return filename, content

    def restore_content(self, content: str, mode: str = "merge", source: str = "upload") -> bool:
        """
        Load a backup document.  ``replace`` wipes the data tables first;
        ``merge`` adds the backup's records alongside the existing ones.
        The history entry reads ``<source> (Clean)`` or ``<source> (Merge)``.
        """
        if mode not in RESTORE_MODES:
            raise ValueError(f"Invalid restore mode {mode!r}. Must be one of {RESTORE_MODES}")

        if mode == "replace" and not self.clear_database():
            return False
        if not self.import_all_data(content):
            return False

        label = "Clean" if mode == "replace" else "Merge"
        self.record_history("restore", f"{source} ({label})")
        logger.info("Restore completed (%s): %s", mode, source)
        return True

    def restore(self, path: Path, mode: str = "merge") -> bool:
        """Load a backup file; see restore_content."""
        if mode not in RESTORE_MODES:
            raise ValueError(f"Invalid restore mode {mode!r}. Must be one of {RESTORE_MODES}")
        path = Path(path)
        return self.restore_content(path.read_text(encoding="utf-8"), mode, path.name)

    def rotate_backups(self) -> None:
        """
        Remove old backups, keeping only the last N files.
        """
        retention = self.config.backup_retention_count
        if retention <= 0:
            return

        backups = sorted(
            self.backup_dir.glob(BACKUP_PATTERN),
            key=os.path.getmtime,
            reverse=True,
        )
        for old in backups[retention:]:
            logger.info("Rotating out old backup: %s", old.name)
            try:
                old.unlink()
            except OSError as exc:
                logger.warning("Failed to delete old backup %s: %s", old, exc)

    def list_backups(self) -> list[Path]:
        return sorted(self.backup_dir.glob(BACKUP_PATTERN), key=os.path.getmtime, reverse=True)

    def get_last_backup_time(self) -> Optional[datetime]:
        """Return the timestamp of the newest backup file."""
        backups = self.list_backups()
        if not backups:
            return None
        return datetime.fromtimestamp(backups[0].stat().st_mtime)
