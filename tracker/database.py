"""
SQLite record store for the job-work tracker.

One database file (output/tracker.db) holds every entity:

  goods                   goods master, matched by exact name
  supply_invoices         goods sent to the job worker (header)
  supply_invoice_items    one row per goods line, replaced wholesale on edit
  receipt_invoices        goods returned (header); supply_invoice_id is the
                          link back to the originating supply invoice
  receipt_invoice_items   finished / damaged quantities + attribute tags
  invoice_changes         append-only edit audit log
  backup_history          append-only log of backup / restore runs

This layer maps rows to models and nothing more.  Business rules (validation,
diffing, best-effort change logging) live in tracker.service.

Reads return invoices newest date first.  Writes that touch a header and its
items run in a single transaction, so a failed item insert also rolls back
the header.
"""
import json
import logging
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from models.goods import Goods
from models.history import BackupHistoryEntry, InvoiceChange
from models.invoice import (
    NewReceiptInvoice,
    NewSupplyInvoice,
    ReceiptInvoice,
    ReceiptInvoiceUpdate,
    ReceiptItem,
    SupplyInvoice,
    SupplyInvoiceUpdate,
    SupplyItem,
)
from models.records import (
    ReceiptInvoiceRecord,
    ReceiptItemRecord,
    SupplyInvoiceRecord,
    SupplyItemRecord,
    receipt_from_record,
    supply_from_record,
)
from .errors import StoreError

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS goods (
    id          TEXT PRIMARY KEY,
    name        TEXT NOT NULL,
    created_at  TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_goods_name ON goods (name);

CREATE TABLE IF NOT EXISTS supply_invoices (
    id              TEXT PRIMARY KEY,
    date            TEXT NOT NULL,          -- YYYY-MM-DD
    invoice_number  TEXT NOT NULL,          -- unique by convention only
    job_worker      TEXT,
    narration       TEXT,
    created_at      TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_supply_date ON supply_invoices (date DESC);

CREATE TABLE IF NOT EXISTS supply_invoice_items (
    id                 TEXT PRIMARY KEY,
    supply_invoice_id  TEXT NOT NULL,
    position           INTEGER NOT NULL DEFAULT 0,
    goods_name         TEXT NOT NULL,
    quantity           REAL NOT NULL DEFAULT 0
);

CREATE INDEX IF NOT EXISTS idx_supply_items_invoice ON supply_invoice_items (supply_invoice_id);

CREATE TABLE IF NOT EXISTS receipt_invoices (
    id                      TEXT PRIMARY KEY,
    date                    TEXT NOT NULL,
    receipt_invoice_number  TEXT NOT NULL,
    supply_invoice_id       TEXT,           -- weak link; not enforced
    supply_invoice_number   TEXT,
    job_worker              TEXT,
    narration               TEXT,
    created_at              TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_receipt_date   ON receipt_invoices (date DESC);
CREATE INDEX IF NOT EXISTS idx_receipt_supply ON receipt_invoices (supply_invoice_id);

CREATE TABLE IF NOT EXISTS receipt_invoice_items (
    id                  TEXT PRIMARY KEY,
    receipt_invoice_id  TEXT NOT NULL,
    position            INTEGER NOT NULL DEFAULT 0,
    goods_name          TEXT NOT NULL,
    finished_quantity   REAL NOT NULL DEFAULT 0,
    damaged_quantity    REAL NOT NULL DEFAULT 0,
    attributes          TEXT                -- JSON array of A..H
);

CREATE INDEX IF NOT EXISTS idx_receipt_items_invoice ON receipt_invoice_items (receipt_invoice_id);

CREATE TABLE IF NOT EXISTS invoice_changes (
    id              TEXT PRIMARY KEY,
    invoice_id      TEXT,                   -- weak reference; invoice may be gone
    invoice_number  TEXT,
    change_date     TEXT NOT NULL,          -- ISO-8601 UTC
    reason          TEXT,
    change_details  TEXT                    -- JSON array of {field, old, new}
);

CREATE INDEX IF NOT EXISTS idx_changes_date ON invoice_changes (change_date DESC);

CREATE TABLE IF NOT EXISTS backup_history (
    id          TEXT PRIMARY KEY,
    type        TEXT NOT NULL,              -- backup | restore
    timestamp   TEXT NOT NULL,
    filename    TEXT NOT NULL
);
"""

# Cleared by clear_database(); backup_history survives a wipe.
DATA_TABLES = (
    "receipt_invoice_items",
    "supply_invoice_items",
    "receipt_invoices",
    "supply_invoices",
    "invoice_changes",
    "goods",
)


def _new_id() -> str:
    return str(uuid.uuid4())


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """Thin wrapper around an SQLite database file holding all tracker records."""

    def __init__(self, db_path: Path) -> None:
        self.db_path = db_path
        db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_schema()

    # ------------------------------------------------------------------
    # Connection management
    # ------------------------------------------------------------------

    @contextmanager
    def _conn(self, action: str = "database operation"):
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=30)
        except sqlite3.Error as exc:
            raise StoreError(f"Error opening database for {action}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        try:
            yield conn
            conn.commit()
        except sqlite3.Error as exc:
            conn.rollback()
            raise StoreError(f"Error during {action}: {exc}") from exc
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_schema(self) -> None:
        with self._conn("schema setup") as conn:
            conn.executescript(_SCHEMA)
        logger.debug("Database schema ready: %s", self.db_path)

    # ------------------------------------------------------------------
    # Goods
    # ------------------------------------------------------------------

    def get_goods(self) -> list[Goods]:
        """Return all goods ordered by name."""
        with self._conn("fetching goods") as conn:
            rows = conn.execute("SELECT id, name FROM goods ORDER BY name ASC").fetchall()
        return [Goods(id=r["id"], name=r["name"]) for r in rows]

    def find_goods(self, name: str) -> Optional[Goods]:
        with self._conn("looking up goods") as conn:
            row = conn.execute(
                "SELECT id, name FROM goods WHERE name = ? LIMIT 1", (name,)
            ).fetchone()
        return Goods(id=row["id"], name=row["name"]) if row else None

    def add_goods(self, name: str) -> Goods:
        """Insert a goods record unless one with exactly this name exists."""
        existing = self.find_goods(name)
        if existing:
            return existing
        goods = Goods(id=_new_id(), name=name)
        with self._conn("adding goods") as conn:
            conn.execute(
                "INSERT INTO goods (id, name, created_at) VALUES (?, ?, ?)",
                (goods.id, goods.name, _utc_now()),
            )
        logger.info("Goods added: %s", name)
        return goods

    # ------------------------------------------------------------------
    # Supply invoices
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_supply_items(conn, invoice_id: str, items: list[SupplyItem]) -> None:
        conn.executemany(
            """INSERT INTO supply_invoice_items
                   (id, supply_invoice_id, position, goods_name, quantity)
               VALUES (?, ?, ?, ?, ?)""",
            [
                (_new_id(), invoice_id, pos, item.goods_name, item.quantity)
                for pos, item in enumerate(items)
            ],
        )

    def _supply_records(self, where: str = "", params: tuple = ()) -> list[SupplyInvoiceRecord]:
        with self._conn("fetching supply invoices") as conn:
            headers = conn.execute(
                f"""SELECT * FROM supply_invoices {where}
                    ORDER BY date DESC, created_at DESC""",
                params,
            ).fetchall()
            ids = [h["id"] for h in headers]
            items: dict[str, list[SupplyItemRecord]] = {i: [] for i in ids}
            if ids:
                marks = ",".join("?" for _ in ids)
                for row in conn.execute(
                    f"""SELECT * FROM supply_invoice_items
                        WHERE supply_invoice_id IN ({marks})
                        ORDER BY position ASC""",
                    ids,
                ).fetchall():
                    items[row["supply_invoice_id"]].append(SupplyItemRecord(
                        id=row["id"],
                        supply_invoice_id=row["supply_invoice_id"],
                        goods_name=row["goods_name"],
                        quantity=row["quantity"],
                    ))
        return [
            SupplyInvoiceRecord(**dict(h), supply_invoice_items=items[h["id"]])
            for h in headers
        ]

    def get_supply_invoices(self) -> list[SupplyInvoice]:
        """Return every supply invoice with its items, newest date first."""
        return [supply_from_record(r) for r in self._supply_records()]

    def get_supply_invoice_record(self, invoice_id: str) -> Optional[SupplyInvoiceRecord]:
        """Return the stored row (storage shape) or None when it does not exist."""
        records = self._supply_records("WHERE id = ?", (invoice_id,))
        return records[0] if records else None

    def get_supply_invoice(self, invoice_id: str) -> Optional[SupplyInvoice]:
        rec = self.get_supply_invoice_record(invoice_id)
        return supply_from_record(rec) if rec else None

    def find_supply_by_number(self, invoice_number: str) -> Optional[SupplyInvoice]:
        """First supply invoice carrying this number (numbers are not unique)."""
        records = self._supply_records("WHERE invoice_number = ?", (invoice_number,))
        return supply_from_record(records[0]) if records else None

    def add_supply_invoice(self, invoice: NewSupplyInvoice) -> SupplyInvoice:
        """Insert header and items in one transaction."""
        invoice_id = _new_id()
        created_at = _utc_now()
        with self._conn("adding supply invoice") as conn:
            conn.execute(
                """INSERT INTO supply_invoices
                       (id, date, invoice_number, job_worker, narration, created_at)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (invoice_id, invoice.date, invoice.invoice_number,
                 invoice.job_worker, invoice.narration, created_at),
            )
            self._insert_supply_items(conn, invoice_id, invoice.items)
        logger.info("Supply invoice added: %s (%d items)", invoice.invoice_number, len(invoice.items))
        return SupplyInvoice(
            id=invoice_id,
            created_at=created_at,
            **invoice.model_dump(),
        )

    def update_supply_invoice(self, invoice_id: str, update: SupplyInvoiceUpdate) -> bool:
        """
        Write the provided header fields and, when update.items is set,
        replace the item set.  Returns True if the invoice was found.
        """
        columns = {
            "date":           update.date,
            "invoice_number": update.invoice_number,
            "job_worker":     update.job_worker,
            "narration":      update.narration,
        }
        columns = {k: v for k, v in columns.items() if v is not None}

        with self._conn("updating supply invoice") as conn:
            found = conn.execute(
                "SELECT 1 FROM supply_invoices WHERE id = ?", (invoice_id,)
            ).fetchone()
            if not found:
                return False
            if columns:
                assignments = ", ".join(f"{col} = ?" for col in columns)
                conn.execute(
                    f"UPDATE supply_invoices SET {assignments} WHERE id = ?",
                    (*columns.values(), invoice_id),
                )
            if update.items is not None:
                conn.execute(
                    "DELETE FROM supply_invoice_items WHERE supply_invoice_id = ?", (invoice_id,)
                )
                self._insert_supply_items(conn, invoice_id, update.items)
        logger.info("Supply invoice updated: %s", invoice_id)
        return True

    def delete_supply_invoice(self, invoice_id: str) -> bool:
        """Delete header and items.  Receipts referencing it are left in place."""
        with self._conn("deleting supply invoice") as conn:
            conn.execute(
                "DELETE FROM supply_invoice_items WHERE supply_invoice_id = ?", (invoice_id,)
            )
            conn.execute("DELETE FROM supply_invoices WHERE id = ?", (invoice_id,))
            return conn.execute("SELECT changes()").fetchone()[0] > 0

    # ------------------------------------------------------------------
    # Receipt invoices
    # ------------------------------------------------------------------

    @staticmethod
    def _insert_receipt_items(conn, invoice_id: str, items: list[ReceiptItem]) -> None:
        conn.executemany(
            """INSERT INTO receipt_invoice_items
                   (id, receipt_invoice_id, position, goods_name,
                    finished_quantity, damaged_quantity, attributes)
               VALUES (?, ?, ?, ?, ?, ?, ?)""",
            [
                (_new_id(), invoice_id, pos, item.goods_name,
                 item.finished_quantity, item.damaged_quantity, json.dumps(item.attributes))
                for pos, item in enumerate(items)
            ],
        )

    @staticmethod
    def _decode_attributes(raw: Optional[str]) -> list[str]:
        if not raw:
            return []
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring malformed attributes value: %r", raw)
            return []
        return [str(a) for a in value] if isinstance(value, list) else []

    def _receipt_records(self, where: str = "", params: tuple = ()) -> list[ReceiptInvoiceRecord]:
        with self._conn("fetching receipt invoices") as conn:
            headers = conn.execute(
                f"""SELECT * FROM receipt_invoices {where}
                    ORDER BY date DESC, created_at DESC""",
                params,
            ).fetchall()
            ids = [h["id"] for h in headers]
            items: dict[str, list[ReceiptItemRecord]] = {i: [] for i in ids}
            if ids:
                marks = ",".join("?" for _ in ids)
                for row in conn.execute(
                    f"""SELECT * FROM receipt_invoice_items
                        WHERE receipt_invoice_id IN ({marks})
                        ORDER BY position ASC""",
                    ids,
                ).fetchall():
                    items[row["receipt_invoice_id"]].append(ReceiptItemRecord(
                        id=row["id"],
                        receipt_invoice_id=row["receipt_invoice_id"],
                        goods_name=row["goods_name"],
                        finished_quantity=row["finished_quantity"],
                        damaged_quantity=row["damaged_quantity"],
                        attributes=self._decode_attributes(row["attributes"]),
                    ))
        return [
            ReceiptInvoiceRecord(**dict(h), receipt_invoice_items=items[h["id"]])
            for h in headers
        ]

    def get_receipt_invoices(self) -> list[ReceiptInvoice]:
        """Return every receipt invoice with its items, newest date first."""
        return [receipt_from_record(r) for r in self._receipt_records()]

    def get_receipt_invoice_record(self, invoice_id: str) -> Optional[ReceiptInvoiceRecord]:
        records = self._receipt_records("WHERE id = ?", (invoice_id,))
        return records[0] if records else None

    def get_receipt_invoice(self, invoice_id: str) -> Optional[ReceiptInvoice]:
        rec = self.get_receipt_invoice_record(invoice_id)
        return receipt_from_record(rec) if rec else None

    def add_receipt_invoice(self, invoice: NewReceiptInvoice) -> ReceiptInvoice:
        invoice_id = _new_id()
        created_at = _utc_now()
        with self._conn("adding receipt invoice") as conn:
            conn.execute(
                """INSERT INTO receipt_invoices
                       (id, date, receipt_invoice_number, supply_invoice_id,
                        supply_invoice_number, job_worker, narration, created_at)
                   VALUES (?, ?, ?, ?, ?, ?, ?, ?)""",
                (invoice_id, invoice.date, invoice.receipt_invoice_number,
                 invoice.supply_invoice_id, invoice.supply_invoice_number,
                 invoice.job_worker, invoice.narration, created_at),
            )
            self._insert_receipt_items(conn, invoice_id, invoice.items)
        logger.info(
            "Receipt invoice added: %s against supply %s (%d items)",
            invoice.receipt_invoice_number, invoice.supply_invoice_number, len(invoice.items),
        )
        return ReceiptInvoice(
            id=invoice_id,
            created_at=created_at,
            **invoice.model_dump(),
        )

    def update_receipt_invoice(self, invoice_id: str, update: ReceiptInvoiceUpdate) -> bool:
        columns = {
            "date":                   update.date,
            "receipt_invoice_number": update.receipt_invoice_number,
            "supply_invoice_id":      update.supply_invoice_id,
            "supply_invoice_number":  update.supply_invoice_number,
            "job_worker":             update.job_worker,
            "narration":              update.narration,
        }
        columns = {k: v for k, v in columns.items() if v is not None}

        with self._conn("updating receipt invoice") as conn:
            found = conn.execute(
                "SELECT 1 FROM receipt_invoices WHERE id = ?", (invoice_id,)
            ).fetchone()
            if not found:
                return False
            if columns:
                assignments = ", ".join(f"{col} = ?" for col in columns)
                conn.execute(
                    f"UPDATE receipt_invoices SET {assignments} WHERE id = ?",
                    (*columns.values(), invoice_id),
                )
            if update.items is not None:
                conn.execute(
                    "DELETE FROM receipt_invoice_items WHERE receipt_invoice_id = ?", (invoice_id,)
                )
                self._insert_receipt_items(conn, invoice_id, update.items)
        logger.info("Receipt invoice updated: %s", invoice_id)
        return True

    def delete_receipt_invoice(self, invoice_id: str) -> bool:
        with self._conn("deleting receipt invoice") as conn:
            conn.execute(
                "DELETE FROM receipt_invoice_items WHERE receipt_invoice_id = ?", (invoice_id,)
            )
            conn.execute("DELETE FROM receipt_invoices WHERE id = ?", (invoice_id,))
            return conn.execute("SELECT changes()").fetchone()[0] > 0

    # ------------------------------------------------------------------
    # Change log
    # ------------------------------------------------------------------

    def get_invoice_changes(self) -> list[InvoiceChange]:
        """Return the full change log, newest first."""
        with self._conn("fetching invoice changes") as conn:
            rows = conn.execute(
                "SELECT * FROM invoice_changes ORDER BY change_date DESC"
            ).fetchall()
        return [
            InvoiceChange(
                id=r["id"],
                invoice_id=r["invoice_id"] or "",
                invoice_number=r["invoice_number"],
                change_date=r["change_date"],
                reason=r["reason"] or "",
                change_details=r["change_details"] or "[]",
            )
            for r in rows
        ]

    def add_invoice_change(self, change: InvoiceChange) -> InvoiceChange:
        """Append one entry to the change log.  Raises StoreError on failure."""
        entry = change.model_copy(update={"id": change.id or _new_id()})
        with self._conn("logging invoice change") as conn:
            conn.execute(
                """INSERT INTO invoice_changes
                       (id, invoice_id, invoice_number, change_date, reason, change_details)
                   VALUES (?, ?, ?, ?, ?, ?)""",
                (entry.id, entry.invoice_id, entry.invoice_number,
                 entry.change_date, entry.reason, entry.change_details),
            )
        return entry

    # ------------------------------------------------------------------
    # Backup history
    # ------------------------------------------------------------------

    def get_backup_history(self) -> list[BackupHistoryEntry]:
        with self._conn("fetching backup history") as conn:
            rows = conn.execute(
                "SELECT * FROM backup_history ORDER BY timestamp DESC"
            ).fetchall()
        return [BackupHistoryEntry(**dict(r)) for r in rows]

    def add_backup_history_entry(self, entry: BackupHistoryEntry) -> BackupHistoryEntry:
        entry = entry.model_copy(update={"id": entry.id or _new_id()})
        with self._conn("adding backup history") as conn:
            conn.execute(
                "INSERT INTO backup_history (id, type, timestamp, filename) VALUES (?, ?, ?, ?)",
                (entry.id, entry.type, entry.timestamp, entry.filename),
            )
        return entry

    # ------------------------------------------------------------------
    # Maintenance
    # ------------------------------------------------------------------

    def clear_database(self) -> None:
        """Delete every row from the six data tables."""
        with self._conn("clearing database") as conn:
            for table in DATA_TABLES:
                conn.execute(f"DELETE FROM {table}")
        logger.warning("Database cleared: %s", self.db_path)

    def get_stats(self) -> dict:
        """Row counts per table."""
        with self._conn("fetching stats") as conn:
            return {
                table: conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
                for table in (*DATA_TABLES, "backup_history")
            }
