"""
Pytest configuration and shared fixtures for the tracker test suite.
"""
import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

PROJECT_ROOT = Path(__file__).parent.parent
os.chdir(PROJECT_ROOT)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory for test files."""
    tmp_path = tempfile.mkdtemp(prefix="tracker_test_")
    yield Path(tmp_path)
    shutil.rmtree(tmp_path, ignore_errors=True)


@pytest.fixture
def test_config(temp_dir: Path, monkeypatch) -> "Config":
    """Provide a test configuration with isolated directories."""
    from config import Config

    monkeypatch.setenv("CONFIG_DIR", str(temp_dir / "config"))
    config = Config()
    config.db_path = temp_dir / "output" / "tracker.db"
    config.export_dir = temp_dir / "output" / "export"
    config.backup_dir = temp_dir / "backups"
    config.backup_retention_count = 3
    config.default_date_range = "1month"
    config.ensure_dirs()
    return config


@pytest.fixture
def test_db(test_config) -> "Database":
    """Provide a test database instance."""
    from tracker.database import Database
    return Database(test_config.db_path)


@pytest.fixture
def service(test_db) -> "InvoiceService":
    from tracker.service import InvoiceService
    return InvoiceService(test_db)


@pytest.fixture
def backup_service(test_config, test_db) -> "BackupService":
    from tracker.backup import BackupService
    return BackupService(test_config, test_db)


@pytest.fixture
def sample_supply():
    """INV-1: 100 Cloth sent out."""
    from models.invoice import NewSupplyInvoice, SupplyItem
    return NewSupplyInvoice(
        date="2024-01-10",
        invoice_number="INV-1",
        job_worker="Ravi Textiles",
        narration="First lot",
        items=[SupplyItem(goods_name="Cloth", quantity=100)],
    )


@pytest.fixture
def sample_receipt_items():
    """REC-1 lines: 60 finished and 10 damaged Cloth, tagged A and C."""
    from models.invoice import ReceiptItem
    return [
        ReceiptItem(
            goods_name="Cloth", finished_quantity=60, damaged_quantity=10, attributes=["A", "C"],
        )
    ]


@pytest.fixture
def supply_in_db(service, sample_supply):
    """INV-1 stored via the service."""
    return service.create_supply_invoice(sample_supply)


@pytest.fixture
def receipt_in_db(service, supply_in_db, sample_receipt_items):
    """REC-1 stored against INV-1."""
    from models.invoice import NewReceiptInvoice
    return service.create_receipt_invoice(NewReceiptInvoice(
        date="2024-01-20",
        receipt_invoice_number="REC-1",
        supply_invoice_id=supply_in_db.id,
        supply_invoice_number=supply_in_db.invoice_number,
        items=sample_receipt_items,
    ))


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "api: API tests")
