"""
Central configuration for the job-work inventory tracker.

All paths and tunables are defined here.
Override via environment variables or by passing a Config instance directly.

Settings priority (highest wins):
  1. Environment variables
  2. config/tracker_settings.json  (admin-editable, persisted)
  3. Hardcoded defaults in this file
"""
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

logger = logging.getLogger(__name__)

# Project root (directory containing this file)
PROJECT_ROOT = Path(__file__).parent

DEFAULT_OUTPUT_DIR  = PROJECT_ROOT / "output"
DEFAULT_DB_PATH     = DEFAULT_OUTPUT_DIR / "tracker.db"
DEFAULT_EXPORT_DIR  = DEFAULT_OUTPUT_DIR / "export"
DEFAULT_BACKUP_DIR  = PROJECT_ROOT / "backups"

# Env vars that pin a setting; the settings file never overrides these.
_ENV_KEYS = {
    "default_date_range":     "DEFAULT_DATE_RANGE",
    "backup_retention_count": "BACKUP_RETENTION_COUNT",
    "backup_dir":             "BACKUP_DIR",
    "export_dir":             "EXPORT_DIR",
}


@dataclass
class Config:
    # --- Storage ---
    db_path: Path = field(
        default_factory=lambda: Path(os.getenv("DB_PATH", str(DEFAULT_DB_PATH)))
    )

    # --- Output settings ---
    export_dir: Path = field(
        default_factory=lambda: Path(os.getenv("EXPORT_DIR", str(DEFAULT_EXPORT_DIR)))
    )

    # --- Reports ---
    # today | 1week | 15days | 1month | 6months
    default_date_range: str = field(
        default_factory=lambda: os.getenv("DEFAULT_DATE_RANGE", "1month")
    )
    recent_invoice_limit: int = 10

    # --- Backup settings ---
    backup_dir: Path = field(
        default_factory=lambda: Path(os.getenv("BACKUP_DIR", str(DEFAULT_BACKUP_DIR)))
    )
    backup_retention_count: int = field(
        default_factory=lambda: int(os.getenv("BACKUP_RETENTION_COUNT", "7"))
    )

    def __post_init__(self) -> None:
        """Overlay runtime-tunable settings from tracker_settings.json if present."""
        config_dir = Path(os.getenv("CONFIG_DIR", str(PROJECT_ROOT / "config")))
        settings_file = config_dir / "tracker_settings.json"
        if not settings_file.exists():
            return
        _type_map: dict[str, type] = {
            "default_date_range":     str,
            "recent_invoice_limit":   int,
            "backup_retention_count": int,
            "backup_dir":             Path,
            "export_dir":             Path,
        }
        try:
            with open(settings_file, encoding="utf-8") as f:
                overrides = {k: v for k, v in json.load(f).items() if not k.startswith("_")}
            for key, val in overrides.items():
                if key in _ENV_KEYS and os.getenv(_ENV_KEYS[key]) is not None:
                    continue
                if key in _type_map and hasattr(self, key):
                    setattr(self, key, _type_map[key](val))
        except (OSError, ValueError, TypeError) as exc:
            logger.warning("Failed to load tracker_settings.json: %s", exc)

    def ensure_dirs(self) -> None:
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.export_dir.mkdir(parents=True, exist_ok=True)
        self.backup_dir.mkdir(parents=True, exist_ok=True)
