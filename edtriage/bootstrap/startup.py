from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from alembic import command
from alembic.config import Config

from edtriage.config import LOG_DIR, Settings, ensure_runtime_dirs, settings

MIGRATIONS_DIR = Path(__file__).resolve().parents[1] / "infrastructure" / "db" / "migrations"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(log_dir: Path = LOG_DIR, level: str = settings.log_level) -> Path:
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / "edtriage.log"
    handler = RotatingFileHandler(log_path, maxBytes=2_000_000, backupCount=3, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    if not any(getattr(existing, "baseFilename", None) == handler.baseFilename for existing in root_logger.handlers):
        root_logger.addHandler(handler)
    else:
        handler.close()
    return log_path


def alembic_config(database_url: str) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def run_migrations(database_url: str) -> None:
    logger = logging.getLogger(__name__)
    try:
        command.upgrade(alembic_config(database_url), "head")
    except Exception:
        logger.exception("Failed to run migrations (migrations: %s)", MIGRATIONS_DIR)
        raise
    logger.info("Database schema is at head")


def initialize_database(config: Settings = settings) -> Path:
    """Create runtime directories, install file logging and migrate the store."""
    ensure_runtime_dirs()
    log_path = setup_logging(LOG_DIR, config.log_level)
    run_migrations(config.database_url)
    return log_path
