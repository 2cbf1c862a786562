# src/noa_api/scripts/migrate.py
"""Apply Alembic migrations up to head for the configured database."""
from __future__ import annotations

import logging
from pathlib import Path

from alembic import command
from alembic.config import Config

from noa_api.core.settings import settings

logger = logging.getLogger(__name__)

MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"


def build_config(url: str | None = None) -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(MIGRATIONS_DIR))
    cfg.set_main_option("sqlalchemy.url", url or settings.database_url_sync)
    return cfg


def run_upgrade_head(url: str | None = None) -> None:
    logger.info("Upgrading database schema to head")
    command.upgrade(build_config(url), "head")


if __name__ == "__main__":
    logging.basicConfig(level=settings.log_level.upper())
    run_upgrade_head()
