"""
Configuration for the collection archiver
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigError


@dataclass(slots=True)
class ArchiverConfig:
    """Configuration for the collection archiver service"""

    database_url: str
    table: str
    storage_url: str
    timestamp_column: str = "created_at"
    blob_token: Optional[str] = None

    # Records older than this are archived
    retention: timedelta = timedelta(days=30)
    # Pause between two archived days
    delay: timedelta = timedelta(seconds=30)

    delete: bool = False  # Remove records from the table once archived
    ignore_existing: bool = False  # Treat an existing archive file as complete
    fetch_size: int = 1000  # Rows per server-side cursor round trip


def _get_database_url() -> str:
    """Get database URL, following DB_ENV_VARIABLE when the name is dynamic.

    Also fixes postgres:// to postgresql:// for Python compatibility.
    """
    db_env_var_name = os.getenv("DB_ENV_VARIABLE", "DATABASE_URL")
    database_url = os.getenv(db_env_var_name)

    if not database_url:
        raise ConfigError(f"{db_env_var_name} is required for archiver service (specified by DB_ENV_VARIABLE={db_env_var_name})")

    if database_url.startswith("postgres://"):
        database_url = database_url.replace("postgres://", "postgresql://", 1)

    return database_url


def _parse_int(value: Optional[str], default: int) -> int:
    """Parse integer from environment variable"""
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _parse_bool(value: Optional[str], default: bool = False) -> bool:
    """Parse boolean from environment variable"""
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load() -> ArchiverConfig:
    """Load configuration from environment variables"""
    load_dotenv(Path(".env"), override=False)

    database_url = _get_database_url()

    table = os.getenv("ARCHIVER_TABLE")
    if not table:
        raise ConfigError("ARCHIVER_TABLE is required for archiver service")

    storage_url = os.getenv("STORAGE_URL")
    if not storage_url:
        raise ConfigError("STORAGE_URL must be set (e.g. file:///var/archive, blob://archives, noop://)")

    retention_days = _parse_int(os.getenv("ARCHIVER_RETENTION_DAYS"), 30)
    if retention_days < 0:
        raise ConfigError("ARCHIVER_RETENTION_DAYS must not be negative")

    return ArchiverConfig(
        database_url=database_url,
        table=table,
        storage_url=storage_url,
        timestamp_column=os.getenv("ARCHIVER_TIMESTAMP_COLUMN") or "created_at",
        blob_token=os.getenv("VERCEL_BLOB_RW_TOKEN") or None,
        retention=timedelta(days=retention_days),
        delay=timedelta(seconds=_parse_int(os.getenv("ARCHIVER_DELAY_SECONDS"), 30)),
        delete=_parse_bool(os.getenv("ARCHIVER_DELETE"), False),
        ignore_existing=_parse_bool(os.getenv("ARCHIVER_IGNORE_EXISTING"), False),
        fetch_size=_parse_int(os.getenv("ARCHIVER_FETCH_SIZE"), 1000),
    )
