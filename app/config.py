"""
app/config.py

Application-level configuration helpers.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache

from db.config import load_env_files


@lru_cache(maxsize=1)
def _load_env_once() -> None:
    """
    Ensure project `.env` files are loaded once before reading app settings.
    """

    load_env_files()


def _get_bool_env(name: str, default: bool) -> bool:
    """
    Read a boolean from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _get_int_env(name: str, default: int) -> int:
    """
    Read an integer from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _get_float_env(name: str, default: float) -> float:
    """
    Read a float from environment variables with safe fallback.
    """

    _load_env_once()
    raw_value = os.getenv(name)
    if raw_value is None:
        return default
    try:
        return float(raw_value)
    except ValueError:
        return default


@dataclass(frozen=True)
class QuerySettings:
    """
    Read-path settings for transaction search and statistics.
    """

    timeout_seconds: float = 15.0
    default_page_size: int = 10
    max_page_size: int = 100


@dataclass(frozen=True)
class CacheSettings:
    """
    TTL cache behaviour for aggregate results.

    A sweep interval of zero or less disables the periodic purge job.
    """

    stats_ttl_seconds: float = 30.0
    sweep_interval_seconds: float = 300.0


@dataclass(frozen=True)
class CSVIngestionSettings:
    """
    Runtime settings for CSV ingestion.
    """

    batch_size: int = 1000
    max_upload_bytes: int = 500 * 1024 * 1024
    log_dropped_rows: bool = True


@lru_cache(maxsize=1)
def get_query_settings() -> QuerySettings:
    """
    Return cached read-path settings from environment variables.
    """

    default_page_size = max(1, _get_int_env("DEFAULT_PAGE_SIZE", 10))
    return QuerySettings(
        timeout_seconds=max(0.1, _get_float_env("QUERY_TIMEOUT_SECONDS", 15.0)),
        default_page_size=default_page_size,
        max_page_size=max(default_page_size, _get_int_env("MAX_PAGE_SIZE", 100)),
    )


@lru_cache(maxsize=1)
def get_cache_settings() -> CacheSettings:
    """
    Return cached TTL cache settings from environment variables.
    """

    return CacheSettings(
        stats_ttl_seconds=max(0.0, _get_float_env("STATS_CACHE_TTL_SECONDS", 30.0)),
        sweep_interval_seconds=_get_float_env("CACHE_SWEEP_INTERVAL_SECONDS", 300.0),
    )


@lru_cache(maxsize=1)
def get_csv_ingestion_settings() -> CSVIngestionSettings:
    """
    Return cached CSV ingestion settings from environment variables.
    """

    return CSVIngestionSettings(
        batch_size=max(1, _get_int_env("CSV_INGEST_BATCH_SIZE", 1000)),
        max_upload_bytes=max(1, _get_int_env("CSV_UPLOAD_MAX_BYTES", 500 * 1024 * 1024)),
        log_dropped_rows=_get_bool_env("CSV_INGEST_LOG_DROPPED_ROWS", True),
    )
