"""
app/api/dependencies.py

Shared FastAPI dependencies: request parsing and service composition.

Every service is built once per process and shares the same TTL cache, so an
import that clears the cache also invalidates cached statistics and filter
options. Tests replace these factories through ``app.dependency_overrides``.
"""

from __future__ import annotations

from datetime import date
from functools import lru_cache

from fastapi import Depends, File, HTTPException, Query, UploadFile, status

from app.cache import TTLCache
from app.config import get_cache_settings, get_csv_ingestion_settings, get_query_settings
from app.domain.transactions import FilterSpecification
from app.repositories.transaction_repository import TransactionRepository, TransactionStore
from app.services.filter_options_service import FilterOptionsService
from app.services.query_executor import QueryExecutor
from app.services.stats_service import StatsService
from app.services.transaction_import_service import TransactionImportService
from db.repositories.errors import StorageConnectivityError, StorageError
from db.repositories.upload_repository import CsvUploadRepository
from db.session import get_session_factory

CSV_CONTENT_TYPES = {
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
}

_READ_CHUNK_BYTES = 1024 * 1024


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


@lru_cache(maxsize=1)
def get_ttl_cache() -> TTLCache:
    return TTLCache(default_ttl_seconds=get_cache_settings().stats_ttl_seconds)


@lru_cache(maxsize=1)
def get_transaction_store() -> TransactionStore:
    return TransactionRepository(get_session_factory())


@lru_cache(maxsize=1)
def get_upload_repository() -> CsvUploadRepository:
    return CsvUploadRepository(get_session_factory())


def get_query_executor(
    store: TransactionStore = Depends(get_transaction_store),
) -> QueryExecutor:
    return QueryExecutor(store, timeout_seconds=get_query_settings().timeout_seconds)


def get_stats_service(
    executor: QueryExecutor = Depends(get_query_executor),
    cache: TTLCache = Depends(get_ttl_cache),
) -> StatsService:
    return StatsService(executor, cache, ttl_seconds=get_cache_settings().stats_ttl_seconds)


def get_filter_options_service(
    store: TransactionStore = Depends(get_transaction_store),
    cache: TTLCache = Depends(get_ttl_cache),
) -> FilterOptionsService:
    return FilterOptionsService(store, cache, ttl_seconds=get_cache_settings().stats_ttl_seconds)


def get_import_service(
    store: TransactionStore = Depends(get_transaction_store),
    cache: TTLCache = Depends(get_ttl_cache),
    upload_repository: CsvUploadRepository = Depends(get_upload_repository),
) -> TransactionImportService:
    settings = get_csv_ingestion_settings()
    return TransactionImportService(
        store,
        cache,
        batch_size=settings.batch_size,
        log_dropped_rows=settings.log_dropped_rows,
        upload_repository=upload_repository,
    )


# ---------------------------------------------------------------------------
# Request parsing
# ---------------------------------------------------------------------------


def get_filter_specification(
    regions: list[str] | None = Query(default=None, description="Customer regions (repeatable)"),
    genders: list[str] | None = Query(default=None, description="Genders (repeatable)"),
    categories: list[str] | None = Query(default=None, description="Product categories (repeatable)"),
    tags: list[str] | None = Query(default=None, description="Tags, substring match (repeatable)"),
    payment_methods: list[str] | None = Query(
        default=None,
        alias="paymentMethods",
        description="Payment methods (repeatable)",
    ),
    age_min: int | None = Query(default=None, alias="ageMin"),
    age_max: int | None = Query(default=None, alias="ageMax"),
    date_from: date | None = Query(default=None, alias="dateFrom"),
    date_to: date | None = Query(default=None, alias="dateTo"),
) -> FilterSpecification:
    """
    Parse filter query parameters. Age and date ranges apply only when both
    bounds are present.
    """

    return FilterSpecification.from_params(
        regions=regions,
        genders=genders,
        categories=categories,
        payment_methods=payment_methods,
        tags=tags,
        age_min=age_min,
        age_max=age_max,
        date_from=date_from,
        date_to=date_to,
    )


def get_csv_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the uploaded file is a CSV by extension or MIME type.
    """

    filename = (file.filename or "").strip().lower()
    content_type = (file.content_type or "").strip().lower()

    is_csv_filename = filename.endswith(".csv")
    is_csv_content_type = content_type in CSV_CONTENT_TYPES

    if not is_csv_filename and not is_csv_content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only CSV files are allowed.",
        )

    return file


def read_upload_bytes(file: UploadFile, *, max_bytes: int) -> bytes:
    """
    Read an upload into memory, rejecting it once it grows past ``max_bytes``.
    """

    chunks: list[bytes] = []
    size = 0
    while True:
        chunk = file.file.read(_READ_CHUNK_BYTES)
        if not chunk:
            break
        size += len(chunk)
        if size > max_bytes:
            raise HTTPException(
                status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
                detail=f"CSV file exceeds the {max_bytes} byte upload limit.",
            )
        chunks.append(chunk)
    return b"".join(chunks)


def storage_http_error(exc: StorageError, detail: str) -> HTTPException:
    """
    Translate a storage failure into the HTTP error returned to clients.
    """

    if isinstance(exc, StorageConnectivityError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable.",
        )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=detail,
    )
