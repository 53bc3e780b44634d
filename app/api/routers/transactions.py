"""
app/api/routers/transactions.py

Transaction search, statistics and filter-option endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.dependencies import (
    get_filter_options_service,
    get_filter_specification,
    get_query_executor,
    get_stats_service,
    storage_http_error,
)
from app.config import get_query_settings
from app.domain.transactions import (
    FilterSpecification,
    PageRequest,
    SortSpecification,
    TransactionQuery,
)
from app.schemas.transactions import (
    FilterOptionsResponse,
    PaginationResponse,
    StatsResponse,
    TransactionListResponse,
)
from app.services.filter_options_service import FilterOptionsService
from app.services.query_executor import QueryExecutor
from app.services.stats_service import StatsService
from db.repositories.errors import StorageError

router = APIRouter(prefix="/api/transactions", tags=["transactions"])


@router.get("", response_model=TransactionListResponse)
def list_transactions(
    page: int = Query(default=1, ge=1),
    page_size: int | None = Query(default=None, alias="pageSize", ge=1),
    search: str | None = Query(default=None, description="Phone or customer-name prefix"),
    sort_by: str | None = Query(default="customerName", alias="sortBy"),
    sort_order: str | None = Query(default="asc", alias="sortOrder"),
    filters: FilterSpecification = Depends(get_filter_specification),
    executor: QueryExecutor = Depends(get_query_executor),
) -> TransactionListResponse:
    """
    Return one page of transactions matching the filters and search term.
    """

    settings = get_query_settings()
    if page_size is not None and page_size > settings.max_page_size:
        raise HTTPException(
            status_code=422,
            detail=f"pageSize must be at most {settings.max_page_size}.",
        )
    size = page_size or settings.default_page_size
    query = TransactionQuery(
        filters=filters,
        search=search,
        sort=SortSpecification.parse(sort_by, sort_order),
        page=PageRequest(page=page, page_size=size),
    )

    try:
        result = executor.run(query)
    except StorageError as exc:
        raise storage_http_error(exc, "Failed to fetch transactions.") from exc

    return TransactionListResponse(
        data=result.records,
        pagination=PaginationResponse(
            page=result.pagination.page,
            page_size=result.pagination.page_size,
            total_count=result.pagination.total_count,
            total_pages=result.pagination.total_pages,
        ),
        degraded=result.degraded,
    )


@router.get("/filters", response_model=FilterOptionsResponse)
def get_filter_options(
    service: FilterOptionsService = Depends(get_filter_options_service),
) -> FilterOptionsResponse:
    try:
        options = service.get_filter_options()
    except StorageError as exc:
        raise storage_http_error(exc, "Failed to fetch filter options.") from exc

    return FilterOptionsResponse(
        regions=options.regions,
        genders=options.genders,
        categories=options.categories,
        payment_methods=options.payment_methods,
        age_min=options.age_min,
        age_max=options.age_max,
        tags=options.tags,
    )


@router.get("/stats", response_model=StatsResponse)
def get_stats(
    filters: FilterSpecification = Depends(get_filter_specification),
    service: StatsService = Depends(get_stats_service),
) -> StatsResponse:
    try:
        stats = service.get_stats(filters)
    except StorageError as exc:
        raise storage_http_error(exc, "Failed to fetch statistics.") from exc

    return StatsResponse(
        total_units=stats.total_units,
        total_amount=stats.total_amount,
        total_discount=stats.total_discount,
    )

