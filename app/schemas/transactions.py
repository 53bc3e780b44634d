"""
app/schemas/transactions.py

Response schemas for transaction search, statistics and filter options.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class PaginationResponse(BaseModel):
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total_count: int = Field(..., ge=0)
    total_pages: int = Field(..., ge=0)


class TransactionListResponse(BaseModel):
    """
    API response model for one page of transactions.

    ``degraded`` is set when the query deadline elapsed and the empty page
    replaces the real result.
    """

    data: list[dict[str, Any]] = Field(default_factory=list)
    pagination: PaginationResponse
    degraded: bool = False


class StatsResponse(BaseModel):
    total_units: int
    total_amount: float
    total_discount: float


class FilterOptionsResponse(BaseModel):
    regions: list[str] = Field(default_factory=list)
    genders: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    payment_methods: list[str] = Field(default_factory=list)
    age_min: int
    age_max: int
    tags: list[str] = Field(default_factory=list)
