"""
app/domain/transactions.py

Value objects shared by the read path (search, stats, filter options) and the
CSV ingestion pipeline.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Iterable, Mapping


def _normalize_values(values: Iterable[str] | None) -> tuple[str, ...] | None:
    """
    Strip, drop blanks and dedupe a multi-select value list, keeping first-seen
    order. Returns None when nothing is left so the sub-filter is absent.
    """

    if values is None:
        return None
    seen: dict[str, None] = {}
    for value in values:
        if value is None:
            continue
        stripped = str(value).strip()
        if stripped:
            seen.setdefault(stripped, None)
    return tuple(seen) or None


@dataclass(frozen=True)
class AgeRange:
    """Inclusive age bounds."""

    minimum: int
    maximum: int


@dataclass(frozen=True)
class DateRange:
    """Inclusive calendar-date bounds."""

    start: date
    end: date


@dataclass(frozen=True)
class FilterSpecification:
    """
    Conjunctive transaction filter.

    Every sub-filter is either absent (None) or carries at least one value.
    Sub-filters combine with AND; values inside one multi-select sub-filter
    combine with OR.
    """

    regions: tuple[str, ...] | None = None
    genders: tuple[str, ...] | None = None
    categories: tuple[str, ...] | None = None
    payment_methods: tuple[str, ...] | None = None
    tags: tuple[str, ...] | None = None
    age_range: AgeRange | None = None
    date_range: DateRange | None = None

    @classmethod
    def from_params(
        cls,
        *,
        regions: Iterable[str] | None = None,
        genders: Iterable[str] | None = None,
        categories: Iterable[str] | None = None,
        payment_methods: Iterable[str] | None = None,
        tags: Iterable[str] | None = None,
        age_min: int | None = None,
        age_max: int | None = None,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> FilterSpecification:
        """
        Build a specification from loosely structured request values.

        Ranges are only applied when both bounds are supplied.
        """

        age_range = None
        if age_min is not None and age_max is not None:
            age_range = AgeRange(minimum=int(age_min), maximum=int(age_max))

        date_range = None
        if date_from is not None and date_to is not None:
            date_range = DateRange(start=date_from, end=date_to)

        return cls(
            regions=_normalize_values(regions),
            genders=_normalize_values(genders),
            categories=_normalize_values(categories),
            payment_methods=_normalize_values(payment_methods),
            tags=_normalize_values(tags),
            age_range=age_range,
            date_range=date_range,
        )

    def is_empty(self) -> bool:
        return not self.to_cache_payload()

    def to_cache_payload(self) -> dict[str, Any]:
        """
        Canonical mapping for cache keys: absent sub-filters omitted,
        multi-select values sorted, dates rendered as ISO strings.
        """

        payload: dict[str, Any] = {}
        for name in ("regions", "genders", "categories", "payment_methods", "tags"):
            values = getattr(self, name)
            if values:
                payload[name] = sorted(values)
        if self.age_range is not None:
            payload["age_range"] = [self.age_range.minimum, self.age_range.maximum]
        if self.date_range is not None:
            payload["date_range"] = [
                self.date_range.start.isoformat(),
                self.date_range.end.isoformat(),
            ]
        return payload


class SortField(str, Enum):
    DATE = "date"
    QUANTITY = "quantity"
    CUSTOMER_NAME = "customerName"


class SortOrder(str, Enum):
    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpecification:
    field: SortField = SortField.CUSTOMER_NAME
    order: SortOrder = SortOrder.ASC

    @classmethod
    def parse(cls, sort_by: str | None, sort_order: str | None) -> SortSpecification:
        """
        Resolve raw sort parameters. An unknown field falls back to
        customerName ascending; an unknown order falls back to ascending.
        """

        try:
            sort_field = SortField(sort_by)
        except ValueError:
            return cls()

        normalized_order = (sort_order or "").strip().lower()
        try:
            order = SortOrder(normalized_order)
        except ValueError:
            order = SortOrder.ASC
        return cls(field=sort_field, order=order)


@dataclass(frozen=True)
class PageRequest:
    """1-based page number plus page size."""

    page: int = 1
    page_size: int = 10

    def __post_init__(self) -> None:
        if self.page < 1:
            raise ValueError("page must be >= 1")
        if self.page_size < 1:
            raise ValueError("page_size must be >= 1")

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def limit(self) -> int:
        return self.page_size


@dataclass(frozen=True)
class TransactionQuery:
    """Full read request: filters, free-text search, sort and page."""

    filters: FilterSpecification = field(default_factory=FilterSpecification)
    search: str | None = None
    sort: SortSpecification = field(default_factory=SortSpecification)
    page: PageRequest = field(default_factory=PageRequest)


@dataclass(frozen=True)
class PaginationMeta:
    page: int
    page_size: int
    total_count: int
    total_pages: int

    @classmethod
    def build(cls, page: PageRequest, total_count: int) -> PaginationMeta:
        return cls(
            page=page.page,
            page_size=page.page_size,
            total_count=total_count,
            total_pages=math.ceil(total_count / page.page_size),
        )


@dataclass(frozen=True)
class TransactionPage:
    """
    One page of normalized transaction rows.

    ``degraded`` is True when the deadline tripped and the empty page stands in
    for the real result.
    """

    records: list[dict[str, Any]]
    pagination: PaginationMeta
    degraded: bool = False


@dataclass(frozen=True)
class SalesTotals:
    """Raw aggregate sums as returned by storage."""

    quantity: int
    total_amount: Decimal
    final_amount: Decimal


@dataclass(frozen=True)
class StatsSummary:
    total_units: int
    total_amount: float
    total_discount: float

    @classmethod
    def empty(cls) -> StatsSummary:
        return cls(total_units=0, total_amount=0.0, total_discount=0.0)


@dataclass(frozen=True)
class FilterOptions:
    regions: list[str]
    genders: list[str]
    categories: list[str]
    payment_methods: list[str]
    age_min: int
    age_max: int
    tags: list[str]


@dataclass(frozen=True)
class TransactionInput:
    """
    Normalized transaction prepared for insertion.
    """

    transaction_id: str
    date: date
    customer_id: str
    customer_name: str
    phone_number: str
    gender: str
    age: int
    customer_region: str
    customer_type: str | None
    product_id: str
    product_name: str | None
    brand: str | None
    product_category: str
    tags: str | None
    quantity: int
    price_per_unit: Decimal
    discount_percentage: Decimal
    total_amount: Decimal
    final_amount: Decimal
    payment_method: str
    order_status: str | None
    delivery_type: str | None
    store_id: str | None
    store_location: str | None
    salesperson_id: str | None
    employee_name: str

    def to_payload(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in self.__dataclass_fields__}


@dataclass(frozen=True)
class ImportProgress:
    """Cumulative counts emitted after each batch."""

    processed: int
    total: int
    imported: int
    errors: int


@dataclass(frozen=True)
class ImportSummary:
    """
    End-of-run ingestion summary.
    """

    total_records: int
    imported: int
    errors: int
    success: bool = True

    def as_dict(self) -> Mapping[str, Any]:
        return {
            "success": self.success,
            "total_records": self.total_records,
            "imported": self.imported,
            "errors": self.errors,
        }
