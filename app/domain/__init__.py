"""
app/domain package marker.
"""

from app.domain.transactions import (
    FilterOptions,
    FilterSpecification,
    ImportProgress,
    ImportSummary,
    PageRequest,
    SortSpecification,
    StatsSummary,
    TransactionInput,
    TransactionPage,
    TransactionQuery,
)

__all__ = [
    "FilterOptions",
    "FilterSpecification",
    "ImportProgress",
    "ImportSummary",
    "PageRequest",
    "SortSpecification",
    "StatsSummary",
    "TransactionInput",
    "TransactionPage",
    "TransactionQuery",
]
