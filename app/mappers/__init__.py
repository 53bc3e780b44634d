"""
app/mappers package marker.
"""

from app.mappers.column_mapper import (
    REQUIRED_COLUMNS,
    TRANSACTION_COLUMN_ALIASES,
    ColumnMapper,
    ColumnResolution,
    MissingRequiredColumnsError,
)
from app.mappers.row_coercer import RowMappingError, TransactionRowCoercer

__all__ = [
    "REQUIRED_COLUMNS",
    "TRANSACTION_COLUMN_ALIASES",
    "ColumnMapper",
    "ColumnResolution",
    "MissingRequiredColumnsError",
    "RowMappingError",
    "TransactionRowCoercer",
]
