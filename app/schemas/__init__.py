"""
app/schemas package marker.
"""

from app.schemas.csv_ingestion import (
    CSVImportSummaryResponse,
    CsvUploadListResponse,
    CsvUploadResponse,
)
from app.schemas.transactions import (
    FilterOptionsResponse,
    PaginationResponse,
    StatsResponse,
    TransactionListResponse,
)

__all__ = [
    "CSVImportSummaryResponse",
    "CsvUploadListResponse",
    "CsvUploadResponse",
    "FilterOptionsResponse",
    "PaginationResponse",
    "StatsResponse",
    "TransactionListResponse",
]
