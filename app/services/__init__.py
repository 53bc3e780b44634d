"""
app/services package marker.
"""

from app.services.filter_options_service import FilterOptionsService
from app.services.query_executor import QueryExecutor
from app.services.stats_service import StatsService
from app.services.transaction_import_service import CSVImportError, TransactionImportService

__all__ = [
    "CSVImportError",
    "FilterOptionsService",
    "QueryExecutor",
    "StatsService",
    "TransactionImportService",
]
