"""
Repository layer exports.
"""

from db.repositories.errors import (
    StorageConnectivityError,
    StorageError,
    StorageTimeoutError,
    StorageWriteError,
    classify_storage_error,
)
from db.repositories.upload_repository import CsvUploadRepository

__all__ = [
    "CsvUploadRepository",
    "StorageConnectivityError",
    "StorageError",
    "StorageTimeoutError",
    "StorageWriteError",
    "classify_storage_error",
]
