"""
Model package exports.

Import all SQLAlchemy models here so metadata registration and Alembic
autogeneration work without extra imports.
"""

from db.models.csv_upload import CsvUpload, CsvUploadStatus
from db.models.transaction import Transaction

__all__ = [
    "CsvUpload",
    "CsvUploadStatus",
    "Transaction",
]
