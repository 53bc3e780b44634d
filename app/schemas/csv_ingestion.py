"""
app/schemas/csv_ingestion.py

Response schemas for CSV ingestion and upload-record endpoints.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class CSVImportSummaryResponse(BaseModel):
    """
    API response model for a finished CSV import.
    """

    message: str = "File uploaded and processed successfully"
    success: bool = True
    upload_id: UUID | None = None
    total_records: int = Field(..., ge=0)
    imported: int = Field(..., ge=0)
    errors: int = Field(..., ge=0)


class CsvUploadResponse(BaseModel):
    upload_id: UUID
    file_name: str
    file_size: int
    status: str
    total_records: int
    imported_records: int
    failed_records: int
    error_message: str | None = None
    uploaded_by: str | None = None
    uploaded_at: datetime | None = None
    completed_at: datetime | None = None


class CsvUploadListResponse(BaseModel):
    uploads: list[CsvUploadResponse] = Field(default_factory=list)
