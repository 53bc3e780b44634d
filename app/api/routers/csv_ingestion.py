"""
app/api/routers/csv_ingestion.py

CSV ingestion and upload-record HTTP endpoints.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, UploadFile, status

from app.api.dependencies import (
    get_csv_upload,
    get_import_service,
    get_upload_repository,
    read_upload_bytes,
    storage_http_error,
)
from app.config import get_csv_ingestion_settings
from app.schemas.csv_ingestion import (
    CSVImportSummaryResponse,
    CsvUploadListResponse,
    CsvUploadResponse,
)
from app.services.transaction_import_service import CSVImportError, TransactionImportService
from db.models.csv_upload import CsvUpload
from db.repositories.errors import StorageError
from db.repositories.upload_repository import CsvUploadRepository

router = APIRouter(tags=["ingestion"])


@router.post("/api/transactions/upload", response_model=CSVImportSummaryResponse)
def upload_transactions(
    file: UploadFile = Depends(get_csv_upload),
    uploaded_by: str | None = Query(default=None, alias="uploadedBy", max_length=255),
    import_service: TransactionImportService = Depends(get_import_service),
) -> CSVImportSummaryResponse:
    """
    Import one CSV file of transactions. Rows whose transaction ID already
    exists are skipped and not counted as imported.
    """

    settings = get_csv_ingestion_settings()
    try:
        content = read_upload_bytes(file, max_bytes=settings.max_upload_bytes)
    finally:
        file.file.close()

    try:
        upload, summary = import_service.import_upload(
            content=content,
            file_name=file.filename or "upload.csv",
            uploaded_by=uploaded_by,
        )
    except CSVImportError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except StorageError as exc:
        raise storage_http_error(exc, "Failed to upload transactions.") from exc

    return CSVImportSummaryResponse(
        success=summary.success,
        upload_id=upload.id,
        total_records=summary.total_records,
        imported=summary.imported,
        errors=summary.errors,
    )


@router.get("/api/uploads", response_model=CsvUploadListResponse)
def list_uploads(
    status_filter: str | None = Query(default=None, alias="status", description="Optional status filter"),
    limit: int = Query(default=50, ge=1, le=500, description="Max uploads returned"),
    repository: CsvUploadRepository = Depends(get_upload_repository),
) -> CsvUploadListResponse:
    try:
        uploads = repository.list_recent(limit=limit, status=status_filter)
    except StorageError as exc:
        raise storage_http_error(exc, "Failed to list uploads.") from exc
    return CsvUploadListResponse(uploads=[_to_upload_response(upload) for upload in uploads])


@router.get("/api/uploads/{upload_id}", response_model=CsvUploadResponse)
def get_upload(
    upload_id: UUID,
    repository: CsvUploadRepository = Depends(get_upload_repository),
) -> CsvUploadResponse:
    try:
        upload = repository.get(upload_id)
    except StorageError as exc:
        raise storage_http_error(exc, "Failed to fetch upload.") from exc
    if upload is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Upload not found: {upload_id}",
        )
    return _to_upload_response(upload)


def _to_upload_response(upload: CsvUpload) -> CsvUploadResponse:
    return CsvUploadResponse(
        upload_id=upload.id,
        file_name=upload.file_name,
        file_size=upload.file_size,
        status=upload.status,
        total_records=upload.total_records,
        imported_records=upload.imported_records,
        failed_records=upload.failed_records,
        error_message=upload.error_message,
        uploaded_by=upload.uploaded_by,
        uploaded_at=upload.uploaded_at,
        completed_at=upload.completed_at,
    )
