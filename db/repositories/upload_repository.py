"""
Repository for CSV upload record lifecycle persistence and status lookup.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from db.models.csv_upload import CsvUpload, CsvUploadStatus
from db.repositories.errors import classify_storage_error


class CsvUploadRepository:
    """
    Each method runs and commits its own transaction, so status changes are
    visible to other readers while the import is still running.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    def create_processing(
        self,
        *,
        file_name: str,
        file_size: int,
        uploaded_by: str | None = None,
    ) -> CsvUpload:
        upload = CsvUpload(
            file_name=file_name,
            file_size=file_size,
            total_records=0,
            imported_records=0,
            failed_records=0,
            status=CsvUploadStatus.PROCESSING,
            uploaded_by=uploaded_by,
        )
        try:
            with self._session_factory() as session:
                with session.begin():
                    session.add(upload)
                    session.flush()
                    session.refresh(upload)
        except SQLAlchemyError as exc:
            raise classify_storage_error(exc) from exc
        return upload

    def get(self, upload_id: uuid.UUID) -> CsvUpload | None:
        try:
            with self._session_factory() as session:
                return session.get(CsvUpload, upload_id)
        except SQLAlchemyError as exc:
            raise classify_storage_error(exc) from exc

    def list_recent(self, *, limit: int = 50, status: str | None = None) -> list[CsvUpload]:
        stmt: Select[tuple[CsvUpload]] = select(CsvUpload)
        if status:
            stmt = stmt.where(CsvUpload.status == status)
        stmt = stmt.order_by(CsvUpload.uploaded_at.desc()).limit(max(1, limit))
        try:
            with self._session_factory() as session:
                return list(session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise classify_storage_error(exc) from exc

    def mark_completed(
        self,
        *,
        upload_id: uuid.UUID,
        total_records: int,
        imported_records: int,
        failed_records: int,
    ) -> CsvUpload | None:
        return self._update(
            upload_id,
            status=CsvUploadStatus.COMPLETED,
            total_records=total_records,
            imported_records=imported_records,
            failed_records=failed_records,
            error_message=None,
        )

    def mark_failed(
        self,
        *,
        upload_id: uuid.UUID,
        error_message: str,
    ) -> CsvUpload | None:
        return self._update(
            upload_id,
            status=CsvUploadStatus.FAILED,
            error_message=error_message,
        )

    def _update(self, upload_id: uuid.UUID, **changes: object) -> CsvUpload | None:
        try:
            with self._session_factory() as session:
                with session.begin():
                    upload = session.get(CsvUpload, upload_id)
                    if upload is None:
                        return None
                    for name, value in changes.items():
                        setattr(upload, name, value)
                    upload.completed_at = datetime.now(timezone.utc)
                return upload
        except SQLAlchemyError as exc:
            raise classify_storage_error(exc) from exc
