"""
db/models/csv_upload.py

Upload record tracking one CSV ingestion run from start to finish.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import BigInteger, DateTime, Index, Integer, String, Text, Uuid, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class CsvUploadStatus:
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


class CsvUpload(Base):
    """
    One ingestion attempt.

    Created with status ``processing`` before the pipeline starts and moved to
    ``completed`` (even when some rows or batches failed) or ``failed`` when
    the pipeline itself raised.
    """

    __tablename__ = "csv_uploads"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(as_uuid=True),
        primary_key=True,
        default=uuid.uuid4,
    )
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    imported_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    status: Mapped[str] = mapped_column(
        String(32),
        nullable=False,
        default=CsvUploadStatus.PROCESSING,
        comment="processing, completed, failed",
    )
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploaded_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_csv_uploads_uploaded_at", "uploaded_at"),
        Index("ix_csv_uploads_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<CsvUpload id={self.id} file_name={self.file_name!r} "
            f"status={self.status!r} imported={self.imported_records}>"
        )
