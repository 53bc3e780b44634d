"""
app/services/transaction_import_service.py

CSV ingestion pipeline for sales transactions.

    bytes / file path
      -> csv.DictReader (header row required, blank lines skipped)
      -> ColumnMapper.resolve(headers)            once per import
      -> batches of ``batch_size`` raw rows
           -> ColumnResolution.extract + TransactionRowCoercer.coerce per row
              (a row that cannot be mapped is dropped, nothing else happens)
           -> TransactionStore.insert_skip_duplicates(batch)
              (existing business ids are skipped and simply not counted)
           -> progress callback with cumulative counts
      -> TTL cache cleared

Batches are inserted one after another. When a batch insert fails every raw
row of that batch counts as an error and the next batch still runs; a lost
database connection aborts the import.
"""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Callable, Iterator, Sequence
from pathlib import Path

from app.cache import TTLCache
from app.domain.transactions import ImportProgress, ImportSummary, TransactionInput
from app.mappers.column_mapper import ColumnMapper, ColumnResolution, MissingRequiredColumnsError
from app.mappers.row_coercer import TransactionRowCoercer
from app.repositories.transaction_repository import TransactionStore
from db.models.csv_upload import CsvUpload
from db.repositories.errors import StorageConnectivityError, StorageError
from db.repositories.upload_repository import CsvUploadRepository

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 1000

ProgressCallback = Callable[[ImportProgress], None]


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class CSVImportError(ValueError):
    """
    Raised when the input as a whole cannot be parsed.
    """


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class TransactionImportService:
    """
    Parses delimited transaction data and inserts it in sequential batches.
    """

    def __init__(
        self,
        store: TransactionStore,
        cache: TTLCache,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        log_dropped_rows: bool = True,
        upload_repository: CsvUploadRepository | None = None,
        mapper: ColumnMapper | None = None,
        coercer: TransactionRowCoercer | None = None,
    ) -> None:
        self._store = store
        self._cache = cache
        self._batch_size = max(1, batch_size)
        self._log_dropped_rows = log_dropped_rows
        self._upload_repository = upload_repository
        self._mapper = mapper or ColumnMapper()
        self._coercer = coercer or TransactionRowCoercer()

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    def import_from_buffer(
        self,
        content: bytes,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> ImportSummary:
        """
        Import transactions from an in-memory UTF-8 CSV buffer.
        """

        resolution, rows = self._parse(content)
        return self._import_rows(resolution, rows, progress_callback=progress_callback)

    def import_from_path(
        self,
        path: str | Path,
        *,
        progress_callback: ProgressCallback | None = None,
    ) -> ImportSummary:
        """
        Import transactions from a CSV file on disk.
        """

        try:
            content = Path(path).read_bytes()
        except OSError as exc:
            raise CSVImportError(f"Unable to read CSV file {path}: {exc}") from exc
        return self.import_from_buffer(content, progress_callback=progress_callback)

    def import_upload(
        self,
        *,
        content: bytes,
        file_name: str,
        uploaded_by: str | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> tuple[CsvUpload, ImportSummary]:
        """
        Import a buffer while tracking the run in an upload record.

        The record is created as ``processing`` and ends ``completed`` (even
        when rows or batches failed) or ``failed`` with the error message when
        the import raised. The exception is re-raised after the record is
        updated.
        """

        if self._upload_repository is None:
            raise RuntimeError("import_upload requires an upload repository.")

        upload = self._upload_repository.create_processing(
            file_name=file_name,
            file_size=len(content),
            uploaded_by=uploaded_by,
        )
        try:
            summary = self.import_from_buffer(content, progress_callback=progress_callback)
        except Exception as exc:
            logger.error("CSV import failed upload_id=%s file=%r: %s", upload.id, file_name, exc)
            self._upload_repository.mark_failed(upload_id=upload.id, error_message=str(exc))
            raise

        completed = self._upload_repository.mark_completed(
            upload_id=upload.id,
            total_records=summary.total_records,
            imported_records=summary.imported,
            failed_records=summary.errors,
        )
        return completed or upload, summary

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _parse(self, content: bytes) -> tuple[ColumnResolution, list[dict[str, str | None]]]:
        try:
            text = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise CSVImportError("CSV must be UTF-8 encoded.") from exc

        reader = csv.DictReader(io.StringIO(text, newline=""), strict=True)
        try:
            headers = [header.strip() for header in (reader.fieldnames or [])]
            if not any(headers):
                raise CSVImportError("CSV header row is missing.")
            reader.fieldnames = headers

            try:
                resolution = self._mapper.resolve(headers)
            except MissingRequiredColumnsError as exc:
                raise CSVImportError(str(exc)) from exc

            rows: list[dict[str, str | None]] = []
            for raw_row in reader:
                if None in raw_row or any(value is None for value in raw_row.values()):
                    raise CSVImportError(
                        f"Invalid record length on line {reader.line_num}: "
                        f"expected {len(headers)} columns."
                    )
                rows.append(raw_row)
        except csv.Error as exc:
            raise CSVImportError(f"Invalid CSV format: {exc}") from exc

        return resolution, rows

    def _import_rows(
        self,
        resolution: ColumnResolution,
        rows: Sequence[dict[str, str | None]],
        *,
        progress_callback: ProgressCallback | None,
    ) -> ImportSummary:
        total_records = len(rows)
        imported = 0
        errors = 0

        try:
            for start, batch in _batches(rows, self._batch_size):
                records = self._map_batch(resolution, batch, first_row_number=start + 2)
                try:
                    imported += self._store.insert_skip_duplicates(records)
                except StorageConnectivityError:
                    raise
                except StorageError as exc:
                    errors += len(batch)
                    logger.warning(
                        "CSV batch insert failed rows=%d-%d: %s",
                        start + 1,
                        start + len(batch),
                        exc,
                    )

                self._notify(
                    progress_callback,
                    ImportProgress(
                        processed=min(start + self._batch_size, total_records),
                        total=total_records,
                        imported=imported,
                        errors=errors,
                    ),
                )
        except Exception:
            if imported:
                self._cache.clear()
            raise

        self._cache.clear()
        logger.info(
            "CSV import complete total=%d imported=%d errors=%d",
            total_records,
            imported,
            errors,
        )
        return ImportSummary(total_records=total_records, imported=imported, errors=errors)

    def _map_batch(
        self,
        resolution: ColumnResolution,
        batch: Sequence[dict[str, str | None]],
        *,
        first_row_number: int,
    ) -> list[TransactionInput]:
        records: list[TransactionInput] = []
        for row_number, raw_row in enumerate(batch, start=first_row_number):
            try:
                records.append(self._coercer.coerce(resolution.extract(raw_row)))
            except ValueError as exc:
                # RowMappingError is a ValueError; any per-row parse failure drops the row.
                if self._log_dropped_rows:
                    logger.warning("CSV row dropped line=%s: %s", row_number, exc)
        return records

    @staticmethod
    def _notify(callback: ProgressCallback | None, progress: ImportProgress) -> None:
        if callback is None:
            return
        # Progress reporting is best-effort; the import itself must continue.
        try:
            callback(progress)
        except Exception as exc:  # noqa: BLE001
            logger.warning("CSV import progress callback failed: %s", exc)


def _batches(
    rows: Sequence[dict[str, str | None]],
    size: int,
) -> Iterator[tuple[int, Sequence[dict[str, str | None]]]]:
    for start in range(0, len(rows), size):
        yield start, rows[start : start + size]
