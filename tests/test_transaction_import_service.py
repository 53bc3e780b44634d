"""
tests/test_transaction_import_service.py

CSV ingestion pipeline: end-to-end against SQLite plus failure handling with
fake stores.
"""

from __future__ import annotations

import pytest
from sqlalchemy import func, select

from app.cache import TTLCache
from app.domain.transactions import ImportProgress, SortSpecification
from app.mappers.row_coercer import TransactionRowCoercer
from app.repositories.transaction_repository import TransactionRepository, TransactionStore
from app.services.transaction_import_service import CSVImportError, TransactionImportService
from db.models.csv_upload import CsvUploadStatus
from db.models.transaction import Transaction
from db.repositories.errors import StorageConnectivityError, StorageWriteError
from db.repositories.upload_repository import CsvUploadRepository


class ScriptedStore(TransactionStore):
    """Returns or raises one scripted outcome per insert call."""

    def __init__(self, outcomes: list[object]) -> None:
        self.outcomes = list(outcomes)
        self.batches: list[list[str]] = []

    def fetch_rows(self, predicate, sort, *, offset, limit, timeout_seconds=None):
        return []

    def count(self, predicate, *, timeout_seconds=None):
        return 0

    def sum_totals(self, predicate, *, timeout_seconds=None):
        raise NotImplementedError

    def distinct_values(self, field_name):
        return []

    def age_bounds(self):
        return None, None

    def tag_values(self):
        return []

    def insert_skip_duplicates(self, rows):
        self.batches.append([row.transaction_id for row in rows])
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def _count_rows(session_factory) -> int:
    with session_factory() as session:
        return session.scalar(select(func.count()).select_from(Transaction))


@pytest.fixture()
def cache() -> TTLCache:
    return TTLCache()


@pytest.fixture()
def service(repository: TransactionRepository, cache: TTLCache, session_factory) -> TransactionImportService:
    return TransactionImportService(
        repository,
        cache,
        upload_repository=CsvUploadRepository(session_factory),
    )


class TestEndToEnd:
    def test_duplicates_skipped_and_bad_age_defaults_to_zero(
        self,
        service: TransactionImportService,
        repository: TransactionRepository,
        make_transaction,
        make_csv,
        make_row,
    ) -> None:
        repository.insert_skip_duplicates([make_transaction("T1"), make_transaction("T3")])
        content = make_csv(make_row("T1"), make_row("T2", age="unknown"), make_row("T3"))

        summary = service.import_from_buffer(content)

        assert summary.as_dict() == {"success": True, "total_records": 3, "imported": 1, "errors": 0}
        rows = repository.fetch_rows(Transaction.transaction_id == "T2", SortSpecification(), offset=0, limit=1)
        assert rows[0]["age"] == 0

    def test_reimport_is_idempotent(self, service, session_factory, make_csv, make_row) -> None:
        content = make_csv(make_row("A1"), make_row("A2"), make_row("A3"))

        first = service.import_from_buffer(content)
        second = service.import_from_buffer(content)

        assert first.imported == 3
        assert second.imported == 0
        assert second.errors == 0
        assert _count_rows(session_factory) == 3

    def test_duplicate_ids_within_file_keep_first(self, service, repository, make_csv, make_row) -> None:
        content = make_csv(make_row("D1", quantity="7"), make_row("D1", quantity="9"))

        summary = service.import_from_buffer(content)

        assert summary.imported == 1
        rows = repository.fetch_rows(Transaction.transaction_id == "D1", SortSpecification(), offset=0, limit=5)
        assert [row["quantity"] for row in rows] == [7]

    def test_rows_without_id_are_dropped_silently(self, service, session_factory, make_csv, make_row) -> None:
        content = make_csv(make_row("K1"), make_row(""), make_row("K2"))

        summary = service.import_from_buffer(content)

        assert (summary.total_records, summary.imported, summary.errors) == (3, 2, 0)
        assert _count_rows(session_factory) == 2

    def test_oversized_age_imports_as_zero(self, service, repository, make_csv, make_row) -> None:
        content = make_csv(make_row("G1"), make_row("G2", age="9" * 5000), make_row("G3"))

        summary = service.import_from_buffer(content)

        assert (summary.total_records, summary.imported, summary.errors) == (3, 3, 0)
        rows = repository.fetch_rows(Transaction.transaction_id == "G2", SortSpecification(), offset=0, limit=1)
        assert rows[0]["age"] == 0

    def test_value_error_while_coercing_drops_only_that_row(
        self, repository, cache, session_factory, make_csv, make_row
    ) -> None:
        class PickyCoercer(TransactionRowCoercer):
            def coerce(self, values):
                if values.get("transaction_id") == "V2":
                    raise ValueError("unreadable value")
                return super().coerce(values)

        service = TransactionImportService(repository, cache, coercer=PickyCoercer())

        summary = service.import_from_buffer(make_csv(make_row("V1"), make_row("V2"), make_row("V3")))

        assert (summary.total_records, summary.imported, summary.errors) == (3, 2, 0)
        assert _count_rows(session_factory) == 2

    def test_alias_headers_and_blank_lines(self, service, repository) -> None:
        content = (
            "\ufeffTransactionID,Region,Qty,Customer Name\n"
            "\n"
            "Z1,West,4,Zoya\n"
            "\n"
        ).encode("utf-8")

        summary = service.import_from_buffer(content)

        assert summary.total_records == 1
        rows = repository.fetch_rows(Transaction.transaction_id == "Z1", SortSpecification(), offset=0, limit=1)
        assert rows[0]["customer_region"] == "West"
        assert rows[0]["quantity"] == 4

    def test_import_from_path(self, service, tmp_path, make_csv, make_row) -> None:
        path = tmp_path / "sales.csv"
        path.write_bytes(make_csv(make_row("P1")))

        assert service.import_from_path(path).imported == 1

    def test_missing_file_raises_import_error(self, service, tmp_path) -> None:
        with pytest.raises(CSVImportError):
            service.import_from_path(tmp_path / "missing.csv")


class TestMalformedInput:
    def test_missing_transaction_id_column(self, service) -> None:
        with pytest.raises(CSVImportError, match="transaction_id"):
            service.import_from_buffer(b"Date,Customer Name\n01-01-2023,Neha\n")

    def test_row_width_mismatch(self, service) -> None:
        with pytest.raises(CSVImportError, match="line 3"):
            service.import_from_buffer(b"Transaction ID,Age\nT1,30\nT2,30,extra\n")

    def test_short_row(self, service) -> None:
        with pytest.raises(CSVImportError):
            service.import_from_buffer(b"Transaction ID,Age,Gender\nT1,30\n")

    def test_empty_input(self, service) -> None:
        with pytest.raises(CSVImportError):
            service.import_from_buffer(b"")

    def test_invalid_encoding(self, service) -> None:
        with pytest.raises(CSVImportError):
            service.import_from_buffer(b"Transaction ID\n\xff\xfe\xfa\n")


class TestBatching:
    def test_progress_reported_after_each_batch(self, make_csv, make_row) -> None:
        store = ScriptedStore([2, 2, 1])
        service = TransactionImportService(store, TTLCache(), batch_size=2)
        events: list[ImportProgress] = []

        summary = service.import_from_buffer(
            make_csv(*(make_row(f"B{i}") for i in range(5))),
            progress_callback=events.append,
        )

        assert store.batches == [["B0", "B1"], ["B2", "B3"], ["B4"]]
        assert [event.processed for event in events] == [2, 4, 5]
        assert events[-1] == ImportProgress(processed=5, total=5, imported=5, errors=0)
        assert summary.imported == 5

    def test_failed_batch_counts_raw_rows_and_continues(self, make_csv, make_row) -> None:
        store = ScriptedStore([2, StorageWriteError("value too long"), 1])
        service = TransactionImportService(store, TTLCache(), batch_size=2)

        summary = service.import_from_buffer(make_csv(*(make_row(f"B{i}") for i in range(5))))

        assert len(store.batches) == 3
        assert (summary.total_records, summary.imported, summary.errors) == (5, 3, 2)

    def test_connectivity_failure_aborts_and_clears_cache(self, make_csv, make_row) -> None:
        cache = TTLCache()
        cache.set("stats:{}", "stale")
        store = ScriptedStore([2, StorageConnectivityError("connection reset")])
        service = TransactionImportService(store, cache, batch_size=2)

        with pytest.raises(StorageConnectivityError):
            service.import_from_buffer(make_csv(*(make_row(f"B{i}") for i in range(5))))

        assert len(store.batches) == 2
        assert cache.get("stats:{}") is None

    def test_failing_progress_callback_is_ignored(self, make_csv, make_row) -> None:
        def explode(progress: ImportProgress) -> None:
            raise RuntimeError("listener gone")

        service = TransactionImportService(ScriptedStore([1]), TTLCache())

        assert service.import_from_buffer(make_csv(make_row("X1")), progress_callback=explode).imported == 1

    def test_cache_cleared_on_completion(self, make_csv, make_row) -> None:
        cache = TTLCache()
        cache.set("stats:{}", "stale")
        cache.set("filter-options:{}", "stale")
        service = TransactionImportService(ScriptedStore([0]), cache)

        service.import_from_buffer(make_csv(make_row("X1")))

        assert len(cache) == 0


class TestUploadRecords:
    def test_completed_upload_records_counts(self, service, make_csv, make_row) -> None:
        content = make_csv(make_row("U1"), make_row("U2"))

        upload, summary = service.import_upload(content=content, file_name="sales.csv", uploaded_by="ops")

        assert upload.status == CsvUploadStatus.COMPLETED
        assert upload.total_records == 2
        assert upload.imported_records == summary.imported == 2
        assert upload.failed_records == 0
        assert upload.file_size == len(content)
        assert upload.completed_at is not None

    def test_failed_upload_records_error(self, service, session_factory) -> None:
        with pytest.raises(CSVImportError):
            service.import_upload(content=b"Date\n01-01-2023\n", file_name="broken.csv")

        uploads = CsvUploadRepository(session_factory).list_recent()
        assert len(uploads) == 1
        assert uploads[0].status == CsvUploadStatus.FAILED
        assert "transaction_id" in uploads[0].error_message
