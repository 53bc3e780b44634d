"""
tests/test_transaction_repository.py

SQLAlchemy transaction store against SQLite, plus storage error
classification.
"""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import Text, true

from app.domain.transactions import FilterSpecification, PageRequest, SortField, SortOrder, SortSpecification
from app.filters.predicate_builder import PredicateBuilder
from app.services.query_executor import QueryExecutor
from db.models.transaction import Transaction
from db.repositories.errors import (
    StorageConnectivityError,
    StorageError,
    StorageTimeoutError,
    StorageWriteError,
    classify_storage_error,
)


@pytest.fixture()
def population(repository, make_transaction):
    rows = []
    for i in range(60):
        rows.append(
            make_transaction(
                f"T{i:03d}",
                age=18 + (i % 12),
                customer_region="North" if i % 3 else "South",
                quantity=(i * 7) % 11,
            )
        )
    repository.insert_skip_duplicates(rows)
    return rows


class TestReads:
    def test_filtered_sorted_second_page(self, repository, population, clock) -> None:
        spec = FilterSpecification.from_params(regions=["North"], age_min=18, age_max=25)
        sort = SortSpecification(field=SortField.QUANTITY, order=SortOrder.DESC)
        executor = QueryExecutor(repository, clock=clock)

        result = executor.execute(PredicateBuilder().build(spec), sort, PageRequest(page=2, page_size=10))

        matching = [
            row
            for row in population
            if row.customer_region == "North" and 18 <= row.age <= 25
        ]
        expected = sorted(matching, key=lambda row: (-row.quantity, row.transaction_id))[10:20]

        assert len(result.records) == 10
        assert [record["transaction_id"] for record in result.records] == [
            row.transaction_id for row in expected
        ]
        assert all(record["customer_region"] == "North" for record in result.records)
        assert all(18 <= record["age"] <= 25 for record in result.records)
        quantities = [record["quantity"] for record in result.records]
        assert quantities == sorted(quantities, reverse=True)
        assert result.pagination.total_count == len(matching)

    def test_no_filter_returns_everything(self, repository, population) -> None:
        assert repository.count(true()) == 60

    def test_sort_by_customer_name_then_transaction_id(self, repository, make_transaction) -> None:
        repository.insert_skip_duplicates(
            [
                make_transaction("B", customer_name="Zed"),
                make_transaction("C", customer_name="Amy"),
                make_transaction("A", customer_name="Amy"),
            ]
        )
        rows = repository.fetch_rows(true(), SortSpecification(), offset=0, limit=10)
        assert [row["transaction_id"] for row in rows] == ["A", "C", "B"]

    def test_sum_totals(self, repository, make_transaction) -> None:
        repository.insert_skip_duplicates(
            [
                make_transaction("S1", quantity=2, total_amount=Decimal("10.50"), final_amount=Decimal("9.50")),
                make_transaction("S2", quantity=3, total_amount=Decimal("4.50"), final_amount=Decimal("4.50")),
            ]
        )
        totals = repository.sum_totals(true())
        assert totals.quantity == 5
        assert totals.total_amount == Decimal("15.00")
        assert totals.final_amount == Decimal("14.00")

    def test_sum_totals_on_empty_table(self, repository) -> None:
        totals = repository.sum_totals(true())
        assert totals.quantity == 0
        assert totals.total_amount == Decimal("0")

    def test_unknown_distinct_field_rejected(self, repository) -> None:
        with pytest.raises(ValueError):
            repository.distinct_values("customer_name")


class TestInsert:
    def test_existing_ids_are_skipped_and_not_counted(self, repository, make_transaction) -> None:
        assert repository.insert_skip_duplicates([make_transaction("T1")]) == 1
        assert repository.insert_skip_duplicates([make_transaction("T1"), make_transaction("T2")]) == 1
        assert repository.count(true()) == 2

    def test_empty_batch_inserts_nothing(self, repository) -> None:
        assert repository.insert_skip_duplicates([]) == 0

    def test_long_text_values_are_stored_whole(self, repository, make_transaction) -> None:
        long_phone = "+91 " + "9" * 60
        long_name = "Customer " * 80

        repository.insert_skip_duplicates(
            [make_transaction("L1", phone_number=long_phone, customer_name=long_name, store_location="X" * 300)]
        )

        row = repository.fetch_rows(Transaction.transaction_id == "L1", SortSpecification(), offset=0, limit=1)[0]
        assert (row["phone_number"], row["customer_name"]) == (long_phone, long_name)
        assert len(row["store_location"]) == 300

    @pytest.mark.parametrize(
        "column",
        ["transaction_id", "customer_name", "phone_number", "gender", "brand", "store_location", "employee_name"],
    )
    def test_text_columns_are_unbounded(self, column: str) -> None:
        assert isinstance(Transaction.__table__.c[column].type, Text)


class _PgError(Exception):
    def __init__(self, sqlstate: str) -> None:
        super().__init__(sqlstate)
        self.sqlstate = sqlstate


class TestErrorClassification:
    def test_statement_timeout_sqlstate(self) -> None:
        error = sa_exc.OperationalError("SELECT 1", {}, _PgError("57014"))
        assert isinstance(classify_storage_error(error), StorageTimeoutError)

    def test_pool_checkout_timeout(self) -> None:
        assert isinstance(classify_storage_error(sa_exc.TimeoutError("pool exhausted")), StorageTimeoutError)

    def test_operational_error_is_connectivity(self) -> None:
        error = sa_exc.OperationalError("SELECT 1", {}, _PgError("08006"))
        assert isinstance(classify_storage_error(error), StorageConnectivityError)

    def test_integrity_error_is_write_failure(self) -> None:
        error = sa_exc.IntegrityError("INSERT", {}, _PgError("23502"))
        assert isinstance(classify_storage_error(error), StorageWriteError)

    def test_anything_else_is_generic(self) -> None:
        classified = classify_storage_error(sa_exc.ArgumentError("bad"))
        assert type(classified) is StorageError
