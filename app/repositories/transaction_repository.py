"""
app/repositories/transaction_repository.py

Storage access for transaction rows.

``TransactionStore`` is the seam the query executor, stats service, filter
options service and import pipeline depend on; ``TransactionRepository`` is
the SQLAlchemy implementation. Every SQLAlchemy failure leaves this module as
one of the typed errors in ``db.repositories.errors``.

Read statements accept a timeout. On PostgreSQL it is applied as a
transaction-local ``statement_timeout`` so the server cancels the statement
once the caller's deadline passes; other dialects ignore it.
"""

from __future__ import annotations

import uuid
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping, Sequence
from contextlib import contextmanager
from decimal import Decimal
from typing import Any

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from app.domain.transactions import SalesTotals, SortField, SortOrder, SortSpecification, TransactionInput
from db.models.transaction import Transaction
from db.repositories.errors import classify_storage_error

# Columns returned by the paged list endpoint.
LIST_COLUMNS = (
    Transaction.transaction_id,
    Transaction.date,
    Transaction.customer_id,
    Transaction.customer_name,
    Transaction.phone_number,
    Transaction.gender,
    Transaction.age,
    Transaction.product_category,
    Transaction.quantity,
    Transaction.total_amount,
    Transaction.customer_region,
    Transaction.product_id,
    Transaction.employee_name,
)

# Sub-filters whose distinct values back the filter dropdowns.
DISTINCT_FIELDS: dict[str, Any] = {
    "customer_region": Transaction.customer_region,
    "gender": Transaction.gender,
    "product_category": Transaction.product_category,
    "payment_method": Transaction.payment_method,
}

_SORT_COLUMNS = {
    SortField.DATE: Transaction.date,
    SortField.QUANTITY: Transaction.quantity,
    SortField.CUSTOMER_NAME: Transaction.customer_name,
}


class TransactionStore(ABC):
    """
    Storage abstraction for transaction reads and inserts.
    """

    @abstractmethod
    def fetch_rows(
        self,
        predicate: ColumnElement[bool],
        sort: SortSpecification,
        *,
        offset: int,
        limit: int,
        timeout_seconds: float | None = None,
    ) -> list[Mapping[str, Any]]:
        """
        Return one window of matching rows as column-name mappings.
        """

    @abstractmethod
    def count(
        self,
        predicate: ColumnElement[bool],
        *,
        timeout_seconds: float | None = None,
    ) -> int:
        """
        Count rows matching the predicate.
        """

    @abstractmethod
    def sum_totals(
        self,
        predicate: ColumnElement[bool],
        *,
        timeout_seconds: float | None = None,
    ) -> SalesTotals:
        """
        Sum quantity, gross and net amount over matching rows in one statement.
        """

    @abstractmethod
    def distinct_values(self, field_name: str) -> list[str]:
        """
        Distinct non-null values of one filterable column.
        """

    @abstractmethod
    def age_bounds(self) -> tuple[int | None, int | None]:
        """
        Minimum and maximum customer age, ``(None, None)`` on an empty table.
        """

    @abstractmethod
    def tag_values(self) -> list[str]:
        """
        Raw delimited tag strings of every row that has tags.
        """

    @abstractmethod
    def insert_skip_duplicates(self, rows: Sequence[TransactionInput]) -> int:
        """
        Insert rows, silently skipping existing business identifiers, and
        return how many rows were actually inserted.
        """


class TransactionRepository(TransactionStore):
    """
    SQLAlchemy-backed transaction store.

    Each call opens its own short-lived session from the injected factory, so
    one repository instance is safe to share across requests.
    """

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fetch_rows(
        self,
        predicate: ColumnElement[bool],
        sort: SortSpecification,
        *,
        offset: int,
        limit: int,
        timeout_seconds: float | None = None,
    ) -> list[Mapping[str, Any]]:
        sort_column = _SORT_COLUMNS[sort.field]
        ordering = sort_column.desc() if sort.order is SortOrder.DESC else sort_column.asc()
        stmt = (
            select(*LIST_COLUMNS)
            .where(predicate)
            .order_by(ordering, Transaction.transaction_id.asc())
            .offset(offset)
            .limit(limit)
        )
        with self._read_scope(timeout_seconds) as session:
            return [dict(row) for row in session.execute(stmt).mappings().all()]

    def count(
        self,
        predicate: ColumnElement[bool],
        *,
        timeout_seconds: float | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(Transaction).where(predicate)
        with self._read_scope(timeout_seconds) as session:
            return int(session.scalar(stmt) or 0)

    def sum_totals(
        self,
        predicate: ColumnElement[bool],
        *,
        timeout_seconds: float | None = None,
    ) -> SalesTotals:
        stmt = select(
            func.coalesce(func.sum(Transaction.quantity), 0),
            func.coalesce(func.sum(Transaction.total_amount), 0),
            func.coalesce(func.sum(Transaction.final_amount), 0),
        ).where(predicate)
        with self._read_scope(timeout_seconds) as session:
            quantity, total_amount, final_amount = session.execute(stmt).one()
        return SalesTotals(
            quantity=int(quantity or 0),
            total_amount=_to_decimal(total_amount),
            final_amount=_to_decimal(final_amount),
        )

    def distinct_values(self, field_name: str) -> list[str]:
        column = DISTINCT_FIELDS.get(field_name)
        if column is None:
            raise ValueError(f"Unsupported distinct field: {field_name}")
        stmt = select(column).where(column.is_not(None)).distinct()
        with self._read_scope(None) as session:
            return [value for value in session.scalars(stmt).all() if value is not None]

    def age_bounds(self) -> tuple[int | None, int | None]:
        stmt = select(func.min(Transaction.age), func.max(Transaction.age))
        with self._read_scope(None) as session:
            minimum, maximum = session.execute(stmt).one()
        return minimum, maximum

    def tag_values(self) -> list[str]:
        stmt = select(Transaction.tags).where(Transaction.tags.is_not(None))
        with self._read_scope(None) as session:
            return list(session.scalars(stmt).all())

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_skip_duplicates(self, rows: Sequence[TransactionInput]) -> int:
        payloads = self._deduplicate_payloads(rows)
        if not payloads:
            return 0

        try:
            with self._session_factory() as session:
                with session.begin():
                    stmt = (
                        self._insert_for(session)
                        .values(payloads)
                        .on_conflict_do_nothing(index_elements=[Transaction.transaction_id])
                        .returning(Transaction.id)
                    )
                    return len(session.scalars(stmt).all())
        except SQLAlchemyError as exc:
            raise classify_storage_error(exc) from exc

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @contextmanager
    def _read_scope(self, timeout_seconds: float | None) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                with session.begin():
                    if timeout_seconds is not None:
                        self._apply_statement_timeout(session, timeout_seconds)
                    yield session
        except SQLAlchemyError as exc:
            raise classify_storage_error(exc) from exc

    @staticmethod
    def _apply_statement_timeout(session: Session, timeout_seconds: float) -> None:
        if session.get_bind().dialect.name != "postgresql":
            return
        timeout_ms = max(1, int(timeout_seconds * 1000))
        session.execute(
            select(func.set_config("statement_timeout", str(timeout_ms), True))
        )

    @staticmethod
    def _insert_for(session: Session) -> Any:
        dialect = session.get_bind().dialect.name
        if dialect == "postgresql":
            return postgresql.insert(Transaction)
        if dialect == "sqlite":
            return sqlite.insert(Transaction)
        raise RuntimeError(f"Skip-duplicates insert is not supported on {dialect!r}.")

    @staticmethod
    def _deduplicate_payloads(rows: Sequence[TransactionInput]) -> list[dict[str, Any]]:
        # First occurrence of a business identifier wins within one batch.
        seen: set[str] = set()
        payloads: list[dict[str, Any]] = []
        for row in rows:
            if row.transaction_id in seen:
                continue
            seen.add(row.transaction_id)
            payload = row.to_payload()
            payload["id"] = uuid.uuid4()
            payloads.append(payload)
        return payloads


def _to_decimal(value: Any) -> Decimal:
    if value is None:
        return Decimal("0")
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
