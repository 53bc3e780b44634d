"""
app/services/query_executor.py

Deadline-bounded execution of transaction reads.

Execution order per request
---------------------------
1. Fetch the requested window of rows.
2. If this is page 1 and fewer rows than ``page_size`` came back, the total
   is exactly the number of rows returned and no count statement runs.
3. Otherwise count matching rows with whatever is left of the deadline.

At most two statements run per request and never in parallel, which keeps a
small connection pool usable under load.

Failure policy
--------------
A ``StorageTimeoutError`` (or a deadline already spent before the count)
yields an empty, well-formed page with ``total_count=0``. Every other storage
error propagates to the caller.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Mapping
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from sqlalchemy import ColumnElement

from app.domain.transactions import (
    PageRequest,
    PaginationMeta,
    SalesTotals,
    SortSpecification,
    TransactionPage,
    TransactionQuery,
)
from app.filters.predicate_builder import PredicateBuilder
from app.repositories.transaction_repository import TransactionStore
from db.repositories.errors import StorageTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_QUERY_TIMEOUT_SECONDS = 15.0
_CENT = Decimal("0.01")


class Deadline:
    """
    Absolute point in time shared by every statement of one request.
    """

    def __init__(self, seconds: float, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._expires_at = clock() + seconds

    def remaining(self) -> float:
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self.remaining() <= 0.0


class QueryExecutor:
    """
    Runs predicates against the transaction store within a fixed deadline.
    """

    def __init__(
        self,
        store: TransactionStore,
        *,
        timeout_seconds: float = DEFAULT_QUERY_TIMEOUT_SECONDS,
        predicate_builder: PredicateBuilder | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._timeout_seconds = timeout_seconds
        self._predicate_builder = predicate_builder or PredicateBuilder()
        self._clock = clock

    @property
    def predicate_builder(self) -> PredicateBuilder:
        return self._predicate_builder

    def run(self, query: TransactionQuery) -> TransactionPage:
        """
        Build the predicate for a full read request and execute it.
        """

        predicate = self._predicate_builder.build(query.filters, query.search)
        return self.execute(predicate, query.sort, query.page)

    def execute(
        self,
        predicate: ColumnElement[bool],
        sort: SortSpecification,
        page: PageRequest,
    ) -> TransactionPage:
        deadline = Deadline(self._timeout_seconds, clock=self._clock)

        try:
            rows = self._store.fetch_rows(
                predicate,
                sort,
                offset=page.offset,
                limit=page.limit,
                timeout_seconds=deadline.remaining(),
            )

            if page.page == 1 and len(rows) < page.page_size:
                total_count = len(rows)
            else:
                if deadline.expired:
                    raise StorageTimeoutError("Deadline spent before count query.")
                total_count = self._store.count(
                    predicate,
                    timeout_seconds=deadline.remaining(),
                )
        except StorageTimeoutError as exc:
            logger.warning(
                "Transaction query timed out after %.1fs page=%s page_size=%s: %s",
                self._timeout_seconds,
                page.page,
                page.page_size,
                exc,
            )
            return TransactionPage(
                records=[],
                pagination=PaginationMeta(
                    page=page.page,
                    page_size=page.page_size,
                    total_count=0,
                    total_pages=0,
                ),
                degraded=True,
            )

        return TransactionPage(
            records=[normalize_record(row) for row in rows],
            pagination=PaginationMeta.build(page, total_count),
        )

    def aggregate_totals(self, predicate: ColumnElement[bool]) -> SalesTotals | None:
        """
        Run the combined aggregate under the deadline; ``None`` on timeout.
        """

        deadline = Deadline(self._timeout_seconds, clock=self._clock)
        try:
            return self._store.sum_totals(predicate, timeout_seconds=deadline.remaining())
        except StorageTimeoutError as exc:
            logger.warning(
                "Aggregate query timed out after %.1fs: %s",
                self._timeout_seconds,
                exc,
            )
            return None


def normalize_value(value: Any) -> Any:
    """
    Convert storage types into plain JSON-friendly values.

    Decimals become floats rounded to cents; dates and datetimes become
    ``YYYY-MM-DD`` strings.
    """

    if isinstance(value, Decimal):
        return float(value.quantize(_CENT, rounding=ROUND_HALF_UP))
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    return value


def normalize_record(row: Mapping[str, Any]) -> dict[str, Any]:
    return {key: normalize_value(value) for key, value in row.items()}
