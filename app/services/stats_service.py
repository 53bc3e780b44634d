"""
app/services/stats_service.py

Aggregate sales statistics with a short-lived cache.

Statistics are computed by one combined aggregate statement (quantity, gross
and net sums together) so the discount is derived from a single consistent
pass. Results are cached per canonical filter specification; the import
pipeline clears the whole cache once new rows land.
"""

from __future__ import annotations

import logging

from app.cache import TTLCache, make_cache_key
from app.domain.transactions import FilterSpecification, StatsSummary
from app.services.query_executor import QueryExecutor

logger = logging.getLogger(__name__)

STATS_CACHE_NAMESPACE = "stats"
DEFAULT_STATS_TTL_SECONDS = 30.0


class StatsService:
    """
    Returns total units, gross amount and discount for a filter specification.
    """

    def __init__(
        self,
        executor: QueryExecutor,
        cache: TTLCache,
        *,
        ttl_seconds: float = DEFAULT_STATS_TTL_SECONDS,
    ) -> None:
        self._executor = executor
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    @staticmethod
    def cache_key(filters: FilterSpecification) -> str:
        return make_cache_key(STATS_CACHE_NAMESPACE, filters.to_cache_payload())

    def get_stats(self, filters: FilterSpecification | None = None) -> StatsSummary:
        filters = filters or FilterSpecification()
        key = self.cache_key(filters)

        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Stats cache hit key=%s", key)
            return cached

        predicate = self._executor.predicate_builder.build(filters)
        totals = self._executor.aggregate_totals(predicate)
        if totals is None:
            # Degraded result; not cached so the next request retries.
            return StatsSummary.empty()

        summary = StatsSummary(
            total_units=totals.quantity,
            total_amount=float(totals.total_amount),
            total_discount=float(totals.total_amount - totals.final_amount),
        )
        self._cache.set(key, summary, self._ttl_seconds)
        logger.debug("Stats cache miss key=%s total_units=%s", key, summary.total_units)
        return summary
