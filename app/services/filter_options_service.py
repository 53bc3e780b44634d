"""
app/services/filter_options_service.py

Distinct values that populate the filter controls.
"""

from __future__ import annotations

import logging

from app.cache import TTLCache, make_cache_key
from app.domain.transactions import FilterOptions
from app.repositories.transaction_repository import TransactionStore

logger = logging.getLogger(__name__)

FILTER_OPTIONS_CACHE_NAMESPACE = "filter-options"
TAG_DELIMITER = ","
DEFAULT_AGE_MIN = 0
DEFAULT_AGE_MAX = 100


def split_tags(raw_values: list[str]) -> list[str]:
    """
    Union of every individual tag across delimited tag strings, sorted.
    """

    unique: set[str] = set()
    for raw in raw_values:
        if not raw:
            continue
        for tag in raw.split(TAG_DELIMITER):
            stripped = tag.strip()
            if stripped:
                unique.add(stripped)
    return sorted(unique)


class FilterOptionsService:
    def __init__(
        self,
        store: TransactionStore,
        cache: TTLCache,
        *,
        ttl_seconds: float = 30.0,
    ) -> None:
        self._store = store
        self._cache = cache
        self._ttl_seconds = ttl_seconds

    def get_filter_options(self) -> FilterOptions:
        key = make_cache_key(FILTER_OPTIONS_CACHE_NAMESPACE)
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        age_min, age_max = self._store.age_bounds()
        options = FilterOptions(
            regions=sorted(self._store.distinct_values("customer_region")),
            genders=sorted(self._store.distinct_values("gender")),
            categories=sorted(self._store.distinct_values("product_category")),
            payment_methods=sorted(self._store.distinct_values("payment_method")),
            age_min=age_min if age_min is not None else DEFAULT_AGE_MIN,
            age_max=age_max if age_max is not None else DEFAULT_AGE_MAX,
            tags=split_tags(self._store.tag_values()),
        )
        self._cache.set(key, options, self._ttl_seconds)
        logger.debug(
            "Filter options loaded regions=%d categories=%d tags=%d",
            len(options.regions),
            len(options.categories),
            len(options.tags),
        )
        return options
