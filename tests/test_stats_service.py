"""
tests/test_stats_service.py

Cached aggregate statistics and filter options.
"""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.cache import TTLCache
from app.domain.transactions import FilterSpecification, SalesTotals, StatsSummary
from app.repositories.transaction_repository import TransactionStore
from app.services.filter_options_service import FilterOptionsService, split_tags
from app.services.query_executor import QueryExecutor
from app.services.stats_service import StatsService
from db.repositories.errors import StorageTimeoutError


class CountingStore(TransactionStore):
    def __init__(self) -> None:
        self.sum_calls = 0
        self.sum_error: Exception | None = None

    def fetch_rows(self, predicate, sort, *, offset, limit, timeout_seconds=None):
        return []

    def count(self, predicate, *, timeout_seconds=None):
        return 0

    def sum_totals(self, predicate, *, timeout_seconds=None):
        self.sum_calls += 1
        if self.sum_error is not None:
            raise self.sum_error
        return SalesTotals(quantity=12, total_amount=Decimal("100.50"), final_amount=Decimal("90.25"))

    def distinct_values(self, field_name):
        return []

    def age_bounds(self):
        return None, None

    def tag_values(self):
        return []

    def insert_skip_duplicates(self, rows):
        return 0


@pytest.fixture()
def store() -> CountingStore:
    return CountingStore()


@pytest.fixture()
def cache(clock) -> TTLCache:
    return TTLCache(default_ttl_seconds=30.0, clock=clock)


@pytest.fixture()
def service(store: CountingStore, cache: TTLCache, clock) -> StatsService:
    return StatsService(QueryExecutor(store, clock=clock), cache, ttl_seconds=30.0)


class TestStatsService:
    def test_discount_is_gross_minus_net(self, service: StatsService) -> None:
        stats = service.get_stats(FilterSpecification())
        assert stats == StatsSummary(total_units=12, total_amount=100.5, total_discount=10.25)

    def test_cached_within_ttl(self, service: StatsService, store: CountingStore, clock) -> None:
        service.get_stats()
        clock.advance(29)
        service.get_stats()
        assert store.sum_calls == 1

    def test_recomputed_after_ttl(self, service: StatsService, store: CountingStore, clock) -> None:
        service.get_stats()
        clock.advance(31)
        service.get_stats()
        assert store.sum_calls == 2

    def test_equivalent_filters_share_cache_entry(self, service: StatsService, store: CountingStore) -> None:
        service.get_stats(FilterSpecification.from_params(regions=["North", "East"]))
        service.get_stats(FilterSpecification.from_params(regions=["East", "North"]))
        assert store.sum_calls == 1

    def test_timeout_returns_zeros_and_is_not_cached(
        self,
        service: StatsService,
        store: CountingStore,
        cache: TTLCache,
    ) -> None:
        store.sum_error = StorageTimeoutError("timeout")

        assert service.get_stats() == StatsSummary.empty()
        assert len(cache) == 0

        store.sum_error = None
        assert service.get_stats().total_units == 12

    def test_tags_apply_to_stats(self, repository, make_transaction, clock) -> None:
        repository.insert_skip_duplicates(
            [
                make_transaction("T1", tags="VIP", quantity=2),
                make_transaction("T2", tags="new", quantity=5),
            ]
        )
        service = StatsService(QueryExecutor(repository, clock=clock), TTLCache(clock=clock))

        stats = service.get_stats(FilterSpecification.from_params(tags=["VIP"]))

        assert stats.total_units == 2
        assert stats.total_amount == pytest.approx(100.0)
        assert stats.total_discount == pytest.approx(10.0)


class TestFilterOptions:
    def test_split_tags_unions_and_sorts(self) -> None:
        assert split_tags(["b, a", "a,c", "", " "]) == ["a", "b", "c"]

    def test_empty_table_uses_default_age_bounds(self, repository, cache: TTLCache) -> None:
        options = FilterOptionsService(repository, cache).get_filter_options()
        assert options.age_min == 0
        assert options.age_max == 100
        assert options.regions == []

    def test_distinct_values_from_repository(self, repository, make_transaction, cache: TTLCache) -> None:
        repository.insert_skip_duplicates(
            [
                make_transaction("T1", customer_region="South", age=22, tags="VIP,new"),
                make_transaction("T2", customer_region="North", age=61, tags="new,loyal",
                                 payment_method="Cash"),
                make_transaction("T3", customer_region="North", age=35, tags=None),
            ]
        )

        options = FilterOptionsService(repository, cache).get_filter_options()

        assert options.regions == ["North", "South"]
        assert options.payment_methods == ["Cash", "UPI"]
        assert (options.age_min, options.age_max) == (22, 61)
        assert options.tags == ["VIP", "loyal", "new"]

    def test_options_are_cached_until_cleared(self, repository, make_transaction, cache: TTLCache) -> None:
        service = FilterOptionsService(repository, cache)
        assert service.get_filter_options().regions == []

        repository.insert_skip_duplicates([make_transaction("T1", customer_region="West")])
        assert service.get_filter_options().regions == []

        cache.clear()
        assert service.get_filter_options().regions == ["West"]
