"""
Bounded Fan-out Fetcher Tests

Concurrency ceiling, deduplication, cache use and per-item failure
containment.
"""

import asyncio

import pytest

from core.errors import ErrorKind, NavigationPending, SourceUnreachable
from storage.weight_cache import WeightCache
from weighing.fetcher import BoundedFanoutFetcher, unique_in_order


class TestBoundedFanoutFetcher:

    def test_concurrency_bound(self, fake_client_class, metrics):
        """N=2 over 5 ids: never more than 2 in flight, all 5 fetched."""
        ids = [f"X00000000{i}A" for i in range(5)]
        client = fake_client_class(weights={i: 1.0 for i in ids}, delay=0.01)
        fetcher = BoundedFanoutFetcher(client, WeightCache(metrics=metrics), concurrency=2, metrics=metrics)

        weights = asyncio.run(fetcher.fetch("IND8", ids))

        assert client.max_in_flight == 2
        assert len(client.weight_requests()) == 5
        assert set(weights) == set(ids)

    def test_repeats_fetched_once(self, fake_client_class, metrics):
        client = fake_client_class(weights={"A000000001": 1.0, "B000000001": 3.0})
        fetcher = BoundedFanoutFetcher(client, WeightCache(metrics=metrics), metrics=metrics)

        weights = asyncio.run(fetcher.fetch("IND8", ["A000000001", "A000000001", "B000000001"]))

        assert client.weight_requests() == ["A000000001", "B000000001"]
        assert weights == {"A000000001": 1.0, "B000000001": 3.0}

    def test_cache_hit_skips_remote(self, fake_client_class, metrics):
        cache = WeightCache(metrics=metrics)
        cache.put("IND8", "A000000001", 2.5)
        client = fake_client_class(weights={"B000000001": 3.0})
        fetcher = BoundedFanoutFetcher(client, cache, metrics=metrics)

        report = asyncio.run(fetcher.fetch_report("IND8", ["A000000001", "B000000001"]))

        assert client.weight_requests() == ["B000000001"]
        assert report.weights == {"A000000001": 2.5, "B000000001": 3.0}
        assert report.cache_hits == 1
        assert report.fetched == 1

    def test_writes_through_to_cache(self, fake_client_class, metrics):
        cache = WeightCache(metrics=metrics)
        client = fake_client_class(weights={"A000000001": 1.5})
        fetcher = BoundedFanoutFetcher(client, cache, metrics=metrics)

        asyncio.run(fetcher.fetch("IND8", ["A000000001"]))

        assert cache.get("IND8", "A000000001") == 1.5

    def test_failures_do_not_cancel_siblings(self, fake_client_class, metrics):
        client = fake_client_class(
            weights={
                "A000000001": SourceUnreachable("down"),
                "B000000001": 3.0,
                "C000000001": RuntimeError("bug"),
            },
            delay=0.01,
        )
        fetcher = BoundedFanoutFetcher(client, WeightCache(metrics=metrics), concurrency=3, metrics=metrics)

        report = asyncio.run(fetcher.fetch_report(
            "IND8", ["A000000001", "B000000001", "C000000001", "D000000001"],
        ))

        assert report.weights == {"B000000001": 3.0}
        assert report.failures == {
            "A000000001": "SourceUnreachable",
            "C000000001": "RuntimeError",
            "D000000001": "NotFound",
        }
        assert metrics.get_summary()["remote"]["item_failures"]["NotFound"] == 1

    def test_failed_with(self, fake_client_class, metrics):
        client = fake_client_class(weights={"A000000001": NavigationPending("navigating")})
        fetcher = BoundedFanoutFetcher(client, WeightCache(metrics=metrics), metrics=metrics)

        report = asyncio.run(fetcher.fetch_report("IND8", ["A000000001"]))

        assert report.failed_with(ErrorKind.NAVIGATION_PENDING) == ["A000000001"]

    def test_rejects_zero_concurrency(self, fake_client_class):
        with pytest.raises(ValueError):
            BoundedFanoutFetcher(fake_client_class(), WeightCache(), concurrency=0)


def test_unique_in_order():
    assert unique_in_order(["b", "a", "b", "c", "a"]) == ["b", "a", "c"]
