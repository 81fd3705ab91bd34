"""Bounded Fan-out Fetcher.

Resolves weights for a batch's items with at most N remote calls in flight.
Each distinct identifier is looked up in the Weight Cache first; misses are
fetched from the weight-source agent in chunks of N, and each chunk finishes
before the next starts. A failure for one item leaves it unresolved and
never cancels its siblings.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from connectors.base import RemoteExtractionClient
from core.errors import ErrorKind, WeightServiceError
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import MetricsCollector, get_metrics
from storage.weight_cache import WeightCache

logger = get_logger(__name__)

DEFAULT_CONCURRENCY = 5


@dataclass
class FetchReport:
    """Outcome of one fan-out."""
    weights: Dict[str, float] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)  # item id -> error kind
    cache_hits: int = 0
    fetched: int = 0

    def failed_with(self, kind: ErrorKind) -> List[str]:
        return [item_id for item_id, failure in self.failures.items() if failure == kind.value]


def unique_in_order(item_ids: List[str]) -> List[str]:
    """Drop repeats, keeping first occurrences in order."""
    return list(dict.fromkeys(item_ids))


class BoundedFanoutFetcher:
    """Fetches item weights through the cache with a concurrency ceiling.

    Usage:
        fetcher = BoundedFanoutFetcher(client, cache, concurrency=5)
        report = await fetcher.fetch_report("IND8", ["X001", "X002", "X001"])
        report.weights  # {"X001": 0.79, "X002": 1.2}
    """

    def __init__(
        self,
        client: RemoteExtractionClient,
        cache: WeightCache,
        concurrency: int = DEFAULT_CONCURRENCY,
        metrics: Optional[MetricsCollector] = None,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.client = client
        self.cache = cache
        self.concurrency = concurrency
        self._metrics = metrics or get_metrics()

    async def fetch(self, warehouse_id: str, item_ids: List[str]) -> Dict[str, float]:
        """Weights for every identifier that resolved; unresolved ones are absent."""
        report = await self.fetch_report(warehouse_id, item_ids)
        return report.weights

    async def fetch_report(self, warehouse_id: str, item_ids: List[str]) -> FetchReport:
        """Like fetch(), also reporting per-item failures and cache use."""
        report = FetchReport()
        misses: List[str] = []

        for item_id in unique_in_order(item_ids):
            cached = self.cache.get(warehouse_id, item_id)
            if cached is not None:
                report.weights[item_id] = cached
                report.cache_hits += 1
            else:
                misses.append(item_id)

        started = time.monotonic()
        for start in range(0, len(misses), self.concurrency):
            chunk = misses[start:start + self.concurrency]
            await asyncio.gather(*(
                self._fetch_one(warehouse_id, item_id, report) for item_id in chunk
            ))

        if misses:
            self._metrics.record_processing_time("fetch", (time.monotonic() - started) * 1000)
        logger.info(
            f"Resolved {len(report.weights)}/{len(report.weights) + len(report.failures)} weights "
            f"({report.cache_hits} cached, {report.fetched} fetched, {len(report.failures)} failed)"
        )
        return report

    async def _fetch_one(self, warehouse_id: str, item_id: str, report: FetchReport) -> None:
        with with_correlation(item_id=item_id, stage="fetch"):
            try:
                weight = await self.client.fetch_weight(warehouse_id, item_id)
            except WeightServiceError as e:
                report.failures[item_id] = e.kind.value
                self._metrics.record_item_failure(e.kind.value)
                logger.info(f"No weight for {item_id}: {e.kind.value}")
                return
            except Exception as e:
                report.failures[item_id] = type(e).__name__
                self._metrics.record_item_failure(type(e).__name__)
                logger.exception(f"Unexpected failure fetching weight for {item_id}")
                return

            # Written even if the requesting batch has been abandoned
            self.cache.put(warehouse_id, item_id, weight)
            report.weights[item_id] = weight
            report.fetched += 1
