"""Weight cache.

Process-lifetime store of resolved item weights keyed by
(warehouse, item id). Entries expire lazily: a stale entry reads as a miss
and is replaced by the next put for the same key.
"""

import time
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Optional, Tuple

from core.observability.logging import get_logger
from core.observability.metrics import MetricsCollector, get_metrics

logger = get_logger(__name__)

DEFAULT_TTL_SECONDS = 30 * 60

CacheKey = Tuple[str, str]


@dataclass(frozen=True)
class CacheEntry:
    """One cached weight. Replaced, never mutated."""
    value: float
    created_at: float


class WeightCache:
    """Thread-safe TTL cache of item weights.

    Usage:
        cache = WeightCache(ttl_seconds=1800)
        cache.put("IND8", "X001ABCDEFG", 0.79)
        cache.get("IND8", "X001ABCDEFG")  # 0.79 until the TTL elapses
    """

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._metrics = metrics or get_metrics()
        self._entries: Dict[CacheKey, CacheEntry] = {}
        self._lock = Lock()

    def get(self, region: str, item_id: str) -> Optional[float]:
        """Cached weight, or None on a miss or a stale entry."""
        with self._lock:
            entry = self._entries.get((region, item_id))
        hit = entry is not None and self._clock() - entry.created_at < self.ttl_seconds
        self._metrics.record_cache_lookup(hit)
        return entry.value if hit else None

    def put(self, region: str, item_id: str, value: float) -> None:
        """Store a weight; the last writer for a key wins."""
        entry = CacheEntry(value=value, created_at=self._clock())
        with self._lock:
            self._entries[(region, item_id)] = entry
        self._metrics.record_cache_write()

    def clear(self) -> None:
        """Drop every entry. In-flight fetches may still write afterwards."""
        with self._lock:
            dropped = len(self._entries)
            self._entries = {}
        self._metrics.record_cache_clear()
        logger.info(f"Weight cache cleared ({dropped} entries dropped)")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
