"""
Metrics Collection for the Batch Weight Pipeline

Collects and exposes in-memory metrics for:
- Batch requests (started, completed, failed by kind)
- Weight cache lookups (hits, misses)
- Remote attempts per candidate target (by outcome)
- Item extraction failures (by kind)
- Processing times (average, p95) per stage

Nothing is persisted; counters reset with the process.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, List, Optional, Any
import statistics


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class BatchMetrics:
    """Metrics for batch weight requests."""
    started: int = 0
    completed: int = 0
    failed: int = 0
    in_progress: int = 0

    # By failure kind
    failed_by_kind: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class CacheMetrics:
    """Weight cache lookup metrics."""
    hits: int = 0
    misses: int = 0
    writes: int = 0
    clears: int = 0


@dataclass
class RemoteMetrics:
    """Remote extraction attempt metrics."""
    attempts: int = 0

    # success, unreachable, http_error, auth_page, not_found, navigation_pending
    by_outcome: Dict[str, int] = field(default_factory=lambda: defaultdict(int))

    # Item-level failures swallowed by the fetcher, by error kind
    item_failures: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class TimingMetrics:
    """Processing time metrics."""
    # Raw timing samples (keep last N for percentile calculations)
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000

    by_stage: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, stage: str = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if stage:
            self.by_stage[stage].append(duration_ms)
            if len(self.by_stage[stage]) > self.max_samples:
                self.by_stage[stage] = self.by_stage[stage][-self.max_samples:]

    def get_average(self, stage: str = None) -> float:
        """Get average processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, stage: str = None) -> float:
        """Get 95th percentile processing time."""
        samples = self.by_stage.get(stage, []) if stage else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for the weight pipeline.

    Components take a collector in their constructor and fall back to the
    process-wide instance, so tests can count against a fresh one.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_cache_lookup(hit=True)
        metrics.record_remote_attempt("success")
    """

    _instance: Optional["MetricsCollector"] = None
    _instance_lock = Lock()

    def __init__(self):
        self.batches = BatchMetrics()
        self.cache = CacheMetrics()
        self.remote = RemoteMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get the process-wide instance."""
        if cls._instance is None:
            with cls._instance_lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    # =========================================================================
    # Batch Metrics
    # =========================================================================

    def record_batch_started(self):
        with self._lock:
            self.batches.started += 1
            self.batches.in_progress += 1

    def record_batch_completed(self, duration_ms: float = None):
        with self._lock:
            self.batches.completed += 1
            self.batches.in_progress = max(0, self.batches.in_progress - 1)
            if duration_ms:
                self.timings.add_sample(duration_ms, "batch")

    def record_batch_failed(self, kind: str):
        with self._lock:
            self.batches.failed += 1
            self.batches.in_progress = max(0, self.batches.in_progress - 1)
            self.batches.failed_by_kind[kind] += 1

    # =========================================================================
    # Cache Metrics
    # =========================================================================

    def record_cache_lookup(self, hit: bool):
        with self._lock:
            if hit:
                self.cache.hits += 1
            else:
                self.cache.misses += 1

    def record_cache_write(self):
        with self._lock:
            self.cache.writes += 1

    def record_cache_clear(self):
        with self._lock:
            self.cache.clears += 1

    # =========================================================================
    # Remote Metrics
    # =========================================================================

    def record_remote_attempt(self, outcome: str, duration_ms: float = None):
        """Record one attempt against one candidate target."""
        with self._lock:
            self.remote.attempts += 1
            self.remote.by_outcome[outcome] += 1
            if duration_ms:
                self.timings.add_sample(duration_ms, "remote")

    def record_item_failure(self, kind: str):
        with self._lock:
            self.remote.item_failures[kind] += 1

    def remote_outcome_count(self, outcome: str) -> int:
        with self._lock:
            return self.remote.by_outcome.get(outcome, 0)

    # =========================================================================
    # Timing Metrics
    # =========================================================================

    def record_processing_time(self, stage: str, duration_ms: float):
        """Record a processing time sample."""
        with self._lock:
            self.timings.add_sample(duration_ms, stage)

    def get_timing_stats(self, stage: str = None) -> Dict[str, float]:
        """Get timing statistics for a stage."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(stage),
                "p95_ms": self.timings.get_p95(stage),
                "sample_count": len(self.timings.by_stage.get(stage, []) if stage else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            lookups = self.cache.hits + self.cache.misses
            return {
                "batches": {
                    "started": self.batches.started,
                    "completed": self.batches.completed,
                    "failed": self.batches.failed,
                    "in_progress": self.batches.in_progress,
                    "failed_by_kind": dict(self.batches.failed_by_kind),
                },
                "cache": {
                    "hits": self.cache.hits,
                    "misses": self.cache.misses,
                    "writes": self.cache.writes,
                    "clears": self.cache.clears,
                    "hit_rate": round(self.cache.hits / lookups, 3) if lookups else 0.0,
                },
                "remote": {
                    "attempts": self.remote.attempts,
                    "by_outcome": dict(self.remote.by_outcome),
                    "item_failures": dict(self.remote.item_failures),
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_stage": {
                        stage: {
                            "average_ms": self.timings.get_average(stage),
                            "p95_ms": self.timings.get_p95(stage),
                        }
                        for stage in self.timings.by_stage.keys()
                    },
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_processing_time(stage: str, duration_ms: float):
    """Record a processing time sample."""
    get_metrics().record_processing_time(stage, duration_ms)
