"""Batch weighing pipeline: resolve, fetch, aggregate."""

from weighing.aggregator import aggregate, round_weight
from weighing.fetcher import BoundedFanoutFetcher, FetchReport, unique_in_order
from weighing.orchestrator import (
    BatchWeightOrchestrator,
    build_navigate_orchestrator,
    build_orchestrator,
)
from weighing.resolver import BatchResolver

__all__ = [
    "BatchResolver",
    "BoundedFanoutFetcher",
    "FetchReport",
    "unique_in_order",
    "aggregate",
    "round_weight",
    "BatchWeightOrchestrator",
    "build_orchestrator",
    "build_navigate_orchestrator",
]
