"""Activity definitions module."""

from activities.weigh import (
    compute_batch_weight,
    get_orchestrator,
    set_orchestrator,
    ComputeBatchWeightInput,
    ComputeBatchWeightOutput,
)

__all__ = [
    "compute_batch_weight",
    "get_orchestrator",
    "set_orchestrator",
    "ComputeBatchWeightInput",
    "ComputeBatchWeightOutput",
]
