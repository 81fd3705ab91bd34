"""Weighing activities.

Temporal activity that computes a batch weight summary. The worker process
keeps one orchestrator for its lifetime so the weight cache is shared by
every activity it runs.
"""

from dataclasses import dataclass
from typing import Optional

from temporalio import activity

from core.config import load_settings
from weighing.orchestrator import BatchWeightOrchestrator, build_orchestrator


# =============================================================================
# Process-wide orchestrator
# =============================================================================

_orchestrator: Optional[BatchWeightOrchestrator] = None


def set_orchestrator(orchestrator: Optional[BatchWeightOrchestrator]) -> None:
    """Install the orchestrator activities use (worker startup, tests)."""
    global _orchestrator
    _orchestrator = orchestrator


def get_orchestrator() -> BatchWeightOrchestrator:
    """Orchestrator for this process, built from the environment on first use."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = build_orchestrator(load_settings())
    return _orchestrator


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class ComputeBatchWeightInput:
    """Input for compute_batch_weight activity.

    Attributes:
        batch_id: Batch (pick list) identifier
        warehouse_id: Warehouse code; the configured default when omitted
    """
    batch_id: str
    warehouse_id: Optional[str] = None


@dataclass
class ComputeBatchWeightOutput:
    """Output from compute_batch_weight activity. Weights are pounds."""
    batch_id: str
    warehouse_id: Optional[str]
    total_items: int
    items_with_weight: int
    average_weight: float
    total_weight: float
    min_weight: float
    max_weight: float
    unique_item_count: int


# =============================================================================
# Activities
# =============================================================================

@activity.defn
async def compute_batch_weight(input: ComputeBatchWeightInput) -> ComputeBatchWeightOutput:
    """Compute the weight summary of one batch.

    Pipeline errors propagate unchanged; the workflow's retry policy decides
    by exception type name which of them are worth retrying.
    """
    activity.logger.info(
        f"Computing weight summary for batch {input.batch_id} "
        f"(attempt {activity.info().attempt})"
    )

    result = await get_orchestrator().compute_batch_weight_summary(
        input.batch_id, input.warehouse_id,
    )

    activity.logger.info(
        f"✓ Batch {result.batch_id}: {result.items_with_weight}/{result.total_items} weighed"
    )
    return ComputeBatchWeightOutput(**result.model_dump())
