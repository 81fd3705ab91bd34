"""Batch weight endpoints."""

from typing import Dict, Optional

from fastapi import APIRouter, Depends, Query

from api.dependencies import get_orchestrator
from core.observability.logging import get_logger
from weighing.orchestrator import BatchWeightOrchestrator

logger = get_logger(__name__)

router = APIRouter()


@router.post("/batches/{batch_id}/weight-summary")
async def compute_weight_summary(
    batch_id: str,
    warehouse_id: Optional[str] = Query(None, description="Warehouse code; configured default if omitted"),
    orchestrator: BatchWeightOrchestrator = Depends(get_orchestrator),
) -> Dict:
    """Compute average, total, min and max item weight for a batch.

    Errors come back as {"error": message, "kind": kind}.
    """
    result = await orchestrator.compute_batch_weight_summary(batch_id, warehouse_id)
    return result.to_wire()


@router.delete("/cache")
async def clear_cache(
    orchestrator: BatchWeightOrchestrator = Depends(get_orchestrator),
) -> Dict[str, bool]:
    """Drop every cached weight."""
    orchestrator.clear_cache()
    return {"success": True}
