"""Compute a batch weight summary through Temporal.

Starts a BatchWeightWorkflow for one batch, waits for it, and prints the
summary as JSON with the panel's field names.

Usage:
    python scripts/start_batch_weight.py 1234567890 --warehouse IND8
"""

import argparse
import asyncio
import json
import sys
import time
from pathlib import Path

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activities.weigh import ComputeBatchWeightInput
from core.observability.logging import get_logger
from models.weights import BatchResult
from temporal_client import get_temporal_client
from workflows.batch_weight_workflow import BatchWeightWorkflow, TASK_QUEUE_WEIGHTS

logger = get_logger(__name__)


async def start_batch_weight_workflow(batch_id: str, warehouse_id: str = None, queue: str = TASK_QUEUE_WEIGHTS) -> BatchResult:
    """Run the workflow for one batch and return its summary.

    Raises:
        temporalio.client.WorkflowFailureError: If the workflow fails
    """
    client = await get_temporal_client()
    logger.info(f"Connected to Temporal: {client.namespace}")

    handle = await client.start_workflow(
        BatchWeightWorkflow.run,
        ComputeBatchWeightInput(batch_id=batch_id, warehouse_id=warehouse_id),
        task_queue=queue,
        id=f"batch-weight-{batch_id}-{int(time.time() * 1000)}",
    )
    logger.info(f"Workflow started: {handle.id}")

    output = await handle.result()
    logger.info("✓ Workflow completed successfully")
    return BatchResult(**vars(output))


def main():
    """Entry point."""
    parser = argparse.ArgumentParser(description="Compute a batch weight summary via Temporal")
    parser.add_argument("batch_id", help="Batch (pick list) identifier")
    parser.add_argument("--warehouse", "-w", default=None, help="Warehouse code (default: configured warehouse)")
    parser.add_argument("--queue", "-q", default=TASK_QUEUE_WEIGHTS, help="Task queue")
    args = parser.parse_args()

    try:
        result = asyncio.run(start_batch_weight_workflow(args.batch_id, args.warehouse, args.queue))
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps(result.to_wire(), indent=2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
