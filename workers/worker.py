"""Worker for the batch weight service.

Connects to Temporal, listens on the weights task queue and executes the
batch weight workflow and its activity. The worker builds one orchestrator
at startup; its weight cache lives as long as the process.

Run with --queue <name> to poll a different task queue.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from temporalio.worker import Worker

# Add repo root to path
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from activities.weigh import compute_batch_weight, set_orchestrator
from core.config import load_settings
from core.observability.logging import configure_logging, get_logger
from temporal_client import get_temporal_client
from weighing.orchestrator import build_orchestrator
from workflows.batch_weight_workflow import BatchWeightWorkflow, TASK_QUEUE_WEIGHTS

logger = get_logger(__name__)


async def run_worker(queue: str = TASK_QUEUE_WEIGHTS):
    """Start a worker listening on a task queue.

    Raises:
        ValueError: If settings or Temporal configuration are invalid
        Exception: If connection to Temporal fails
    """
    settings = load_settings()
    configure_logging(settings.log_level, json_format=settings.log_json, force=True)

    orchestrator = build_orchestrator(settings)
    set_orchestrator(orchestrator)

    client = None
    try:
        client = await get_temporal_client()
        logger.info(f"Connected to Temporal: {client.namespace}")

        worker = Worker(
            client,
            task_queue=queue,
            workflows=[BatchWeightWorkflow],
            activities=[compute_batch_weight],
        )
        logger.info(f"Worker running on queue '{queue}' ({settings.transport_mode.value} mode)... (Ctrl+C to stop)")
        await worker.run()

    except KeyboardInterrupt:
        logger.info("Worker interrupted by user")
    finally:
        await orchestrator.close()
        set_orchestrator(None)
        logger.info("Orchestrator closed")


def main():
    """Entry point for worker with CLI args."""
    parser = argparse.ArgumentParser(description="Batch Weight Temporal Worker")
    parser.add_argument(
        "--queue", "-q",
        default=TASK_QUEUE_WEIGHTS,
        help=f"Task queue to poll (default: {TASK_QUEUE_WEIGHTS})"
    )

    args = parser.parse_args()
    asyncio.run(run_worker(queue=args.queue))


if __name__ == "__main__":
    main()
