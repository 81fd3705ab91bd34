"""
Batch Weight Workflow

Computes a batch weight summary with caller-driven retry. Navigate-resume
agents answer NavigationPending while they reload, and a source can be
briefly unreachable; both are retried with backoff. Failures that retrying
cannot fix are listed in NON_RETRYABLE_ERRORS and end the workflow.
"""

from datetime import timedelta

from temporalio import workflow
from temporalio.common import RetryPolicy

with workflow.unsafe.imports_passed_through():
    from activities.weigh import (
        compute_batch_weight,
        ComputeBatchWeightInput,
        ComputeBatchWeightOutput,
    )
    from core.errors import NON_RETRYABLE_ERRORS


TASK_QUEUE_WEIGHTS = "weights-default"


@workflow.defn
class BatchWeightWorkflow:
    """Weight summary for one batch."""

    @workflow.run
    async def run(self, input: ComputeBatchWeightInput) -> ComputeBatchWeightOutput:
        workflow.logger.info(f"Starting batch weight workflow for {input.batch_id}")

        result = await workflow.execute_activity(
            compute_batch_weight,
            input,
            start_to_close_timeout=timedelta(minutes=5),
            retry_policy=RetryPolicy(
                maximum_attempts=10,
                initial_interval=timedelta(seconds=1),
                maximum_interval=timedelta(seconds=30),
                backoff_coefficient=2.0,
                # Retried: NavigationPending, SourceUnreachable
                non_retryable_error_types=NON_RETRYABLE_ERRORS,
            ),
        )

        workflow.logger.info(
            f"Batch {input.batch_id} complete: average {result.average_weight} lbs"
        )
        return result
