"""Workflow definitions module."""

from workflows.batch_weight_workflow import BatchWeightWorkflow, TASK_QUEUE_WEIGHTS

__all__ = ["BatchWeightWorkflow", "TASK_QUEUE_WEIGHTS"]
