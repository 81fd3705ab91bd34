"""Request-scoped access to application state."""

from fastapi import Request

from weighing.orchestrator import BatchWeightOrchestrator


def get_orchestrator(request: Request) -> BatchWeightOrchestrator:
    """The orchestrator created at startup."""
    return request.app.state.orchestrator
