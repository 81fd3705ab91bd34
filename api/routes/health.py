"""Health check endpoints."""

from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel

from api.dependencies import get_orchestrator
from core import __version__
from weighing.orchestrator import BatchWeightOrchestrator


router = APIRouter()


class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    timestamp: str
    version: str
    services: Dict[str, str]


@router.get("/health", response_model=HealthResponse)
async def health_check(
    orchestrator: BatchWeightOrchestrator = Depends(get_orchestrator),
) -> HealthResponse:
    """Health check endpoint."""
    status = orchestrator.get_connection_status()
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc).isoformat(),
        version=__version__,
        services={
            "api": "up",
            "transport": orchestrator.settings.transport_mode.value,
            "agents": "connected" if status.all_connected else "partial",
        },
    )


@router.get("/ready")
async def readiness_check(
    response: Response,
    orchestrator: BatchWeightOrchestrator = Depends(get_orchestrator),
) -> Dict[str, str]:
    """Readiness probe. Navigate mode is ready only with every agent connected."""
    if orchestrator.requires_agents and not orchestrator.registry.all_connected():
        response.status_code = 503
        return {"status": "waiting_for_agents"}
    return {"status": "ready"}


@router.get("/live")
async def liveness_check() -> Dict[str, str]:
    """Liveness probe for Kubernetes."""
    return {"status": "alive"}
