"""Agent lifecycle endpoints.

Remote collection agents (or the environment hosting them) report readiness,
navigation and removal here. Each call is a Connection Registry transition.
"""

from typing import Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from api.dependencies import get_orchestrator
from models.weights import AgentConnection
from weighing.orchestrator import BatchWeightOrchestrator


router = APIRouter()


class AgentReadyRequest(BaseModel):
    """An agent finished loading at a location."""
    agent_id: str = Field(..., min_length=1)
    location: str = Field(..., min_length=1)


class AgentNavigatedRequest(BaseModel):
    """An agent moved to a new location."""
    location: str


class AgentReadyResponse(BaseModel):
    accepted: bool
    connection: Optional[AgentConnection] = None


@router.post("/ready", response_model=AgentReadyResponse)
async def agent_ready(
    request: AgentReadyRequest,
    orchestrator: BatchWeightOrchestrator = Depends(get_orchestrator),
) -> AgentReadyResponse:
    """Register readiness. Locations matching no role are ignored."""
    connection = orchestrator.registry.announce_ready(request.agent_id, request.location)
    return AgentReadyResponse(accepted=connection is not None, connection=connection)


@router.post("/{agent_id}/navigated")
async def agent_navigated(
    agent_id: str,
    request: AgentNavigatedRequest,
    orchestrator: BatchWeightOrchestrator = Depends(get_orchestrator),
) -> Dict[str, bool]:
    orchestrator.registry.agent_navigated(agent_id, request.location)
    return {"success": True}


@router.delete("/{agent_id}")
async def agent_removed(
    agent_id: str,
    orchestrator: BatchWeightOrchestrator = Depends(get_orchestrator),
) -> Dict[str, bool]:
    orchestrator.registry.agent_removed(agent_id)
    return {"success": True}
