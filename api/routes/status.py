"""Connection status endpoints."""

import json
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from api.dependencies import get_orchestrator
from models.weights import AgentRole
from weighing.orchestrator import BatchWeightOrchestrator


router = APIRouter()


class StatusResponse(BaseModel):
    """Agent connections, cache size and pipeline metrics."""
    transport_mode: str
    all_connected: bool
    missing_roles: List[AgentRole]
    connections: Dict[str, bool]
    cache_size: Optional[int] = None
    metrics: Dict[str, Any]


@router.get("", response_model=StatusResponse)
async def get_status(
    orchestrator: BatchWeightOrchestrator = Depends(get_orchestrator),
) -> StatusResponse:
    """Current connection status."""
    status = orchestrator.get_connection_status()
    return StatusResponse(
        transport_mode=orchestrator.settings.transport_mode.value,
        metrics=orchestrator.metrics.get_summary(),
        **status.model_dump(),
    )


async def _event_stream(orchestrator: BatchWeightOrchestrator) -> AsyncIterator[str]:
    snapshot = orchestrator.get_connection_status().model_dump(mode="json")
    yield f"event: snapshot\ndata: {json.dumps(snapshot)}\n\n"
    async for event in orchestrator.registry.stream():
        yield f"event: {event.type.value.lower()}\ndata: {json.dumps(event.to_dict())}\n\n"


@router.get("/stream")
async def stream_status(
    orchestrator: BatchWeightOrchestrator = Depends(get_orchestrator),
) -> StreamingResponse:
    """Server-sent events: a snapshot, then every registry change."""
    return StreamingResponse(
        _event_stream(orchestrator),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache"},
    )
