"""FastAPI server for the batch weight service.

Main entry point for the API server.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.errors import weight_service_error_handler
from api.routes import agents, batches, health, status
from core import __version__
from core.config import load_settings
from core.errors import WeightServiceError
from core.observability.logging import configure_logging, get_logger
from weighing.orchestrator import BatchWeightOrchestrator, build_orchestrator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler.

    Builds a direct-mode orchestrator from the environment unless one was
    passed to create_app().
    """
    owned = app.state.orchestrator is None
    if owned:
        settings = load_settings()
        configure_logging(settings.log_level, json_format=settings.log_json, force=True)
        app.state.orchestrator = build_orchestrator(settings)
    logger.info(
        f"Batch weight API starting up ({app.state.orchestrator.settings.transport_mode.value} mode)"
    )

    yield

    logger.info("Batch weight API shutting down")
    if owned:
        await app.state.orchestrator.close()
        app.state.orchestrator = None


def create_app(orchestrator: Optional[BatchWeightOrchestrator] = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        orchestrator: Pre-built orchestrator (navigate deployments, tests).
            The caller owns its lifetime.
    """
    app = FastAPI(
        title="Batch Weight API",
        description="Average, total, min and max item weight for warehouse pick batches",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )
    app.state.orchestrator = orchestrator

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(WeightServiceError, weight_service_error_handler)

    # Include routers
    app.include_router(health.router, tags=["Health"])
    app.include_router(batches.router, tags=["Batches"])
    app.include_router(status.router, prefix="/status", tags=["Status"])
    app.include_router(agents.router, prefix="/agents", tags=["Agents"])

    return app


# Default app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("api.server:app", host="0.0.0.0", port=8000, reload=True)
