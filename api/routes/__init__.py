"""API Routes Package."""

from api.routes import health, batches, status, agents

__all__ = [
    "health",
    "batches",
    "status",
    "agents",
]
