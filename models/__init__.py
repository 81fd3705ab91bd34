"""Models Package.

Data models for the batch weight service.
"""

from models.weights import (
    AgentConnection,
    AgentRole,
    BatchResult,
    ConnectionState,
    ConnectionStatus,
    ExtractionKind,
    ItemDetails,
)

__all__ = [
    "AgentConnection",
    "AgentRole",
    "BatchResult",
    "ConnectionState",
    "ConnectionStatus",
    "ExtractionKind",
    "ItemDetails",
]
