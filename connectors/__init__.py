"""Remote extraction connectors.

This package contains the abstract extraction interface, the two transport
modes that implement it, and the Connection Registry that tracks which agent
serves each role.

Key Design Principle:
- The weighing pipeline depends ONLY on the RemoteExtractionClient interface
- Transport details (HTTP sessions, live agent hosts, tickets) stay in here
"""

from connectors.base import (
    ExtractionRequest,
    ExtractionValue,
    RemoteExtractionClient,
    TargetBuilder,
    looks_like_auth_page,
    parse_extraction,
)
from connectors.direct import DirectExtractionClient
from connectors.navigate import (
    AgentHost,
    NavigateResumeClient,
    ResumeHandler,
    wait_for_content,
)
from connectors.registry import (
    REQUIRED_ROLES,
    ConnectionRegistry,
    ExtractionDelivery,
    RegistryEvent,
    RegistryEventType,
)

__all__ = [
    # Interface
    "ExtractionRequest",
    "ExtractionValue",
    "RemoteExtractionClient",
    "TargetBuilder",
    "looks_like_auth_page",
    "parse_extraction",
    # Transports
    "DirectExtractionClient",
    "AgentHost",
    "NavigateResumeClient",
    "ResumeHandler",
    "wait_for_content",
    # Registry
    "REQUIRED_ROLES",
    "ConnectionRegistry",
    "ExtractionDelivery",
    "RegistryEvent",
    "RegistryEventType",
]
