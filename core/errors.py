"""Typed errors for the batch weight pipeline.

Every failure the pipeline can surface is a WeightServiceError carrying a
structured ErrorKind and a human-readable message. Item-level failures are
caught by the fan-out fetcher and recorded against the item; batch-level
failures propagate to the caller unchanged.
"""

from enum import Enum
from typing import Any, Dict, Iterable, List, Optional


class ErrorKind(str, Enum):
    """Structured failure kinds."""
    SOURCE_UNREACHABLE = "SourceUnreachable"
    AUTH_REQUIRED = "AuthRequired"
    NOT_FOUND = "NotFound"
    NO_IDENTIFIERS_FOUND = "NoIdentifiersFound"
    NO_WEIGHTS_RESOLVED = "NoWeightsResolved"
    NAVIGATION_PENDING = "NavigationPending"
    TICKET_EXPIRED = "TicketExpired"
    AGENT_DISCONNECTED = "AgentDisconnected"


class WeightServiceError(Exception):
    """Base exception for all pipeline failures."""
    kind: ErrorKind = ErrorKind.SOURCE_UNREACHABLE
    transient: bool = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Wire representation used by the HTTP surface."""
        body: Dict[str, Any] = {"error": self.message, "kind": self.kind.value}
        if self.details:
            body["details"] = self.details
        return body


class SourceUnreachable(WeightServiceError):
    """No candidate target could be reached."""
    kind = ErrorKind.SOURCE_UNREACHABLE


class AuthRequired(WeightServiceError):
    """Every candidate target resolved to an authentication page."""
    kind = ErrorKind.AUTH_REQUIRED


class ExtractionNotFound(WeightServiceError):
    """The source was reachable and parsed, but held no matching data."""
    kind = ErrorKind.NOT_FOUND


class NoIdentifiersFound(WeightServiceError):
    """The batch resolved to an empty identifier list."""
    kind = ErrorKind.NO_IDENTIFIERS_FOUND


class NoWeightsResolved(WeightServiceError):
    """No identifier in the batch resolved to a weight."""
    kind = ErrorKind.NO_WEIGHTS_RESOLVED


class NavigationPending(WeightServiceError):
    """The agent was sent to a new location; retry once it has reloaded."""
    kind = ErrorKind.NAVIGATION_PENDING
    transient = True


class TicketExpired(WeightServiceError):
    """An extraction ticket aged out before the agent resumed it."""
    kind = ErrorKind.TICKET_EXPIRED


class AgentDisconnected(WeightServiceError):
    """A required agent role is not connected."""
    kind = ErrorKind.AGENT_DISCONNECTED

    def __init__(self, missing_roles: Iterable[Any], message: Optional[str] = None):
        roles: List[str] = sorted(getattr(r, "value", str(r)) for r in missing_roles)
        super().__init__(
            message or f"Required agents not connected: {', '.join(roles)}",
            {"missing_roles": roles},
        )
        self.missing_roles = roles


# Errors that abort a whole batch request. Used by the workflow retry policy.
NON_RETRYABLE_ERRORS = [
    "NoIdentifiersFound",
    "NoWeightsResolved",
    "AgentDisconnected",
    "AuthRequired",
]
