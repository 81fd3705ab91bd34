"""Connection Registry.

Tracks which remote collection agent currently serves each role and whether
it is reachable. Per role:

    DISCONNECTED --announce_ready(location matches role)--> CONNECTED
    CONNECTED --agent_removed--> DISCONNECTED
    CONNECTED --agent_navigated(location no longer matches)--> DISCONNECTED

An agent that reloads at a new location comes back through announce_ready.
Subscribers are told about every state change, and about extraction results
that agents deliver asynchronously after a navigate-resume.
"""

import asyncio
from dataclasses import dataclass
from enum import Enum
from threading import Lock
from typing import (
    AsyncIterator, Callable, Dict, List, Optional, Set, Union,
)

from core.errors import ErrorKind
from core.observability.logging import get_logger
from models.weights import (
    AgentConnection,
    AgentRole,
    ConnectionState,
    ConnectionStatus,
    ExtractionKind,
)

logger = get_logger(__name__)

REQUIRED_ROLES = (AgentRole.IDENTIFIER_SOURCE, AgentRole.WEIGHT_SOURCE)

DEFAULT_LOCATION_PATTERNS = {
    AgentRole.IDENTIFIER_SOURCE: "rodeo",
    AgentRole.WEIGHT_SOURCE: "fcresearch",
}


class RegistryEventType(str, Enum):
    CONNECTION_CHANGED = "CONNECTION_CHANGED"
    EXTRACTION_DELIVERED = "EXTRACTION_DELIVERED"


@dataclass(frozen=True)
class ExtractionDelivery:
    """Result an agent produced after resuming a ticket."""
    request_id: str
    agent_id: str
    kind: ExtractionKind
    warehouse_id: str
    key: str
    value: Union[List[str], float, None] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def succeeded(self) -> bool:
        return self.error_kind is None and bool(self.value)


@dataclass(frozen=True)
class RegistryEvent:
    """Notification sent to registry subscribers."""
    type: RegistryEventType
    connection: Optional[AgentConnection] = None
    delivery: Optional[ExtractionDelivery] = None

    def to_dict(self) -> Dict:
        body: Dict = {"type": self.type.value}
        if self.connection is not None:
            body["connection"] = self.connection.model_dump(mode="json")
        if self.delivery is not None:
            body["delivery"] = {
                "request_id": self.delivery.request_id,
                "agent_id": self.delivery.agent_id,
                "kind": self.delivery.kind.value,
                "warehouse_id": self.delivery.warehouse_id,
                "key": self.delivery.key,
                "value": self.delivery.value,
                "error_kind": self.delivery.error_kind.value if self.delivery.error_kind else None,
            }
        return body


Subscriber = Callable[[RegistryEvent], None]


class ConnectionRegistry:
    """Sole owner of agent connection state.

    Usage:
        registry = ConnectionRegistry()
        unsubscribe = registry.subscribe(lambda event: print(event.type))
        registry.announce_ready("tab-7", "https://rodeo-iad.amazon.com/IND8/Search")
        registry.missing_roles()  # {AgentRole.WEIGHT_SOURCE}
    """

    def __init__(
        self,
        location_patterns: Optional[Dict[AgentRole, str]] = None,
        required_roles=REQUIRED_ROLES,
    ):
        self.location_patterns = dict(location_patterns or DEFAULT_LOCATION_PATTERNS)
        self.required_roles = tuple(required_roles)
        self._connections: Dict[AgentRole, AgentConnection] = {
            role: AgentConnection(role=role) for role in AgentRole
        }
        self._agents: Dict[str, AgentRole] = {}
        self._subscribers: List[Subscriber] = []
        self._lock = Lock()

    # =========================================================================
    # Queries
    # =========================================================================

    def role_for_location(self, location: Optional[str]) -> Optional[AgentRole]:
        if not location:
            return None
        for role, pattern in self.location_patterns.items():
            if pattern in location:
                return role
        return None

    def connection(self, role: AgentRole) -> AgentConnection:
        with self._lock:
            return self._connections[role]

    def all_connected(self) -> bool:
        return not self.missing_roles()

    def missing_roles(self) -> Set[AgentRole]:
        with self._lock:
            return {
                role for role in self.required_roles
                if not self._connections[role].is_connected
            }

    def status(self) -> ConnectionStatus:
        with self._lock:
            connections = {
                role.value: conn.is_connected for role, conn in self._connections.items()
            }
        missing = self.missing_roles()
        return ConnectionStatus(
            all_connected=not missing,
            missing_roles=sorted(missing, key=lambda r: r.value),
            connections=connections,
        )

    # =========================================================================
    # Transitions
    # =========================================================================

    def announce_ready(self, agent_id: str, location: str) -> Optional[AgentConnection]:
        """An agent finished loading at a location.

        Returns:
            The role's new connection, or None if the location matches no role
        """
        role = self.role_for_location(location)
        if role is None:
            logger.debug(f"Ignoring readiness from {agent_id}: no role matches {location}")
            return None

        connection = AgentConnection(
            role=role,
            state=ConnectionState.CONNECTED,
            agent_id=agent_id,
            last_known_location=location,
        )
        with self._lock:
            previous = self._connections[role]
            if previous.agent_id and previous.agent_id != agent_id:
                self._agents.pop(previous.agent_id, None)
            old_role = self._agents.get(agent_id)
            if old_role is not None and old_role != role:
                self._connections[old_role] = AgentConnection(role=old_role)
            self._agents[agent_id] = role
            self._connections[role] = connection

        logger.info(f"{role.value} connected: {agent_id}", extra_fields={"location": location})
        if old_role is not None and old_role != role:
            self._publish(RegistryEvent(
                RegistryEventType.CONNECTION_CHANGED, connection=AgentConnection(role=old_role),
            ))
        if previous != connection:
            self._publish(RegistryEvent(RegistryEventType.CONNECTION_CHANGED, connection=connection))
        return connection

    def agent_removed(self, agent_id: str) -> None:
        """The agent went away (tab closed, process ended)."""
        self._disconnect(agent_id, reason="removed")

    def agent_navigated(self, agent_id: str, location: str) -> None:
        """The agent moved to a new location.

        Leaving the role's expected location disconnects it. Staying inside
        only updates the last known location.
        """
        with self._lock:
            role = self._agents.get(agent_id)
            if role is None:
                return
            still_matches = self.location_patterns[role] in (location or "")
            if still_matches:
                current = self._connections[role]
                self._connections[role] = current.model_copy(
                    update={"last_known_location": location}
                )
        if not still_matches:
            self._disconnect(agent_id, reason=f"navigated to {location}")

    def _disconnect(self, agent_id: str, reason: str) -> None:
        with self._lock:
            role = self._agents.pop(agent_id, None)
            if role is None or self._connections[role].agent_id != agent_id:
                return
            connection = AgentConnection(
                role=role,
                state=ConnectionState.DISCONNECTED,
                last_known_location=self._connections[role].last_known_location,
            )
            self._connections[role] = connection
        logger.info(f"{role.value} disconnected: {agent_id} ({reason})")
        self._publish(RegistryEvent(RegistryEventType.CONNECTION_CHANGED, connection=connection))

    # =========================================================================
    # Notifications
    # =========================================================================

    def deliver(self, delivery: ExtractionDelivery) -> None:
        """Publish a result produced after an agent resumed a ticket."""
        self._publish(RegistryEvent(RegistryEventType.EXTRACTION_DELIVERED, delivery=delivery))

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """Register a callback for every event. Returns an unsubscribe function."""
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    async def stream(self) -> AsyncIterator[RegistryEvent]:
        """Async iterator over events, for the HTTP change stream."""
        loop = asyncio.get_running_loop()
        queue: "asyncio.Queue[RegistryEvent]" = asyncio.Queue()
        unsubscribe = self.subscribe(
            lambda event: loop.call_soon_threadsafe(queue.put_nowait, event)
        )
        try:
            while True:
                yield await queue.get()
        finally:
            unsubscribe()

    def _publish(self, event: RegistryEvent) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(event)
            except Exception:
                # Remaining subscribers still get the event
                logger.exception(f"Registry subscriber failed on {event.type.value}")
