"""Extraction ticket store.

A ticket records an extraction that was in flight when an agent was told to
navigate. Navigation reloads the agent and destroys its in-memory state, so
the ticket is written to this store first and read back by the resume
handler once the agent comes up again at the new location.

Rules:
- At most one unconsumed ticket per agent; issuing a new one replaces it.
- A ticket is consumed exactly once, by a resume or by expiry.
"""

import time
import uuid
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, List, Optional

from core.errors import TicketExpired
from core.observability.logging import get_logger
from models.weights import ExtractionKind

logger = get_logger(__name__)

DEFAULT_TICKET_TTL_SECONDS = 30.0


@dataclass(frozen=True)
class ExtractionTicket:
    """A pending extraction addressed to one agent."""
    request_id: str
    agent_id: str
    target_location: str
    kind: ExtractionKind
    warehouse_id: str
    key: str
    issued_at: float


class ExtractionTicketStore:
    """Process-lifetime ticket store keyed by agent id."""

    def __init__(
        self,
        ttl_seconds: float = DEFAULT_TICKET_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._tickets: Dict[str, ExtractionTicket] = {}
        self._lock = Lock()

    def issue(
        self,
        agent_id: str,
        target_location: str,
        kind: ExtractionKind,
        warehouse_id: str,
        key: str,
    ) -> ExtractionTicket:
        """Write a ticket for an agent, discarding any ticket it already had."""
        ticket = ExtractionTicket(
            request_id=str(uuid.uuid4()),
            agent_id=agent_id,
            target_location=target_location,
            kind=kind,
            warehouse_id=warehouse_id,
            key=key,
            issued_at=self._clock(),
        )
        with self._lock:
            replaced = self._tickets.get(agent_id)
            self._tickets[agent_id] = ticket
        if replaced:
            logger.info(
                f"Ticket {replaced.request_id} for {replaced.key} replaced before resume",
                extra_fields={"agent_id": agent_id},
            )
        return ticket

    def now(self) -> float:
        return self._clock()

    def is_expired(self, ticket: ExtractionTicket) -> bool:
        return self.now() - ticket.issued_at >= self.ttl_seconds

    def pending(self, agent_id: str) -> Optional[ExtractionTicket]:
        """Unconsumed ticket for an agent, without consuming it."""
        with self._lock:
            return self._tickets.get(agent_id)

    def consume(self, agent_id: str) -> Optional[ExtractionTicket]:
        """Remove and return an agent's ticket.

        Returns:
            The ticket, or None if the agent has none (never issued or
            already consumed)

        Raises:
            TicketExpired: The ticket aged out; it is removed all the same
        """
        with self._lock:
            ticket = self._tickets.pop(agent_id, None)
        return self._unless_expired(ticket)

    def consume_request(self, request_id: str) -> Optional[ExtractionTicket]:
        """Consume a ticket by request id. A second call returns None.

        Only the ticket carrying this request id is taken; a newer ticket
        for the same agent stays pending.
        """
        with self._lock:
            ticket = next(
                (t for t in self._tickets.values() if t.request_id == request_id),
                None,
            )
            if ticket is not None:
                del self._tickets[ticket.agent_id]
        return self._unless_expired(ticket)

    def _unless_expired(self, ticket: Optional[ExtractionTicket]) -> Optional[ExtractionTicket]:
        if ticket is None:
            return None
        if self.is_expired(ticket):
            raise TicketExpired(
                f"Ticket {ticket.request_id} for {ticket.key} expired before resume",
                {
                    "request_id": ticket.request_id,
                    "agent_id": ticket.agent_id,
                    "kind": ticket.kind.value,
                    "warehouse_id": ticket.warehouse_id,
                    "key": ticket.key,
                },
            )
        return ticket

    def purge_expired(self) -> List[ExtractionTicket]:
        """Drop every expired ticket and return them."""
        with self._lock:
            expired = [t for t in self._tickets.values() if self.is_expired(t)]
            for ticket in expired:
                del self._tickets[ticket.agent_id]
        return expired

    def __len__(self) -> int:
        with self._lock:
            return len(self._tickets)
