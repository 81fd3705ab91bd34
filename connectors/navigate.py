"""Navigate-resume extraction client.

Some sources can only be read from inside a live agent resident in a page.
Reaching a different record means navigating that page, and the reload
destroys whatever request context the agent held. The flow is:

1. If the agent already sits at the target location, extract right away.
2. Otherwise write an ExtractionTicket, tell the agent to navigate, and raise
   NavigationPending. The caller is expected to retry.
3. When the agent comes up at the new location, ResumeHandler consumes the
   ticket, waits (bounded) for the content to render, extracts, and delivers
   the result through the Connection Registry.

A host works through one ticket at a time. While its ticket is live, further
requests for that host raise NavigationPending without navigating, so the
pending resume is never overwritten. Delivered identifier lists are
remembered by the client until the ticket TTL passes, so the caller's retry
is answered without another navigation. Delivered weights are not
remembered here; the orchestrator caches them.
"""

import asyncio
from typing import Dict, Optional, Protocol, Tuple, runtime_checkable

from connectors.base import (
    ExtractionRequest,
    ExtractionValue,
    RemoteExtractionClient,
    TargetBuilder,
    parse_extraction,
)
from connectors.registry import (
    ConnectionRegistry,
    ExtractionDelivery,
    RegistryEvent,
    RegistryEventType,
)
from core.errors import (
    ErrorKind,
    ExtractionNotFound,
    NavigationPending,
    TicketExpired,
)
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import MetricsCollector, get_metrics
from extraction.patterns import has_materialized_content
from models.weights import ExtractionKind
from storage.tickets import ExtractionTicket, ExtractionTicketStore

logger = get_logger(__name__)

DEFAULT_CONTENT_TIMEOUT_SECONDS = 5.0
DEFAULT_POLL_INTERVAL_SECONDS = 0.2


@runtime_checkable
class AgentHost(Protocol):
    """A live agent resident in a navigable page.

    Supplied by the embedding environment (browser automation, an extension
    bridge, a test double).
    """

    agent_id: str

    @property
    def location(self) -> str:
        """Current location of the page."""
        ...

    async def navigate(self, url: str) -> None:
        """Start loading a new location. The agent's in-memory state is lost."""
        ...

    async def read_markup(self) -> str:
        """Current rendered markup of the page."""
        ...


async def wait_for_content(
    host: AgentHost,
    timeout: float = DEFAULT_CONTENT_TIMEOUT_SECONDS,
    poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
) -> Optional[str]:
    """Poll the host until its page shows content.

    Returns:
        The markup once it has materialized, or None on timeout
    """
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while True:
        markup = await host.read_markup()
        if has_materialized_content(markup):
            return markup
        if loop.time() >= deadline:
            logger.info(f"Content did not materialize on {host.agent_id} within {timeout}s")
            return None
        await asyncio.sleep(poll_interval)


DeliveryKey = Tuple[ExtractionKind, str, str]

# Weights are cached by the orchestrator, so only these kinds are memoized
MEMOIZED_KINDS = frozenset({ExtractionKind.IDENTIFIERS})


class NavigateResumeClient(RemoteExtractionClient):
    """Extraction client that drives live agent hosts.

    Usage:
        client = NavigateResumeClient(
            hosts={ExtractionKind.IDENTIFIERS: rodeo_host, ExtractionKind.WEIGHT: research_host},
            targets=targets, tickets=tickets, registry=registry,
        )
        try:
            weight = await client.fetch_weight("IND8", "X001ABCDEFG")
        except NavigationPending:
            ...  # retry after the host reloads
    """

    def __init__(
        self,
        hosts: Dict[ExtractionKind, AgentHost],
        targets: TargetBuilder,
        tickets: ExtractionTicketStore,
        registry: ConnectionRegistry,
        content_timeout: float = DEFAULT_CONTENT_TIMEOUT_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.hosts = dict(hosts)
        self.targets = targets
        self.tickets = tickets
        self.registry = registry
        self.content_timeout = content_timeout
        self.poll_interval = poll_interval
        self._metrics = metrics or get_metrics()
        self._delivered: Dict[DeliveryKey, Tuple[float, ExtractionValue]] = {}
        self._unsubscribe = registry.subscribe(self._on_registry_event)

    def _on_registry_event(self, event: RegistryEvent) -> None:
        if event.type != RegistryEventType.EXTRACTION_DELIVERED:
            return
        delivery = event.delivery
        if delivery is None or not delivery.succeeded or delivery.kind not in MEMOIZED_KINDS:
            return
        self._purge_delivered()
        key = (delivery.kind, delivery.warehouse_id, delivery.key)
        self._delivered[key] = (self.tickets.now(), delivery.value)

    def _purge_delivered(self) -> None:
        now = self.tickets.now()
        for key, (delivered_at, _) in list(self._delivered.items()):
            if now - delivered_at >= self.tickets.ttl_seconds:
                del self._delivered[key]

    async def close(self) -> None:
        self._unsubscribe()

    async def extract(self, request: ExtractionRequest) -> ExtractionValue:
        """Extract from the host, or start a navigation and raise NavigationPending.

        Raises:
            NavigationPending: The host was sent to the target, or is still
                busy with an earlier ticket; retry later
            ExtractionNotFound: The host is at the target but shows no data
        """
        self._purge_delivered()
        delivered = self._delivered.pop((request.kind, request.warehouse_id, request.key), None)
        if delivered is not None:
            self._metrics.record_remote_attempt("delivered")
            logger.debug(f"Using delivered {request.kind.value.lower()} for {request.key}")
            return delivered[1]

        host = self.hosts.get(request.kind)
        if host is None:
            raise ValueError(f"No agent host configured for {request.kind.value}")
        target = self.targets.primary(request)

        if host.location == target:
            markup = await wait_for_content(host, self.content_timeout, self.poll_interval)
            if markup is None:
                self._metrics.record_remote_attempt("not_found")
                raise ExtractionNotFound(
                    f"Content for {request.key} did not load within {self.content_timeout}s",
                    {"key": request.key, "agent_id": host.agent_id},
                )
            try:
                value = parse_extraction(request, markup)
            except ExtractionNotFound:
                self._metrics.record_remote_attempt("not_found")
                raise
            self._metrics.record_remote_attempt("success")
            return value

        busy = self.tickets.pending(host.agent_id)
        if busy is not None and not self.tickets.is_expired(busy):
            self._metrics.record_remote_attempt("navigation_pending")
            logger.debug(
                f"{host.agent_id} is still resolving {busy.key}; not navigating for {request.key}"
            )
            raise NavigationPending(
                f"Agent {host.agent_id} is busy, please retry",
                {"request_id": busy.request_id, "agent_id": host.agent_id, "key": request.key},
            )

        ticket = self.tickets.issue(
            host.agent_id, target, request.kind, request.warehouse_id, request.key,
        )
        with with_correlation(request_id=ticket.request_id, agent_id=host.agent_id):
            logger.info(f"Navigating {host.agent_id} to resolve {request.key}", extra_fields={"target": target})
            await host.navigate(target)
        self._metrics.record_remote_attempt("navigation_pending")
        raise NavigationPending(
            f"Navigation in progress for {request.key}, please retry",
            {"request_id": ticket.request_id, "agent_id": host.agent_id, "key": request.key},
        )


class ResumeHandler:
    """Runs when an agent host (re)initializes at a location.

    Announces the host to the registry, then resumes the host's pending
    ticket if one exists. Results go out through registry.deliver().
    """

    def __init__(
        self,
        tickets: ExtractionTicketStore,
        registry: ConnectionRegistry,
        content_timeout: float = DEFAULT_CONTENT_TIMEOUT_SECONDS,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
    ):
        self.tickets = tickets
        self.registry = registry
        self.content_timeout = content_timeout
        self.poll_interval = poll_interval

    async def on_host_ready(self, host: AgentHost) -> Optional[ExtractionDelivery]:
        """Announce the host and resume its pending ticket, if any."""
        self.registry.announce_ready(host.agent_id, host.location)
        try:
            ticket = self.tickets.consume(host.agent_id)
        except TicketExpired as e:
            return self._deliver_expired(e)
        if ticket is None:
            return None
        return await self.resume(host, ticket)

    async def resume_request(self, host: AgentHost, request_id: str) -> Optional[ExtractionDelivery]:
        """Resume a specific ticket. A ticket already consumed yields None."""
        try:
            ticket = self.tickets.consume_request(request_id)
        except TicketExpired as e:
            return self._deliver_expired(e)
        if ticket is None:
            logger.debug(f"No pending ticket {request_id}; nothing to resume")
            return None
        return await self.resume(host, ticket)

    async def resume(self, host: AgentHost, ticket: ExtractionTicket) -> ExtractionDelivery:
        """Extract for a consumed ticket and deliver the outcome."""
        request = ExtractionRequest(ticket.kind, ticket.warehouse_id, ticket.key)
        value = None
        error_kind = None

        with with_correlation(request_id=ticket.request_id, agent_id=host.agent_id):
            if host.location != ticket.target_location:
                logger.warning(
                    f"Host is at {host.location}, not the ticket target; skipping extraction",
                    extra_fields={"target": ticket.target_location},
                )
                error_kind = ErrorKind.NOT_FOUND
            else:
                markup = await wait_for_content(host, self.content_timeout, self.poll_interval)
                if markup is None:
                    error_kind = ErrorKind.NOT_FOUND
                else:
                    try:
                        value = parse_extraction(request, markup)
                    except ExtractionNotFound:
                        error_kind = ErrorKind.NOT_FOUND

            logger.info(
                f"Resumed {ticket.kind.value.lower()} for {ticket.key}: "
                f"{'found' if error_kind is None else error_kind.value}"
            )

        delivery = ExtractionDelivery(
            request_id=ticket.request_id,
            agent_id=host.agent_id,
            kind=ticket.kind,
            warehouse_id=ticket.warehouse_id,
            key=ticket.key,
            value=value,
            error_kind=error_kind,
        )
        self.registry.deliver(delivery)
        return delivery

    def _deliver_expired(self, error: TicketExpired) -> ExtractionDelivery:
        logger.warning(error.message)
        details = error.details
        delivery = ExtractionDelivery(
            request_id=details["request_id"],
            agent_id=details["agent_id"],
            kind=ExtractionKind(details["kind"]),
            warehouse_id=details["warehouse_id"],
            key=details["key"],
            error_kind=ErrorKind.TICKET_EXPIRED,
        )
        self.registry.deliver(delivery)
        return delivery
