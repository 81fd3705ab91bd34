"""Orchestrator.

Entry point of the weighing pipeline: enforces the agent preconditions,
resolves the batch to identifiers, fans out for weights and aggregates.

Usage:
    orchestrator = build_orchestrator(load_settings())
    result = await orchestrator.compute_batch_weight_summary("1234567890", "IND8")
    result.to_wire()  # {"batchId": ..., "averageWeight": ..., ...}
"""

import time
from dataclasses import replace
from typing import Optional

import aiohttp

from connectors.base import RemoteExtractionClient, TargetBuilder
from connectors.direct import DirectExtractionClient
from connectors.navigate import AgentHost, NavigateResumeClient, ResumeHandler
from connectors.registry import ConnectionRegistry, RegistryEvent, RegistryEventType
from core.config import TransportMode, WeightSettings
from core.errors import (
    AgentDisconnected,
    ErrorKind,
    NavigationPending,
    WeightServiceError,
)
from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import MetricsCollector, get_metrics
from extraction.patterns import warehouse_from_location
from models.weights import AgentRole, BatchResult, ConnectionStatus, ExtractionKind
from storage.tickets import ExtractionTicketStore
from storage.weight_cache import WeightCache
from weighing.aggregator import aggregate
from weighing.fetcher import BoundedFanoutFetcher
from weighing.resolver import BatchResolver

logger = get_logger(__name__)


class BatchWeightOrchestrator:
    """Computes batch weight summaries.

    All collaborators are injected; build_orchestrator() and
    build_navigate_orchestrator() wire the standard deployments.
    """

    def __init__(
        self,
        client: RemoteExtractionClient,
        cache: WeightCache,
        registry: ConnectionRegistry,
        tickets: ExtractionTicketStore,
        settings: WeightSettings,
        resume_handler: Optional[ResumeHandler] = None,
        metrics: Optional[MetricsCollector] = None,
    ):
        self.client = client
        self.cache = cache
        self.registry = registry
        self.tickets = tickets
        self.settings = settings
        self.resume_handler = resume_handler
        self._metrics = metrics or get_metrics()

        self.resolver = BatchResolver(client)
        self.fetcher = BoundedFanoutFetcher(
            client, cache, concurrency=settings.effective_concurrency, metrics=self._metrics,
        )
        self._unsubscribe = registry.subscribe(self._on_registry_event)

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def requires_agents(self) -> bool:
        return self.settings.transport_mode == TransportMode.NAVIGATE

    async def compute_batch_weight_summary(
        self,
        batch_id: str,
        warehouse_id: Optional[str] = None,
    ) -> BatchResult:
        """Resolve a batch and summarize its item weights.

        Args:
            batch_id: Batch (pick list) identifier
            warehouse_id: Warehouse code; defaults to the identifier agent's
                warehouse in navigate mode, else settings.default_warehouse

        Raises:
            AgentDisconnected: Navigate mode and a required agent is not connected
            NoIdentifiersFound: The batch holds no identifiers
            NoWeightsResolved: No identifier resolved to a weight
            NavigationPending: Some items are still waiting on an agent navigation;
                a summary is only produced once every item has settled
            SourceUnreachable, AuthRequired: Identifier lookup failed
        """
        warehouse_id = warehouse_id or self._default_warehouse()
        started = time.monotonic()

        with with_correlation(batch_id=batch_id, warehouse_id=warehouse_id):
            self._metrics.record_batch_started()
            try:
                result = await self._compute(batch_id, warehouse_id)
            except WeightServiceError as e:
                self._metrics.record_batch_failed(e.kind.value)
                logger.warning(f"Batch {batch_id} failed: {e.kind.value}: {e.message}")
                raise
            except Exception:
                self._metrics.record_batch_failed("Unexpected")
                raise

            duration_ms = (time.monotonic() - started) * 1000
            self._metrics.record_batch_completed(duration_ms)
            logger.info(
                f"Batch {batch_id}: {result.items_with_weight}/{result.total_items} weighed, "
                f"average {result.average_weight} lbs",
                extra_fields={"duration_ms": round(duration_ms, 1)},
            )
            return result

    async def _compute(self, batch_id: str, warehouse_id: str) -> BatchResult:
        if self.requires_agents:
            missing = self.registry.missing_roles()
            if missing:
                raise AgentDisconnected(missing)

        with with_correlation(stage="resolve"):
            item_ids = await self.resolver.resolve(warehouse_id, batch_id)

        report = await self.fetcher.fetch_report(warehouse_id, item_ids)

        pending = report.failed_with(ErrorKind.NAVIGATION_PENDING)
        if pending:
            raise NavigationPending(
                f"Weights for batch {batch_id} are still being collected "
                f"({len(report.weights)} resolved, {len(pending)} pending), please retry",
                {"batch_id": batch_id, "pending_items": pending, "resolved": len(report.weights)},
            )

        with with_correlation(stage="aggregate"):
            return aggregate(batch_id, item_ids, report.weights, warehouse_id)

    def _default_warehouse(self) -> str:
        """Navigate mode reads the warehouse from the identifier agent's location."""
        if self.requires_agents:
            location = self.registry.connection(AgentRole.IDENTIFIER_SOURCE).last_known_location
            return warehouse_from_location(location, self.settings.default_warehouse)
        return self.settings.default_warehouse

    def clear_cache(self) -> None:
        """Drop every cached weight."""
        self.cache.clear()

    def get_connection_status(self) -> ConnectionStatus:
        """Registry snapshot plus the number of cached weights."""
        status = self.registry.status()
        return status.model_copy(update={"cache_size": len(self.cache)})

    def _on_registry_event(self, event: RegistryEvent) -> None:
        if event.type != RegistryEventType.EXTRACTION_DELIVERED:
            return
        delivery = event.delivery
        if delivery is None or not delivery.succeeded or delivery.kind != ExtractionKind.WEIGHT:
            return
        self.cache.put(delivery.warehouse_id, delivery.key, float(delivery.value))
        logger.debug(f"Cached delivered weight for {delivery.key}")

    async def close(self) -> None:
        self._unsubscribe()
        await self.client.close()


def _build_registry(settings: WeightSettings) -> ConnectionRegistry:
    return ConnectionRegistry(location_patterns={
        AgentRole.IDENTIFIER_SOURCE: settings.identifier_location_pattern,
        AgentRole.WEIGHT_SOURCE: settings.weight_location_pattern,
    })


def _build_targets(settings: WeightSettings) -> TargetBuilder:
    return TargetBuilder({
        ExtractionKind.IDENTIFIERS: settings.identifier_urls,
        ExtractionKind.WEIGHT: settings.weight_urls,
    })


def build_orchestrator(
    settings: WeightSettings,
    session: Optional[aiohttp.ClientSession] = None,
    metrics: Optional[MetricsCollector] = None,
) -> BatchWeightOrchestrator:
    """Wire a direct-mode orchestrator.

    Raises:
        ValueError: settings ask for navigate mode, which needs agent hosts
    """
    if settings.transport_mode != TransportMode.DIRECT:
        raise ValueError("Navigate mode needs agent hosts; use build_navigate_orchestrator()")

    metrics = metrics or get_metrics()
    client = DirectExtractionClient(
        _build_targets(settings),
        session=session,
        timeout_seconds=settings.http_timeout_seconds,
        auth_min_body_length=settings.auth_min_body_length,
        metrics=metrics,
    )
    return BatchWeightOrchestrator(
        client=client,
        cache=WeightCache(settings.cache_ttl_seconds, metrics=metrics),
        registry=_build_registry(settings),
        tickets=ExtractionTicketStore(settings.ticket_ttl_seconds),
        settings=settings,
        metrics=metrics,
    )


def build_navigate_orchestrator(
    settings: WeightSettings,
    identifier_host: AgentHost,
    weight_host: AgentHost,
    metrics: Optional[MetricsCollector] = None,
) -> BatchWeightOrchestrator:
    """Wire a navigate-resume orchestrator around two live agent hosts.

    The hosts are announced to the registry at their current locations. The
    embedding environment calls orchestrator.resume_handler.on_host_ready()
    whenever a host finishes loading.
    """
    if settings.transport_mode != TransportMode.NAVIGATE:
        settings = replace(settings, transport_mode=TransportMode.NAVIGATE)

    metrics = metrics or get_metrics()
    registry = _build_registry(settings)
    tickets = ExtractionTicketStore(settings.ticket_ttl_seconds)
    client = NavigateResumeClient(
        hosts={
            ExtractionKind.IDENTIFIERS: identifier_host,
            ExtractionKind.WEIGHT: weight_host,
        },
        targets=_build_targets(settings),
        tickets=tickets,
        registry=registry,
        content_timeout=settings.content_timeout_seconds,
        poll_interval=settings.content_poll_seconds,
        metrics=metrics,
    )
    resume_handler = ResumeHandler(
        tickets,
        registry,
        content_timeout=settings.content_timeout_seconds,
        poll_interval=settings.content_poll_seconds,
    )
    for host in (identifier_host, weight_host):
        registry.announce_ready(host.agent_id, host.location)

    return BatchWeightOrchestrator(
        client=client,
        cache=WeightCache(settings.cache_ttl_seconds, metrics=metrics),
        registry=registry,
        tickets=tickets,
        settings=settings,
        resume_handler=resume_handler,
        metrics=metrics,
    )
