"""Direct-mode extraction client.

Fetches each candidate target location over HTTP with aiohttp and parses the
first usable response. Candidates are tried in priority order; a candidate is
skipped when it cannot be reached, answers with an error status, or answers
with an authentication/redirect page. Ambient credentials (session cookies)
come from the session the caller supplies.
"""

import asyncio
import time
from typing import Dict, List, Optional

import aiohttp

from connectors.base import (
    ExtractionRequest,
    ExtractionValue,
    RemoteExtractionClient,
    TargetBuilder,
    looks_like_auth_page,
    parse_extraction,
)
from core.config import WeightSettings
from core.errors import AuthRequired, ExtractionNotFound, SourceUnreachable
from core.observability.logging import get_logger
from core.observability.metrics import MetricsCollector, get_metrics
from models.weights import ExtractionKind

logger = get_logger(__name__)

HTML_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
}


class DirectExtractionClient(RemoteExtractionClient):
    """HTTP client that extracts identifiers and weights from source pages.

    Usage:
        async with DirectExtractionClient(targets) as client:
            ids = await client.fetch_identifiers("IND8", "1234567890")
            weight = await client.fetch_weight("IND8", ids[0])
    """

    def __init__(
        self,
        targets: TargetBuilder,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_seconds: float = 30.0,
        auth_min_body_length: int = 64,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Initialize the client.

        Args:
            targets: Candidate target builder (fallback order = template order)
            session: Session carrying ambient credentials; one is created if omitted
            timeout_seconds: Total timeout per candidate request
            auth_min_body_length: Bodies shorter than this count as auth pages
            metrics: Metrics collector (defaults to the process-wide one)
        """
        self.targets = targets
        self.timeout_seconds = timeout_seconds
        self.auth_min_body_length = auth_min_body_length
        self._metrics = metrics or get_metrics()
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_settings(
        cls,
        settings: WeightSettings,
        session: Optional[aiohttp.ClientSession] = None,
        metrics: Optional[MetricsCollector] = None,
    ) -> "DirectExtractionClient":
        targets = TargetBuilder({
            ExtractionKind.IDENTIFIERS: settings.identifier_urls,
            ExtractionKind.WEIGHT: settings.weight_urls,
        })
        return cls(
            targets,
            session=session,
            timeout_seconds=settings.http_timeout_seconds,
            auth_min_body_length=settings.auth_min_body_length,
            metrics=metrics,
        )

    async def __aenter__(self) -> "DirectExtractionClient":
        self._get_session()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or getattr(self._session, "closed", False):
            self._session = aiohttp.ClientSession()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._session is not None and self._owns_session:
            await self._session.close()
        self._session = None

    async def extract(self, request: ExtractionRequest) -> ExtractionValue:
        """Try each candidate target until one yields a usable page.

        Raises:
            ExtractionNotFound: A candidate answered but held no matching data
            AuthRequired: Every candidate answered with an authentication page
            SourceUnreachable: No candidate could be used
        """
        candidates = self.targets.targets(request)
        outcomes: List[str] = []

        for index, url in enumerate(candidates):
            started = time.monotonic()
            outcome, body = await self._attempt(url)
            duration_ms = (time.monotonic() - started) * 1000
            outcomes.append(outcome)

            if outcome != "usable":
                self._metrics.record_remote_attempt(outcome, duration_ms)
                logger.warning(
                    f"Candidate {index + 1}/{len(candidates)} for {request.key} skipped: {outcome}",
                    extra_fields={"url": url},
                )
                continue

            try:
                value = parse_extraction(request, body)
            except ExtractionNotFound:
                self._metrics.record_remote_attempt("not_found", duration_ms)
                logger.info(f"No {request.kind.value.lower()} on page for {request.key}", extra_fields={"url": url})
                raise

            self._metrics.record_remote_attempt("success", duration_ms)
            logger.debug(f"Extracted {request.kind.value.lower()} for {request.key} from candidate {index + 1}")
            return value

        details: Dict = {"key": request.key, "attempts": outcomes}
        if outcomes and all(o == "auth_page" for o in outcomes):
            raise AuthRequired(
                f"All {len(outcomes)} targets for {request.key} returned an authentication page",
                details,
            )
        raise SourceUnreachable(
            f"No reachable target for {request.key} ({len(outcomes)} tried)",
            details,
        )

    async def _attempt(self, url: str):
        """Fetch one candidate. Returns (outcome, body)."""
        session = self._get_session()
        try:
            timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
            async with session.get(url, headers=HTML_HEADERS, timeout=timeout) as response:
                body = await response.text()
                if response.status >= 400:
                    return f"http_{response.status}", body
                if looks_like_auth_page(body, str(response.url), self.auth_min_body_length):
                    return "auth_page", body
                return "usable", body
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Request to {url} failed: {type(e).__name__}: {e}")
            return "unreachable", ""
