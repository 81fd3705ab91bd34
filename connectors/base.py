"""Remote Extraction Client interface.

Defines the abstract interface both transport modes implement, and the pieces
they share: request/target construction, the authentication-page heuristic,
and the kind-to-extractor dispatch.

Key Design Principles:
- The weighing pipeline depends ONLY on RemoteExtractionClient
- Results come back as plain typed values (list of identifiers, float weight)
- Failures are raised as core.errors exceptions, never returned as dicts
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union
from urllib.parse import quote

from core.errors import ExtractionNotFound
from extraction.patterns import extract_identifiers, extract_weight
from models.weights import ExtractionKind

ExtractionValue = Union[List[str], float]

# Markers of a sign-in or SSO redirect page instead of real content
_AUTH_BODY_MARKERS = re.compile(
    r"(<input[^>]+type=[\"']?password|\bsign[\s-]?in\b|\blog[\s-]?in\b|"
    r"\bmidway\b|\bfederate\b|\bsaml\b|authentication required)",
    re.IGNORECASE,
)
_AUTH_URL_MARKERS = ("signin", "sign-in", "login", "midway", "federate", "sso", "/auth")


@dataclass(frozen=True)
class ExtractionRequest:
    """One extraction: identifiers for a batch, or the weight of an item."""
    kind: ExtractionKind
    warehouse_id: str
    key: str

    @classmethod
    def identifiers(cls, warehouse_id: str, batch_id: str) -> "ExtractionRequest":
        return cls(ExtractionKind.IDENTIFIERS, warehouse_id, batch_id)

    @classmethod
    def weight(cls, warehouse_id: str, item_id: str) -> "ExtractionRequest":
        return cls(ExtractionKind.WEIGHT, warehouse_id, item_id)


class TargetBuilder:
    """Builds candidate target locations from ordered URL templates.

    Templates use {warehouse} and {key} placeholders. The first template is
    the preferred target; the rest are fallbacks in priority order.
    """

    def __init__(self, templates: Dict[ExtractionKind, Sequence[str]]):
        self.templates = {kind: list(urls) for kind, urls in templates.items()}

    def targets(self, request: ExtractionRequest) -> List[str]:
        return [
            template.format(
                warehouse=quote(request.warehouse_id, safe=""),
                key=quote(request.key, safe=""),
            )
            for template in self.templates.get(request.kind, [])
        ]

    def primary(self, request: ExtractionRequest) -> str:
        targets = self.targets(request)
        if not targets:
            raise ValueError(f"No target templates configured for {request.kind.value}")
        return targets[0]


def looks_like_auth_page(body: str, final_url: Optional[str] = None, min_length: int = 64) -> bool:
    """Heuristic: did the source answer with a sign-in/redirect page?

    True when the final URL is a sign-in endpoint, the body is too short to
    be a result page, or the body carries sign-in markers without any table.
    """
    if final_url and any(marker in final_url.lower() for marker in _AUTH_URL_MARKERS):
        return True
    stripped = (body or "").strip()
    if len(stripped) < min_length:
        return True
    return bool(_AUTH_BODY_MARKERS.search(stripped)) and "<table" not in stripped.lower()


def parse_extraction(request: ExtractionRequest, markup: str) -> ExtractionValue:
    """Run the extractor for the request kind.

    Raises:
        ExtractionNotFound: The markup holds nothing for this request
    """
    if request.kind == ExtractionKind.IDENTIFIERS:
        identifiers = extract_identifiers(markup)
        if identifiers:
            return identifiers
    else:
        weight = extract_weight(markup)
        if weight is not None:
            return weight
    raise ExtractionNotFound(
        f"No {request.kind.value.lower()} found for {request.key}",
        {"kind": request.kind.value, "key": request.key},
    )


class RemoteExtractionClient(ABC):
    """Abstract client that asks an agent for identifiers or weights.

    Implementations:
    - DirectExtractionClient: fetches target locations over HTTP
    - NavigateResumeClient: drives a live agent host, resuming across reloads
    """

    @abstractmethod
    async def extract(self, request: ExtractionRequest) -> ExtractionValue:
        """Resolve one request.

        Raises:
            SourceUnreachable, AuthRequired, ExtractionNotFound,
            NavigationPending, TicketExpired
        """
        pass

    async def fetch_identifiers(self, warehouse_id: str, batch_id: str) -> List[str]:
        return await self.extract(ExtractionRequest.identifiers(warehouse_id, batch_id))

    async def fetch_weight(self, warehouse_id: str, item_id: str) -> float:
        return await self.extract(ExtractionRequest.weight(warehouse_id, item_id))

    async def close(self) -> None:
        """Release transport resources."""
        pass
