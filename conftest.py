"""Shared test doubles."""

import asyncio
from typing import Dict, List, Optional

import pytest

from connectors.base import ExtractionRequest, RemoteExtractionClient
from core.config import WeightSettings
from core.errors import ExtractionNotFound
from core.observability.metrics import MetricsCollector
from models.weights import ExtractionKind


class FakeExtractionClient(RemoteExtractionClient):
    """In-memory client.

    identifiers: batch id -> identifiers
    weights: item id -> weight, or an exception instance to raise
    """

    def __init__(
        self,
        identifiers: Optional[Dict[str, List[str]]] = None,
        weights: Optional[Dict[str, object]] = None,
        delay: float = 0.0,
    ):
        self.identifiers = identifiers or {}
        self.weights = weights or {}
        self.delay = delay
        self.requests: List[ExtractionRequest] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    async def extract(self, request: ExtractionRequest):
        self.requests.append(request)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if request.kind == ExtractionKind.IDENTIFIERS:
                found = self.identifiers.get(request.key)
            else:
                found = self.weights.get(request.key)
            if isinstance(found, BaseException):
                raise found
            if found is None:
                raise ExtractionNotFound(f"Nothing for {request.key}")
            return found
        finally:
            self.in_flight -= 1

    def weight_requests(self) -> List[str]:
        return [r.key for r in self.requests if r.kind == ExtractionKind.WEIGHT]

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_client_class():
    return FakeExtractionClient


@pytest.fixture
def metrics():
    """A fresh collector so counts start from zero."""
    return MetricsCollector()


@pytest.fixture
def settings():
    return WeightSettings()
