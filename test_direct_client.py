"""
Direct Extraction Client Tests

Fallback across candidate targets, authentication-page detection and
failure typing, against an in-memory aiohttp session double.
"""

import asyncio

import aiohttp
import pytest

from connectors.base import ExtractionRequest, TargetBuilder, looks_like_auth_page
from connectors.direct import DirectExtractionClient
from core.errors import AuthRequired, ExtractionNotFound, SourceUnreachable
from models.weights import ExtractionKind

WEIGHT_TEMPLATES = [
    "https://primary.example/{warehouse}/results?s={key}",
    "https://backup.example/{warehouse}/results?s={key}",
    "https://mirror.example/{warehouse}/results?s={key}",
]
IDENTIFIER_TEMPLATES = ["https://rodeo.example/{warehouse}/Search?searchKey={key}"]

WEIGHT_BODY = (
    "<html><body><table>"
    "<tr><td>FNSKU</td><td>X001ABCDEF2</td></tr>"
    "<tr><td>Weight</td><td>0.79 pounds</td></tr>"
    "</table></body></html>"
)
NO_WEIGHT_BODY = (
    "<html><body><table>"
    "<tr><td>FNSKU</td><td>X001ABCDEF2</td></tr>"
    "<tr><td>Title</td><td>Ceramic Mug, 12 oz</td></tr>"
    "</table></body></html>"
)
SIGN_IN_BODY = "<html><body>Please sign in</body></html>"


class FakeResponse:
    def __init__(self, status: int, body: str, url: str):
        self.status = status
        self._body = body
        self.url = url

    async def text(self) -> str:
        return self._body

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return False


class FakeSession:
    """Maps URL prefixes to (status, body) or an exception to raise."""

    def __init__(self, routes):
        self.routes = routes
        self.requested = []
        self.closed = False

    def get(self, url, headers=None, timeout=None):
        self.requested.append(url)
        for prefix, outcome in self.routes.items():
            if url.startswith(prefix):
                if isinstance(outcome, BaseException):
                    raise outcome
                status, body = outcome
                return FakeResponse(status, body, url)
        raise aiohttp.ClientConnectionError(f"no route to {url}")

    async def close(self):
        self.closed = True


def make_client(session, metrics):
    targets = TargetBuilder({
        ExtractionKind.WEIGHT: WEIGHT_TEMPLATES,
        ExtractionKind.IDENTIFIERS: IDENTIFIER_TEMPLATES,
    })
    return DirectExtractionClient(targets, session=session, metrics=metrics)


class TestFallback:

    def test_two_auth_pages_then_success(self, metrics):
        """The third candidate answers; exactly one success is counted."""
        session = FakeSession({
            "https://primary.example": (200, SIGN_IN_BODY),
            "https://backup.example": (200, SIGN_IN_BODY),
            "https://mirror.example": (200, WEIGHT_BODY),
        })
        client = make_client(session, metrics)

        weight = asyncio.run(client.fetch_weight("IND8", "X001ABCDEF2"))

        assert weight == 0.79
        assert len(session.requested) == 3
        assert metrics.remote_outcome_count("success") == 1
        assert metrics.remote_outcome_count("auth_page") == 2

    def test_first_success_stops_fallback(self, metrics):
        session = FakeSession({"https://primary.example": (200, WEIGHT_BODY)})
        client = make_client(session, metrics)

        asyncio.run(client.fetch_weight("IND8", "X001ABCDEF2"))

        assert session.requested == ["https://primary.example/IND8/results?s=X001ABCDEF2"]

    def test_http_error_and_unreachable_are_skipped(self, metrics):
        session = FakeSession({
            "https://primary.example": (500, "Internal Server Error"),
            "https://backup.example": asyncio.TimeoutError(),
            "https://mirror.example": (200, WEIGHT_BODY),
        })
        client = make_client(session, metrics)

        assert asyncio.run(client.fetch_weight("IND8", "X001ABCDEF2")) == 0.79
        assert metrics.remote_outcome_count("http_500") == 1
        assert metrics.remote_outcome_count("unreachable") == 1


class TestFailures:

    def test_all_auth_pages_raise_auth_required(self, metrics):
        session = FakeSession({
            prefix: (200, SIGN_IN_BODY)
            for prefix in ("https://primary.example", "https://backup.example", "https://mirror.example")
        })
        client = make_client(session, metrics)

        with pytest.raises(AuthRequired) as exc_info:
            asyncio.run(client.fetch_weight("IND8", "X001ABCDEF2"))

        assert exc_info.value.details["attempts"] == ["auth_page"] * 3

    def test_nothing_reachable_raises_source_unreachable(self, metrics):
        client = make_client(FakeSession({}), metrics)

        with pytest.raises(SourceUnreachable):
            asyncio.run(client.fetch_weight("IND8", "X001ABCDEF2"))

    def test_page_without_data_raises_not_found(self, metrics):
        """A usable page with no weight ends the search; it is not retried elsewhere."""
        session = FakeSession({
            "https://primary.example": (200, NO_WEIGHT_BODY),
            "https://backup.example": (200, WEIGHT_BODY),
        })
        client = make_client(session, metrics)

        with pytest.raises(ExtractionNotFound):
            asyncio.run(client.fetch_weight("IND8", "X001ABCDEF2"))

        assert len(session.requested) == 1

    def test_identifiers(self, metrics):
        body = (
            "<html><body><table>"
            "<tr><th>Scannable ID</th><th>FN SKU</th></tr>"
            "<tr><td>LPN0000000001</td><td>X001ABCDEF2</td></tr>"
            "<tr><td>LPN0000000002</td><td>B00TESTID99</td></tr>"
            "</table></body></html>"
        )
        client = make_client(FakeSession({"https://rodeo.example": (200, body)}), metrics)

        ids = asyncio.run(client.fetch_identifiers("IND8", "1234567890"))

        assert ids == ["X001ABCDEF2", "B00TESTID99"]


class TestSession:

    def test_supplied_session_is_not_closed(self, metrics):
        session = FakeSession({})
        client = make_client(session, metrics)

        asyncio.run(client.close())

        assert session.closed is False


class TestTargets:

    def test_keys_are_url_quoted(self):
        targets = TargetBuilder({ExtractionKind.WEIGHT: ["https://x.example/{warehouse}/r?s={key}"]})

        url = targets.primary(ExtractionRequest.weight("IND8", "A B/C"))

        assert url == "https://x.example/IND8/r?s=A%20B%2FC"

    def test_missing_templates(self):
        targets = TargetBuilder({})

        with pytest.raises(ValueError):
            targets.primary(ExtractionRequest.weight("IND8", "X001ABCDEF2"))


class TestAuthHeuristic:

    def test_short_body(self):
        assert looks_like_auth_page("<html></html>") is True

    def test_sign_in_url(self):
        assert looks_like_auth_page(WEIGHT_BODY, "https://idp.example/login?return=/x") is True

    def test_sign_in_markers_without_table(self):
        body = "<html><body><form><input type='password' name='pw'></form>" + " " * 80 + "</body></html>"
        assert looks_like_auth_page(body) is True

    def test_result_page(self):
        assert looks_like_auth_page(WEIGHT_BODY, "https://mirror.example/IND8/results") is False
