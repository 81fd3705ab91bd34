"""Maps pipeline errors to HTTP responses."""

from fastapi import Request
from fastapi.responses import JSONResponse

from core.errors import ErrorKind, WeightServiceError

STATUS_BY_KIND = {
    ErrorKind.NO_IDENTIFIERS_FOUND: 404,
    ErrorKind.NO_WEIGHTS_RESOLVED: 404,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.AGENT_DISCONNECTED: 409,
    ErrorKind.TICKET_EXPIRED: 409,
    ErrorKind.SOURCE_UNREACHABLE: 502,
    ErrorKind.AUTH_REQUIRED: 401,
    ErrorKind.NAVIGATION_PENDING: 503,
}

# Seconds a caller should wait before retrying a pending navigation
RETRY_AFTER_SECONDS = 2


async def weight_service_error_handler(request: Request, exc: WeightServiceError) -> JSONResponse:
    """Render a pipeline error as {"error": ..., "kind": ...}."""
    headers = {}
    if exc.transient:
        headers["Retry-After"] = str(RETRY_AFTER_SECONDS)
    return JSONResponse(
        status_code=STATUS_BY_KIND.get(exc.kind, 500),
        content=exc.to_dict(),
        headers=headers,
    )
