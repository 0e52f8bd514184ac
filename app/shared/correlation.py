"""
Correlation IDs for request tracing.

The middleware reads ``X-Correlation-ID`` (or ``X-Request-ID``) from the
incoming request, generates one when absent, exposes it to log records through
a context variable and echoes it on the response.
"""

import contextvars
import uuid
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

_correlation_id_ctx: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)

CORRELATION_HEADERS = [
    "X-Correlation-ID",
    "X-Request-ID",
    "X-Trace-ID",
]

RESPONSE_HEADER = "X-Correlation-ID"


def get_correlation_id() -> Optional[str]:
    """Return the correlation ID of the current context, if any."""
    return _correlation_id_ctx.get()


def generate_correlation_id() -> str:
    """Short random ID; eight hex characters are enough for log correlation."""
    return uuid.uuid4().hex[:8]


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Bind a correlation ID to each request and its response."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = None
        for header in CORRELATION_HEADERS:
            correlation_id = request.headers.get(header)
            if correlation_id:
                break
        if not correlation_id:
            correlation_id = generate_correlation_id()

        request.state.correlation_id = correlation_id
        token = _correlation_id_ctx.set(correlation_id)
        try:
            response = await call_next(request)
            response.headers[RESPONSE_HEADER] = correlation_id
            return response
        finally:
            _correlation_id_ctx.reset(token)


class CorrelationContext:
    """
    Set a correlation ID outside of a request, e.g. in scripts or tests.

    Example:
        with CorrelationContext("reindex-42"):
            service.parse(document_id, requester, ParseKind.RESUME)
    """

    def __init__(self, correlation_id: Optional[str] = None):
        self.correlation_id = correlation_id or generate_correlation_id()
        self._token: Optional[contextvars.Token] = None

    def __enter__(self) -> str:
        self._token = _correlation_id_ctx.set(self.correlation_id)
        return self.correlation_id

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._token is not None:
            _correlation_id_ctx.reset(self._token)
