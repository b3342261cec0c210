"""
Request context middleware for log correlation.

WHAT: Assigns every request an id and makes it available to logging
throughout the request lifecycle.

WHY: The identity trigger and billing webhooks are retried upstream, and
status checks race with them. Correlating log lines of one invocation is
the only way to follow a replay through the logs.

HOW: The id is taken from an incoming X-Request-ID header (so upstream
retries keep their id) or generated, stored in a ContextVar and echoed in
the response. RequestIdLogFilter copies it onto every log record.
"""

import logging
import time
import uuid
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Callable, Optional

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

REQUEST_ID_HEADER = "X-Request-ID"


@dataclass(frozen=True)
class RequestContext:
    """Request-scoped data available to services and log records."""

    request_id: str
    path: str
    method: str


_request_context: ContextVar[Optional[RequestContext]] = ContextVar(
    "request_context", default=None
)


def get_request_context() -> Optional[RequestContext]:
    """Current request context, or None outside a request."""
    return _request_context.get()


class RequestIdLogFilter(logging.Filter):
    """Adds ``request_id`` to log records ("-" outside a request)."""

    def filter(self, record: logging.LogRecord) -> bool:
        context = _request_context.get()
        record.request_id = context.request_id if context else "-"
        return True


def _incoming_request_id(request: Request) -> str:
    value = (request.headers.get(REQUEST_ID_HEADER) or "").strip()
    # Only accept short printable ids; anything else is replaced
    if value and len(value) <= 128 and value.isprintable():
        return value
    return str(uuid.uuid4())


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Middleware that captures and stores request context.

    Context is stored in request.state (for handlers) and in a ContextVar
    (for services and log filters without access to the request).
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        context = RequestContext(
            request_id=_incoming_request_id(request),
            path=request.url.path,
            method=request.method,
        )
        request.state.context = context
        token = _request_context.set(context)
        started = time.perf_counter()
        try:
            response = await call_next(request)
            response.headers[REQUEST_ID_HEADER] = context.request_id
            logger.info(
                f"{context.method} {context.path} -> {response.status_code}",
                extra={"duration_ms": round((time.perf_counter() - started) * 1000, 1)},
            )
            return response
        finally:
            _request_context.reset(token)
