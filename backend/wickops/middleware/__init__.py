"""
Middleware package.

WHY: Middleware provides cross-cutting concerns like request correlation
that apply to all requests.
"""

from wickops.middleware.request_context import (
    RequestContextMiddleware,
    RequestContext,
    RequestIdLogFilter,
    get_request_context,
)

__all__ = [
    "RequestContextMiddleware",
    "RequestContext",
    "RequestIdLogFilter",
    "get_request_context",
]
