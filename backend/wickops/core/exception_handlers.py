"""
Exception handlers.

Every error leaves the API in one envelope:

    {error, message, status_code, retryable, details}

``retryable`` tells the identity directory, Stripe and the frontend apart
from "try again shortly" (provisioning, upstream hiccups) and "this request
cannot succeed" (validation, authorization, missing rows).
"""

import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from wickops.core.exceptions import AppException, DatabaseError, ProvisioningPending

logger = logging.getLogger(__name__)


def error_envelope(
    error: str,
    message: str,
    status_code: int,
    retryable: bool = False,
    details: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    return {
        "error": error,
        "message": message,
        "status_code": status_code,
        "retryable": retryable,
        "details": details,
    }


async def app_exception_handler(request: Request, exc: AppException) -> JSONResponse:
    # Client errors are expected traffic; only upstream/store failures are worth a warning
    if exc.status_code >= 500:
        logger.warning(
            f"{exc.__class__.__name__} on {request.method} {request.url.path}: {exc.message}",
            extra={"context": exc.context},
        )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def provisioning_pending_handler(request: Request, exc: ProvisioningPending) -> JSONResponse:
    """503 plus Retry-After; the client polls the status endpoint again."""
    logger.info(
        f"Tenant storage still provisioning for {request.url.path}",
        extra={"resource_name": exc.resource_name, "retry_after": exc.retry_after},
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
        headers={"Retry-After": str(exc.retry_after)},
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Request body/query validation failures, rendered as 400.

    Identity events reject unknown fields, so a trigger payload with a
    surprise attribute ends up here rather than in the reconciler.
    """
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=error_envelope(
            "ValidationError", "Request validation failed", 400, details={"errors": errors}
        ),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    # Unknown routes and wrong methods, raised before any router runs
    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope("HTTPException", str(exc.detail), exc.status_code),
    )


async def database_exception_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    """Store failures become a retryable 503 so triggers and webhooks are redelivered."""
    logger.error(
        f"Database error on {request.method} {request.url.path}: {exc.__class__.__name__}",
        exc_info=exc,
    )
    error = DatabaseError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Anything unexpected is a retryable 500.

    The traceback is logged; the body never carries implementation details.
    """
    logger.exception(f"Unhandled exception on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=error_envelope(
            "InternalServerError", "An unexpected error occurred", 500, retryable=True
        ),
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Attach all handlers; Starlette picks the most specific class by MRO."""
    app.add_exception_handler(ProvisioningPending, provisioning_pending_handler)
    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(SQLAlchemyError, database_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)
