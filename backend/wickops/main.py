"""
WickOps tenant API application.

Routes (all under settings.API_V1_PREFIX):
- POST /identity/events/confirmed  identity directory trigger
- GET  /subscriptions/status       status read with reconciliation
- POST /invites, DELETE /invites/{email}
- POST /webhooks/stripe            billing events
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from wickops.api import identity, invites, subscriptions, webhooks
from wickops.core.config import settings
from wickops.core.exception_handlers import register_exception_handlers
from wickops.core.logging_config import configure_logging
from wickops.middleware import RequestContextMiddleware

ROUTERS = (identity.router, subscriptions.router, invites.router, webhooks.router)


def create_app() -> FastAPI:
    """Build the application; tests import the module-level ``app``."""
    configure_logging()

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Tenant onboarding, invites and storage provisioning API",
        version=settings.VERSION,
        docs_url=f"{settings.API_V1_PREFIX}/docs",
        redoc_url=None,
        openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    )

    register_exception_handlers(app)

    app.add_middleware(RequestContextMiddleware)
    # Retry-After must be readable by the browser while storage provisions
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["Authorization", "Content-Type", "X-Request-ID"],
        expose_headers=["Retry-After", "X-Request-ID"],
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """Liveness only; touches neither the database nor AWS."""
        return {"status": "healthy", "version": settings.VERSION}

    for router in ROUTERS:
        app.include_router(router, prefix=settings.API_V1_PREFIX)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("wickops.main:app", host="0.0.0.0", port=8000, reload=settings.DEBUG)
