"""
Main FastAPI application.

WHY: This is the entry point for the application. It wires the security
middleware, the versioned routers and the exception handlers that render
the bilingual error envelope.
"""

from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from lexshield.api import auth, cases, webhooks
from lexshield.core.config import settings
from lexshield.core.exception_handlers import (
    app_exception_handler,
    generic_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from lexshield.core.exceptions import AppException
from lexshield.middleware import (
    AnomalySink,
    DeprecationMiddleware,
    DeprecationPolicy,
    RequestContextMiddleware,
    SanitizationMiddleware,
    SecurityMonitorMiddleware,
)


API_ROUTERS = (auth.router, cases.router, webhooks.router)


def create_app(
    deprecation_policy: Optional[DeprecationPolicy] = None,
    anomaly_sink: Optional[AnomalySink] = None,
) -> FastAPI:
    """
    Create and configure FastAPI application.

    Args:
        deprecation_policy: Overrides the settings-derived policy
        anomaly_sink: Receiver of security monitor events (logs by default)

    Returns:
        Configured FastAPI application instance
    """
    app = FastAPI(
        title=settings.PROJECT_NAME,
        description="Security middleware for a legal-practice platform",
        version=settings.VERSION,
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )

    app.add_exception_handler(AppException, app_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    # Middleware runs outermost-last-added: CORS, request context, security
    # monitor, deprecation, sanitization, then the route's security stages.
    app.add_middleware(SanitizationMiddleware)
    app.add_middleware(DeprecationMiddleware, policy=deprecation_policy)
    app.add_middleware(SecurityMonitorMiddleware, sink=anomaly_sink)
    app.add_middleware(RequestContextMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health", tags=["health"])
    async def health_check() -> dict:
        """Liveness probe; no authentication, no store access."""
        return {"status": "healthy", "version": settings.VERSION}

    # Every router is served under each supported version; handlers write
    # the default version's shape and post-processing reshapes the rest.
    for version in settings.SUPPORTED_API_VERSIONS:
        for router in API_ROUTERS:
            app.include_router(
                router,
                prefix=f"/api/{version}",
                include_in_schema=(version == settings.DEFAULT_API_VERSION),
            )

    return app


app = create_app()
