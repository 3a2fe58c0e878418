"""
FastAPI application factory for the Tessera API server.

Uses lifespan handler for startup/shutdown with async resource management.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from tessera.config import settings
from tessera.db.session import close_db, init_db
from tessera.errors import RequestError
from tessera.logging_config import configure_logging, get_logger
from tessera.sso import sso_connector_factories

from .health import router as health_router
from .routers.sso_connectors import router as sso_connectors_router

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan handler for startup and shutdown."""
    # Startup
    configure_logging(json_logs=settings.json_logs, log_level=settings.log_level)
    logger.info("Starting Tessera API server", version="0.1.0")

    await init_db()
    logger.info("Database connection initialized")

    logger.info("SSO providers registered", providers=sorted(sso_connector_factories))

    yield

    # Shutdown
    logger.info("Shutting down Tessera API server")
    await close_db()


def create_application() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="Tessera API",
        description="Enterprise SSO connectors and IdP-initiated SAML sign-in",
        version="0.1.0",
        lifespan=lifespan,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Configure appropriately for production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Total-Number"],
    )

    # Request ID middleware
    @app.middleware("http")
    async def add_request_id(request: Request, call_next: Any) -> Any:
        """Add request ID to context for logging correlation."""
        request_id = request.headers.get("X-Request-ID")
        if request_id:
            structlog.contextvars.bind_contextvars(request_id=request_id)

        response = await call_next(request)

        if request_id:
            response.headers["X-Request-ID"] = request_id
            structlog.contextvars.unbind_contextvars("request_id")

        return response

    @app.exception_handler(RequestError)
    async def request_error_handler(request: Request, exc: RequestError) -> JSONResponse:
        """Render service errors with their own status and code."""
        logger.info(
            "Request failed",
            code=exc.code,
            status=exc.status,
            path=str(request.url.path),
        )
        return JSONResponse(status_code=exc.status, content=exc.to_dict())

    # Exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled errors."""
        logger.error("Unhandled exception", exc_info=exc, path=str(request.url.path))
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )

    # Health endpoints (no prefix)
    app.include_router(health_router)

    app.include_router(sso_connectors_router, prefix=settings.api_prefix)

    return app


# Application instance
app = create_application()
