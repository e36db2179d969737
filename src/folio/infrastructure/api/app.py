"""FastAPI application factory and configuration.

This module provides the application factory function for creating
and configuring the FastAPI application with all middleware, routes,
and lifecycle handlers.
"""

import uuid
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from folio.core.config import get_settings
from folio.core.exceptions import FolioError
from folio.core.logging import bind_correlation_id, clear_context, configure_logging, get_logger
from folio.domain.services.schema_cache import SchemaCache
from folio.infrastructure.persistence.database import (
    close_database,
    get_db_manager,
    init_database,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Handles startup and shutdown events for the application.

    Args:
        app: FastAPI application instance.

    Yields:
        None: Control is yielded to the application during its lifetime.
    """
    settings = get_settings()

    # Configure logging
    configure_logging(settings)

    # Startup
    logger.info(
        "Starting Folio",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Initialize database
    try:
        await init_database()
        logger.info("Database initialized successfully")
    except Exception as e:
        logger.error("Failed to initialize database", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("Shutting down Folio")
    app.state.schema_cache.invalidate_all()
    await close_database()
    logger.info("Database connection closed")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    This function creates the FastAPI application with all middleware,
    routes, and configuration.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Declarative read-only compositions over workspace collections",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )

    # Shared schema cache, invalidated by the collection and field repositories
    app.state.schema_cache = SchemaCache(ttl_seconds=settings.schema_cache_ttl_seconds)

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )

    # Register health check endpoint
    register_health_check(app)

    # Register API routes
    register_routes(app)

    # Register exception handlers
    register_exception_handlers(app)

    # Register middleware
    register_middleware(app)

    return app


def register_health_check(app: FastAPI) -> None:
    """Register health check endpoints.

    Args:
        app: FastAPI application instance.
    """

    @app.get("/health", tags=["health"])
    async def health_check():
        """Basic health check endpoint.

        Returns 200 if the service is running. Does not check
        database connectivity.
        """
        return {
            "status": "healthy",
            "service": "Folio",
            "version": get_settings().app_version,
        }

    @app.get("/ready", tags=["health"])
    async def readiness_check():
        """Readiness check endpoint.

        Returns 200 if the service is ready to accept requests,
        including database connectivity check.
        """
        db = get_db_manager()
        db_healthy = await db.check_connection()

        if db_healthy:
            return {
                "status": "ready",
                "service": "Folio",
                "version": get_settings().app_version,
                "database": "connected",
            }
        return JSONResponse(
            status_code=503,
            content={
                "status": "not_ready",
                "service": "Folio",
                "database": "disconnected",
            },
        )


def register_routes(app: FastAPI) -> None:
    """Register API routes.

    Args:
        app: FastAPI application instance.
    """
    from folio.infrastructure.api.routes import (
        composition_execute_router,
        compositions_router,
        records_router,
    )

    settings = get_settings()

    app.include_router(
        compositions_router,
        prefix=f"{settings.api_prefix}/workspaces/{{workspace_id}}/compositions",
        tags=["compositions"],
    )
    app.include_router(
        records_router,
        prefix=f"{settings.api_prefix}/workspaces/{{workspace_id}}/collections",
        tags=["records"],
    )
    app.include_router(
        composition_execute_router,
        prefix=f"{settings.api_prefix}/c",
        tags=["execute"],
    )

    @app.get(settings.api_prefix, tags=["root"])
    async def api_root():
        """API root endpoint."""
        return {
            "name": settings.app_name,
            "version": settings.app_version,
            "api_version": "v1",
        }


def register_exception_handlers(app: FastAPI) -> None:
    """Register global exception handlers.

    Every error body has the shape ``{"error": {code, message, details?}}``.

    Args:
        app: FastAPI application instance.
    """

    @app.exception_handler(FolioError)
    async def folio_exception_handler(request: Request, exc: FolioError):
        """Render a domain error with its own status and code."""
        if exc.status_code >= 500:
            logger.error(
                "Request failed",
                path=str(request.url.path),
                method=request.method,
                code=exc.code,
            )
        return JSONResponse(status_code=exc.status_code, content={"error": exc.to_dict()})

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        """Render malformed request bodies and params in the error envelope."""
        return JSONResponse(
            status_code=422,
            content={
                "error": {
                    "code": "VALIDATION_ERROR",
                    "message": "Invalid request",
                    "details": jsonable_encoder(exc.errors()),
                }
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Handle uncaught exceptions."""
        logger.error(
            "Unhandled exception",
            path=str(request.url),
            method=request.method,
            error=str(exc),
            exc_type=type(exc).__name__,
        )
        message = str(exc) if get_settings().debug else "An unexpected error occurred"
        return JSONResponse(
            status_code=500,
            content={"error": {"code": "INTERNAL_ERROR", "message": message}},
        )


def register_middleware(app: FastAPI) -> None:
    """Register custom middleware.

    Args:
        app: FastAPI application instance.
    """

    @app.middleware("http")
    async def logging_middleware(request: Request, call_next):
        """Middleware to log all requests and add correlation ID."""
        # Generate or extract correlation ID
        correlation_id = request.headers.get("X-Correlation-ID", f"cid_{uuid.uuid4().hex[:12]}")
        bind_correlation_id(correlation_id)

        logger.info(
            "Request started",
            method=request.method,
            path=str(request.url.path),
        )

        try:
            response = await call_next(request)
            logger.info(
                "Request completed",
                method=request.method,
                path=str(request.url.path),
                status_code=response.status_code,
            )
            response.headers["X-Correlation-ID"] = correlation_id
            return response
        finally:
            # Clear context to prevent leakage
            clear_context()


# Create the application instance
app = create_app()
