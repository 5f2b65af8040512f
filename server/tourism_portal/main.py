"""FastAPI application initialization and configuration."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text
from starlette.exceptions import HTTPException as StarletteHTTPException

from .core.config import settings
from .core.database import Database
from .core.exceptions import (
    APIError,
    api_error_handler,
    generic_exception_handler,
    http_exception_handler,
    request_validation_handler,
)
from .core.middleware import setup_middleware
from .core.observability import (
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .core.time_utils import utcnow
from .routers import analytics, auth, bookings, crm, metrics, tours, users
from .schemas.health import HealthResponse, HealthStatus, ServiceInfo
from .services.notification_service import NotificationDispatcher
from .workers.manager import WorkerManager

API_VERSION = "1.0.0"

# Configure structured logging
setup_structured_logging()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan context manager.

    Builds the database, notification dispatcher and workers, unless they
    were injected through :func:`create_app`, and tears them down on exit.
    """
    logger.info(
        "Starting FastAPI application",
        extra={"environment": settings.environment, "debug": settings.debug}
    )

    if settings.uses_default_secret and not settings.debug:
        logger.warning("JWT_SECRET is not set, tokens are signed with the fallback secret")

    try:
        setup_tracing()
        setup_metrics()

        if getattr(app.state, "database", None) is None:
            app.state.database = Database(settings.database_url)
        database: Database = app.state.database
        database.connect()
        instrument_sqlalchemy(database.engine)
        logger.info("Observability setup completed")

        if settings.debug:
            await database.create_all()
            logger.info("Database tables ensured")

        if getattr(app.state, "notifier", None) is None:
            app.state.notifier = NotificationDispatcher.from_settings(settings)

        app.state.workers = WorkerManager.for_application(settings, app.state.notifier)
        await app.state.workers.start_all()
    except Exception:
        logger.error("Failed to initialize application", exc_info=True)
        raise

    logger.info("Application startup complete")

    yield

    logger.info("Shutting down FastAPI application")

    try:
        await app.state.workers.stop_all()
        await app.state.database.dispose()
        logger.info("Database connections closed")
    except Exception:
        logger.error("Error during application cleanup", exc_info=True)

    logger.info("Application shutdown complete")


def create_app(database: Database | None = None, notifier: NotificationDispatcher | None = None) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        database: Pre-built database, used instead of ``DATABASE_URL``
        notifier: Pre-built notification dispatcher

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    app = FastAPI(
        title="Tourism Portal API",
        description="Tour package catalog, bookings, user accounts, CRM and analytics for a tour operator",
        version=API_VERSION,
        debug=settings.debug,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    app.state.database = database
    app.state.notifier = notifier

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[settings.request_id_header],
    )

    # Setup custom middleware
    setup_middleware(app, enable_logging=True)

    # Instrument FastAPI with OpenTelemetry
    instrument_fastapi(app)

    # Register exception handlers
    app.add_exception_handler(APIError, api_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    @app.get(
        "/",
        response_model=ServiceInfo,
        tags=["Info"],
        summary="Service Information",
    )
    async def service_info() -> ServiceInfo:
        return ServiceInfo(
            message="Tourism Portal API",
            version=API_VERSION,
            environment=settings.environment,
        )

    # Health check endpoint (inline)
    @app.get(
        "/health",
        status_code=status.HTTP_200_OK,
        response_model=HealthResponse,
        tags=["Health"],
        summary="Health Check",
        description="Check that the service is up and the database answers",
    )
    async def health_check(request: Request) -> HealthResponse:
        """
        Health check endpoint.

        The service answers OK even when the database probe fails; the
        status then reads DEGRADED.
        """
        database_ok = False
        database: Database | None = getattr(request.app.state, "database", None)
        if database is not None and database.is_connected:
            try:
                async with database.engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
                database_ok = True
            except Exception:
                logger.warning("Database health probe failed", exc_info=True)

        return HealthResponse(
            status=HealthStatus.OK if database_ok else HealthStatus.DEGRADED,
            timestamp=utcnow(),
            environment=settings.environment,
            database=database_ok,
            version=API_VERSION,
        )

    # Register API routers
    app.include_router(auth.router)
    app.include_router(tours.router)
    app.include_router(bookings.router)
    app.include_router(users.router)
    app.include_router(analytics.router)
    app.include_router(crm.router)
    app.include_router(metrics.router)

    logger.info("FastAPI application created and configured")

    return app


# Create the application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tourism_portal.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
        access_log=False,
    )
