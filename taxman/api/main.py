"""FastAPI application factory and lifecycle.

``create_app`` wires logging, tracing, exception handlers, middleware and
routes. The lifespan opens the tax store before the first request and
closes it on shutdown; if the store cannot be opened the application
refuses to start.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from loguru import logger

from taxman.api.dependencies import AppSettings
from taxman.api.middleware.error_handler import register_exception_handlers
from taxman.api.middleware.request_context import RequestContextMiddleware
from taxman.api.middleware.request_logging import RequestLoggingMiddleware
from taxman.api.routes.tax import build_tax_router
from taxman.api.utils.responses import ORJSONResponse
from taxman.core.config import Settings, get_settings
from taxman.core.error_context import sanitize_error_context
from taxman.core.exceptions import ConfigurationError
from taxman.core.logging import setup_logging
from taxman.core.observability import instrument_app, setup_tracing
from taxman.infrastructure.database.store import PostgresTaxStore


@asynccontextmanager
async def lifespan(app_instance: FastAPI) -> AsyncGenerator[None]:
    """Open the tax store for the lifetime of the application.

    Raises:
        ConfigurationError: If the store cannot be opened.
    """
    settings: Settings = app_instance.state.settings

    try:
        store = await PostgresTaxStore.connect(settings)
    except ConfigurationError as e:
        logger.bind(**sanitize_error_context(e, e.context)).critical(
            "Failed to open the tax store: {}", e.message
        )
        raise

    app_instance.state.tax_store = store
    logger.info(
        "Application startup complete - {} v{}",
        app_instance.title,
        app_instance.version,
    )

    try:
        yield
    finally:
        logger.info("Application shutdown initiated")
        app_instance.state.tax_store = None
        await store.close()
        logger.info("Application shutdown complete")


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional settings instance. If not provided, will use get_settings().

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        settings = get_settings()

    setup_logging(settings)
    setup_tracing(settings)

    application = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.tax_store = None

    # Register exception handlers BEFORE middleware
    register_exception_handlers(application)

    # Middleware run in reverse order of registration
    application.add_middleware(RequestLoggingMiddleware, log_config=settings.log_config)
    application.add_middleware(RequestContextMiddleware)

    application.include_router(build_tax_router(settings.tax_config))

    @application.get("/health")
    async def health(request: Request) -> dict[str, object]:
        """Health check for container orchestration and load balancers.

        Never fails; a database that does not answer reports ``degraded``.
        """
        store = request.app.state.tax_store
        is_healthy = store is not None and await store.ping()
        if not is_healthy:
            logger.warning("Health check degraded: database unavailable")
        return {
            "status": "healthy" if is_healthy else "degraded",
            "database": is_healthy,
        }

    @application.get("/info")
    async def info(app_settings: AppSettings) -> dict[str, Any]:
        """Get application information."""
        return {
            "app_name": app_settings.app_name,
            "version": app_settings.app_version,
            "environment": app_settings.environment,
            "debug": app_settings.debug,
        }

    instrument_app(application, settings)

    return application


app = create_app()
