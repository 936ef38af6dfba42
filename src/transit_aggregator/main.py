"""FastAPI application entry point."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from transit_aggregator.config import get_settings
from transit_aggregator.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    setup_logging,
)
from transit_aggregator.routers.transit import router as transit_router
from transit_aggregator.services.providers.base import (
    ConfigurationError,
    TransitAPIError,
    UnsupportedCityError,
)
from transit_aggregator.services.providers.registry import CITY_INFO

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler."""
    setup_logging()
    logger.info("Starting Transit Aggregator API", cities=list(CITY_INFO))
    yield
    logger.info("Shutting down Transit Aggregator API")


def _error_response(status_code: int, error: str, exc: TransitAPIError) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "message": exc.message, "city": exc.city},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Unified station, arrival and incident data for DC Metro and NYC Subway",
        lifespan=lifespan,
        docs_url="/docs" if settings.environment != "production" else None,
        redoc_url="/redoc" if settings.environment != "production" else None,
    )

    # Request ID middleware
    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next: Any) -> Any:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_request_context(request_id=request_id, path=request.url.path)

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        clear_request_context()
        return response

    app.include_router(transit_router)

    @app.get("/health", tags=["meta"])
    async def health_check() -> dict[str, Any]:
        """Health check; DC is reported unavailable while its API key is missing."""
        settings = get_settings()
        missing_env = settings.missing_required_env()

        return {
            "service": settings.app_name,
            "status": "degraded" if missing_env else "healthy",
            "version": settings.app_version,
            "environment": settings.environment,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "cities": {
                city: not settings.missing_required_env(city) for city in CITY_INFO
            },
            "issues": [
                "Missing required environment variables: " + ", ".join(missing_env)
            ]
            if missing_env
            else [],
        }

    @app.exception_handler(ConfigurationError)
    async def configuration_error_handler(
        request: Request, exc: ConfigurationError
    ) -> JSONResponse:
        logger.warning("Configuration error", path=request.url.path, error=exc.message)
        if isinstance(exc, UnsupportedCityError):
            return _error_response(404, "unsupported_city", exc)
        return _error_response(400, "configuration_error", exc)

    @app.exception_handler(TransitAPIError)
    async def transit_error_handler(request: Request, exc: TransitAPIError) -> JSONResponse:
        logger.warning(
            "Upstream transit error",
            path=request.url.path,
            city=exc.city,
            status_code=exc.status_code,
            error=exc.message,
        )
        status_code = exc.status_code if exc.status_code and exc.status_code >= 500 else 502
        return _error_response(status_code, "upstream_error", exc)

    # Global exception handler
    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("Unhandled exception", exc_info=exc, path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
            },
        )

    return app


app = create_app()


def run() -> None:
    """Serve the API with uvicorn on the configured host and port."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "transit_aggregator.main:app",
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )
