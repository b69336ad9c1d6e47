"""FastAPI application entry point.

Configures the application with logging, exception handling, metrics,
health checks and the plot routes.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import UTC, datetime
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from land_search import __version__
from land_search.api.routes import router
from land_search.config import get_settings
from land_search.embeddings.service import HTTPEmbeddingService
from land_search.exceptions import ErrorCode, LandSearchError
from land_search.llm.client import OpenAICompatibleClient
from land_search.llm.interpreter import QueryInterpreter
from land_search.logging_config import get_logger, setup_logging
from land_search.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    get_metrics_content_type,
)
from land_search.search.service import LandSearchService
from land_search.store import create_store

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager.

    Builds the search service on startup and releases its clients on
    shutdown.
    """
    # Startup
    settings = get_settings()
    setup_logging(level=settings.log_level, json_output=not settings.debug)
    logger.info(
        "Starting Land Search",
        extra={
            "version": __version__,
            "environment": settings.environment.value,
            "store_backend": settings.store.backend.value,
        },
    )

    store = create_store(settings)
    embedder = HTTPEmbeddingService(settings.embedding)
    llm_client = OpenAICompatibleClient(settings.llm)
    service = LandSearchService(
        store=store,
        embedding_service=embedder,
        settings=settings,
        interpreter=QueryInterpreter(llm_client),
    )
    await service.initialize()
    app.state.service = service

    yield

    # Shutdown
    logger.info("Shutting down Land Search")
    app.state.service = None
    await llm_client.close()
    await embedder.close()
    await store.close()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()

    app = FastAPI(
        title="Land Search",
        description="Hybrid metadata and semantic search over land plots",
        version=__version__,
        lifespan=lifespan,
        debug=settings.debug,
    )
    app.state.service = None

    app.add_middleware(MetricsMiddleware)

    # Register exception handlers
    app.add_exception_handler(LandSearchError, land_search_exception_handler)

    # Register routes
    app.add_api_route("/health", health_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/health/live", liveness_check, methods=["GET"], tags=["Health"])
    app.add_api_route("/metrics", metrics_endpoint, methods=["GET"], tags=["Metrics"])
    app.include_router(router)

    return app


async def land_search_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle LandSearchError exceptions.

    Converts exceptions to structured JSON responses.
    """
    if not isinstance(exc, LandSearchError):
        return JSONResponse(
            status_code=500,
            content={
                "error": {
                    "code": ErrorCode.INTERNAL_ERROR.value,
                    "message": str(exc),
                    "details": {},
                }
            },
        )

    logger.error(
        f"Request failed: {exc.message}",
        extra={
            "error_code": exc.code.value,
            "path": request.url.path,
            "details": exc.details,
        },
    )

    return JSONResponse(
        status_code=_get_status_code(exc.code),
        content=exc.to_dict(),
    )


def _get_status_code(error_code: ErrorCode) -> int:
    """Map error code to HTTP status code."""
    # Validation errors -> 400
    if error_code in (ErrorCode.VALIDATION_ERROR, ErrorCode.CSV_ROW_INVALID):
        return 400

    # Not found errors -> 404
    if error_code in (ErrorCode.PLOT_NOT_FOUND, ErrorCode.COLLECTION_NOT_FOUND):
        return 404

    # Conflict errors -> 409
    if error_code in (ErrorCode.COLLECTION_EXISTS, ErrorCode.DUPLICATE_RECORD):
        return 409

    # Rate limit -> 429
    if error_code is ErrorCode.LLM_RATE_LIMIT:
        return 429

    # Timeout -> 504
    if error_code is ErrorCode.LLM_TIMEOUT:
        return 504

    # Upstream embedding or LLM failures -> 502
    if error_code in (
        ErrorCode.EMBEDDING_SERVICE_ERROR,
        ErrorCode.EMBEDDING_DIMENSION_MISMATCH,
        ErrorCode.LLM_SERVICE_ERROR,
        ErrorCode.LLM_INVALID_REPLY,
    ):
        return 502

    # Interpreter not configured -> 503
    if error_code is ErrorCode.CONFIGURATION_ERROR:
        return 503

    # Default to 500 for internal errors
    return 500


async def health_check() -> dict[str, Any]:
    """Basic health check endpoint.

    Returns:
        Health status with version and timestamp.
    """
    return {
        "status": "healthy",
        "version": __version__,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def readiness_check(request: Request) -> dict[str, Any]:
    """Kubernetes readiness probe.

    Reports whether the search service has been built.
    """
    checks: dict[str, str] = {
        "config": "ok",
        "service": "ok" if request.app.state.service is not None else "not_configured",
    }

    all_ok = all(v == "ok" for v in checks.values())

    return {
        "status": "ready" if all_ok else "not_ready",
        "checks": checks,
        "timestamp": datetime.now(UTC).isoformat(),
    }


async def liveness_check() -> dict[str, str]:
    """Kubernetes liveness probe.

    Returns:
        Liveness status.
    """
    return {"status": "alive"}


async def metrics_endpoint() -> Response:
    """Prometheus scrape endpoint."""
    return Response(content=get_metrics(), media_type=get_metrics_content_type())


# Create the application instance
app = create_app()
