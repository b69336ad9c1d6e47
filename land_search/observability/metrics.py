"""Prometheus metrics for land search.

Provides metrics instrumentation for:
- HTTP request latency and counts
- Search latency and result counts by search mode
- Embedding request latency
- Plot store operation latency
"""

import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager

from fastapi import Request, Response
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from land_search.logging_config import get_logger

logger = get_logger(__name__)

# HTTP Request Metrics
HTTP_REQUEST_DURATION = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint", "status_code"],
    buckets=[0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0],
)

HTTP_REQUEST_TOTAL = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "endpoint", "status_code"],
)

# Search Metrics
SEARCH_DURATION = Histogram(
    "plot_search_duration_seconds",
    "Plot search duration in seconds",
    ["mode", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
)

SEARCH_TOTAL = Counter(
    "plot_searches_total",
    "Total plot searches",
    ["mode", "status"],
)

SEARCH_RESULTS = Histogram(
    "plot_search_results",
    "Number of plots returned per search",
    ["mode"],
    buckets=[0, 1, 2, 5, 10, 20, 50, 100, 500],
)

# Embedding Metrics
EMBEDDING_REQUEST_DURATION = Histogram(
    "embedding_request_duration_seconds",
    "Embedding request duration in seconds",
    ["model", "status"],
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

EMBEDDING_REQUEST_TOTAL = Counter(
    "embedding_requests_total",
    "Total embedding requests",
    ["model", "status"],
)

EMBEDDING_BATCH_SIZE = Histogram(
    "embedding_batch_size",
    "Embedding batch size",
    ["model"],
    buckets=[1, 5, 10, 25, 50, 100, 250, 500],
)

# Plot Store Metrics
STORE_OPERATION_DURATION = Histogram(
    "plot_store_operation_duration_seconds",
    "Plot store operation duration",
    ["operation", "status"],
    buckets=[0.001, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0],
)


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP request metrics."""

    def __init__(self, app: ASGIApp) -> None:
        """Initialize the middleware."""
        super().__init__(app)

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Awaitable[Response]],
    ) -> Response:
        """Process request and collect metrics."""
        # Skip metrics endpoint to avoid recursion
        if request.url.path == "/metrics":
            return await call_next(request)

        start_time = time.perf_counter()

        response = await call_next(request)

        duration = time.perf_counter() - start_time
        endpoint = self._normalize_endpoint(request.url.path)

        HTTP_REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).observe(duration)

        HTTP_REQUEST_TOTAL.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code,
        ).inc()

        return response

    def _normalize_endpoint(self, path: str) -> str:
        """Normalize endpoint path to reduce cardinality."""
        if path.startswith("/health"):
            return "/health"
        # /api/v1/plots/<id> collapses to /api/v1/plots/{id}
        if path.startswith("/api/v1/plots/"):
            action = path.removeprefix("/api/v1/plots/").split("/")[0]
            if action in {"search", "filter", "rarity", "ask"}:
                return f"/api/v1/plots/{action}"
            return "/api/v1/plots/{id}"
        return path


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get the content type for metrics response."""
    return CONTENT_TYPE_LATEST


def track_search_request(
    mode: str,
    duration: float,
    results: int,
    success: bool = True,
) -> None:
    """Track plot search metrics.

    Args:
        mode: Search mode ("semantic", "hybrid" or "filter").
        duration: Search duration in seconds.
        results: Number of plots returned.
        success: Whether the search succeeded.
    """
    status = "success" if success else "error"

    SEARCH_DURATION.labels(mode=mode, status=status).observe(duration)
    SEARCH_TOTAL.labels(mode=mode, status=status).inc()
    if success:
        SEARCH_RESULTS.labels(mode=mode).observe(results)


def track_embedding_request(
    model: str,
    duration: float,
    batch_size: int,
    success: bool = True,
) -> None:
    """Track embedding request metrics.

    Args:
        model: Embedding model name.
        duration: Request duration in seconds.
        batch_size: Number of texts in the batch.
        success: Whether the request succeeded.
    """
    status = "success" if success else "error"

    EMBEDDING_REQUEST_DURATION.labels(model=model, status=status).observe(duration)
    EMBEDDING_REQUEST_TOTAL.labels(model=model, status=status).inc()
    EMBEDDING_BATCH_SIZE.labels(model=model).observe(batch_size)


@contextmanager
def track_store_operation(operation: str) -> Iterator[None]:
    """Time a plot store operation, labelling it by outcome."""
    start_time = time.perf_counter()
    status = "success"
    try:
        yield
    except Exception:
        status = "error"
        raise
    finally:
        STORE_OPERATION_DURATION.labels(operation=operation, status=status).observe(
            time.perf_counter() - start_time
        )
