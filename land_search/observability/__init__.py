"""Observability module for metrics and monitoring."""

from land_search.observability.metrics import (
    MetricsMiddleware,
    get_metrics,
    track_embedding_request,
    track_search_request,
    track_store_operation,
)

__all__ = [
    "MetricsMiddleware",
    "get_metrics",
    "track_embedding_request",
    "track_search_request",
    "track_store_operation",
]
