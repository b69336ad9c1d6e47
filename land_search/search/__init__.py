"""Metadata filtering and hybrid search."""

from land_search.search.coordinator import HybridSearchCoordinator, intersect_by_id
from land_search.search.filter_engine import MetadataFilterEngine, compile_filter
from land_search.search.service import LandSearchService

__all__ = [
    "HybridSearchCoordinator",
    "LandSearchService",
    "MetadataFilterEngine",
    "compile_filter",
    "intersect_by_id",
]
