"""Plot store module."""

from land_search.config import Settings, StoreBackend, get_settings
from land_search.store.base import PlotStore
from land_search.store.memory import InMemoryPlotStore
from land_search.store.qdrant import QdrantPlotStore


def create_store(settings: Settings | None = None) -> PlotStore:
    """Build the plot store selected by configuration."""
    settings = settings or get_settings()
    if settings.store.backend == StoreBackend.MEMORY:
        return InMemoryPlotStore()
    return QdrantPlotStore(settings=settings.qdrant)


__all__ = [
    "InMemoryPlotStore",
    "PlotStore",
    "QdrantPlotStore",
    "create_store",
]
