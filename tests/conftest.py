"""Pytest configuration and shared fixtures."""

from collections.abc import AsyncGenerator, Callable, Sequence
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from land_search.api.app import app
from land_search.config import SearchSettings, Settings
from land_search.embeddings.models import EmbeddingResult
from land_search.embeddings.service import EmbeddingService
from land_search.plots.models import PlotMetadata, PlotRecord
from land_search.search.service import LandSearchService
from land_search.store.memory import InMemoryPlotStore

COLLECTION = "test_plots"


def build_metadata(**overrides: Any) -> PlotMetadata:
    """Build valid plot metadata, replacing top-level fields with overrides."""
    data: dict[str, Any] = {
        "rank": 1000,
        "name": "Test Plot",
        "neighborhood": "Nexus",
        "zoning": "Residential",
        "plot_size": "Medium",
        "building_type": "MidRise",
        "distances": {"ocean": {"meters": 250}, "bay": {"meters": 800}},
        "building": {
            "floors": {"min": 5, "max": 10},
            "height": {"min": 20, "max": 40},
        },
        "plot_area": 5000,
    }
    data.update(overrides)
    return PlotMetadata.model_validate(data)


class FakeEmbeddingService(EmbeddingService):
    """Embedding service returning fixed vectors keyed by text."""

    def __init__(
        self,
        vectors: dict[str, Sequence[float]] | None = None,
        default: Sequence[float] = (0.0, 0.0, 1.0),
    ) -> None:
        self.vectors = dict(vectors or {})
        self.default = list(default)
        self.calls: list[str] = []

    async def embed(self, text: str) -> EmbeddingResult:
        self.calls.append(text)
        vector = list(self.vectors.get(text, self.default))
        return EmbeddingResult(
            text=text,
            embedding=vector,
            model=self.model_name,
            dimensions=len(vector),
        )

    async def embed_batch(self, texts: list[str]) -> list[EmbeddingResult]:
        return [await self.embed(text) for text in texts]

    @property
    def model_name(self) -> str:
        return "fake-embedding"

    @property
    def dimensions(self) -> int:
        return len(self.default)


@pytest.fixture
def metadata_factory() -> Callable[..., PlotMetadata]:
    """Factory for valid plot metadata."""
    return build_metadata


@pytest.fixture
def search_settings() -> SearchSettings:
    """Search settings with a low threshold and a test collection."""
    return SearchSettings(collection=COLLECTION, similarity_threshold=0.5, match_count=20)


@pytest.fixture
def store() -> InMemoryPlotStore:
    """Empty in-memory plot store."""
    return InMemoryPlotStore()


@pytest.fixture
def embedder() -> FakeEmbeddingService:
    """Fake embedding service with 3-dimensional vectors."""
    return FakeEmbeddingService()


@pytest.fixture
def add_plot(
    store: InMemoryPlotStore,
) -> Callable[..., Any]:
    """Insert a plot with an explicit embedding into the test collection."""

    async def _add(
        record_id: str,
        embedding: Sequence[float] = (1.0, 0.0, 0.0),
        **overrides: Any,
    ) -> PlotRecord:
        record = PlotRecord.create(
            build_metadata(**overrides), list(embedding), id=record_id
        )
        await store.create(COLLECTION, record)
        return record

    return _add


@pytest.fixture
def service(
    store: InMemoryPlotStore,
    embedder: FakeEmbeddingService,
    search_settings: SearchSettings,
) -> LandSearchService:
    """Land search service over the in-memory store."""
    settings = Settings(search=search_settings)
    return LandSearchService(store=store, embedding_service=embedder, settings=settings)


@pytest.fixture
async def client(service: LandSearchService) -> AsyncGenerator[AsyncClient, None]:
    """Create async test client for FastAPI app.

    Yields:
        AsyncClient configured for testing.
    """
    app.state.service = service
    transport = ASGITransport(app=app)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            yield ac
    finally:
        app.state.service = None
