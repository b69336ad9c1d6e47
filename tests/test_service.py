"""Tests for the land search service."""

import csv
import io
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock

import pytest

from land_search.config import SearchSettings, Settings
from land_search.exceptions import (
    ConfigurationError,
    ErrorCode,
    IngestError,
    NotFoundError,
    PersistenceError,
)
from land_search.llm.models import InterpretedQuery
from land_search.plots.filters import SearchFilter
from land_search.plots.models import PlotMetadata, describe_plot
from land_search.search.service import LandSearchService
from land_search.store.memory import InMemoryPlotStore

MetadataFactory = Callable[..., PlotMetadata]

CSV_HEADER = (
    "Rank,Name,Neighborhood,Zoning Type,Plot Size,Building Size,"
    "Distance to Ocean,Distance to Bay,Distance to Ocean (m),Distance to Bay (m),"
    "Min # of Floors,Max # of Floors,Min Building Height (m),"
    "Max Building Height (m),Plot Area (m²)"
)


def _csv_line(rank: int, name: str, size: str) -> str:
    return f'{rank},{name},Nexus,Residential,{size},MidRise,Close,Far,120,900,3,12,10,48,"1,250"'


class TestCreateAndGet:
    """Tests for creating and fetching plots."""

    async def test_round_trip(
        self, service: LandSearchService, metadata_factory: MetadataFactory
    ) -> None:
        """A created plot is returned unchanged by id."""
        metadata = metadata_factory(name="Round Trip", rank=77)

        created = await service.create_plot(metadata)
        fetched = await service.get_plot(created.id)

        assert fetched.metadata == metadata
        assert fetched.text == describe_plot(metadata)
        assert fetched == created

    async def test_description_is_embedded(
        self,
        service: LandSearchService,
        embedder: Any,
        metadata_factory: MetadataFactory,
    ) -> None:
        """The generated description is what gets embedded."""
        metadata = metadata_factory()
        await service.create_plot(metadata)

        assert embedder.calls == [describe_plot(metadata)]

    async def test_create_from_mapping(self, service: LandSearchService) -> None:
        """Metadata can be given as a plain mapping."""
        record = await service.create_plot(
            {
                "rank": 12,
                "neighborhood": "Haven Heights",
                "zoning": "Legendary",
                "plot_size": "Giga",
                "building_type": "Megascraper",
                "distances": {"ocean": {"meters": 90}, "bay": {"meters": 400}},
                "building": {
                    "floors": {"min": 100, "max": 200},
                    "height": {"min": 400, "max": 800},
                },
                "plot_area": 40000,
            },
            record_id="giga-1",
        )

        assert record.id == "giga-1"
        assert record.metadata.rarity_category.value == "Ultra Premium"

    async def test_duplicate_id_rejected(
        self, service: LandSearchService, metadata_factory: MetadataFactory
    ) -> None:
        """Creating the same id twice fails with context."""
        await service.create_plot(metadata_factory(), record_id="dup")

        with pytest.raises(PersistenceError) as exc_info:
            await service.create_plot(metadata_factory(), record_id="dup")

        assert exc_info.value.code == ErrorCode.DUPLICATE_RECORD
        assert exc_info.value.details["operation"] == "create_plot"

    async def test_missing_plot(self, service: LandSearchService) -> None:
        """An unknown id raises NotFoundError."""
        with pytest.raises(NotFoundError) as exc_info:
            await service.get_plot("missing")

        assert exc_info.value.details["id"] == "missing"


class TestCsvIngest:
    """Tests for creating plots from export rows."""

    async def test_create_from_row(self, service: LandSearchService) -> None:
        """A single export row becomes a stored plot."""
        rows = csv.DictReader(io.StringIO(f"{CSV_HEADER}\n{_csv_line(5, 'Row Plot', 'Large')}"))

        record = await service.create_plot_from_csv(next(rows))

        assert record.metadata.name == "Row Plot"
        assert record.metadata.plot_area == 1250

    async def test_load_csv(self, service: LandSearchService, tmp_path: Path) -> None:
        """Every row of a file is stored in file order."""
        path = tmp_path / "plots.csv"
        path.write_text(
            "\n".join(
                [
                    CSV_HEADER,
                    _csv_line(1, "First", "Large"),
                    _csv_line(2, "Second", "Small"),
                ]
            ),
            encoding="utf-8",
        )

        records = await service.load_csv(path)
        stored = await service.filter_properties(None)

        assert [r.metadata.name for r in records] == ["First", "Second"]
        assert [r.id for r in stored] == [r.id for r in records]

    async def test_invalid_file_stores_nothing(
        self, service: LandSearchService, store: InMemoryPlotStore, tmp_path: Path
    ) -> None:
        """A bad row aborts the load before anything is written."""
        path = tmp_path / "plots.csv"
        path.write_text(
            "\n".join([CSV_HEADER, _csv_line(1, "Good", "Large"), _csv_line(2, "Bad", "Huge")]),
            encoding="utf-8",
        )

        with pytest.raises(IngestError) as exc_info:
            await service.load_csv(path)

        assert exc_info.value.details["line"] == 3
        assert await store.count("test_plots") == 0

    async def test_rejects_non_csv(self, service: LandSearchService, tmp_path: Path) -> None:
        """Only CSV exports are accepted."""
        path = tmp_path / "plots.json"
        path.write_text("[]", encoding="utf-8")

        with pytest.raises(IngestError, match="Unsupported file type"):
            await service.load_csv(path)


class TestSearchProperties:
    """Tests for hybrid and rarity searches through the service."""

    async def test_neighborhood_and_size_scenario(
        self,
        service: LandSearchService,
        metadata_factory: MetadataFactory,
    ) -> None:
        """Only the plot matching both neighborhood and size is returned."""
        ocean = {"ocean": {"meters": 150}, "bay": {"meters": 800}}
        a = await service.create_plot(
            metadata_factory(neighborhood="North Shore", plot_size="Large", distances=ocean)
        )
        await service.create_plot(
            metadata_factory(neighborhood="North Shore", plot_size="Small", distances=ocean)
        )
        await service.create_plot(
            metadata_factory(neighborhood="South Bay", plot_size="Large", distances=ocean)
        )

        filtered = await service.filter_properties(
            {"neighborhoods": ["North Shore"], "plot_sizes": ["Large"]}
        )
        searched = await service.search_properties(
            "large plot", filters={"neighborhoods": ["North Shore"], "plot_sizes": ["Large"]}
        )

        assert [r.id for r in filtered] == [a.id]
        assert [r.id for r in searched] == [a.id]

    async def test_default_limit_is_match_count(
        self,
        store: InMemoryPlotStore,
        embedder: Any,
        metadata_factory: MetadataFactory,
    ) -> None:
        """Results are capped at the configured match count."""
        settings = Settings(
            search=SearchSettings(collection="test_plots", similarity_threshold=0.5, match_count=2)
        )
        service = LandSearchService(store=store, embedding_service=embedder, settings=settings)
        for rank in (1, 2, 3):
            await service.create_plot(metadata_factory(rank=rank))

        assert len(await service.search_properties("anything")) == 2
        assert len(await service.get_properties_by_rarity(1, 3)) == 2

    async def test_zero_limit_returns_nothing(
        self, service: LandSearchService, metadata_factory: MetadataFactory
    ) -> None:
        """An explicit limit of zero is honored rather than defaulted."""
        for rank in (1, 2):
            await service.create_plot(metadata_factory(rank=rank))

        assert await service.search_properties("anything", limit=0) == []
        assert await service.get_properties_by_rarity(1, 3, limit=0) == []

    async def test_rarity(
        self, service: LandSearchService, metadata_factory: MetadataFactory
    ) -> None:
        """Rarity search returns plots inside the rank window."""
        for rank in (50, 300, 600):
            await service.create_plot(metadata_factory(rank=rank))

        results = await service.get_properties_by_rarity(100, 500)

        assert [r.metadata.rank for r in results] == [300]


class TestAsk:
    """Tests for natural-language search."""

    async def test_ask_uses_interpretation(
        self,
        store: InMemoryPlotStore,
        embedder: Any,
        metadata_factory: MetadataFactory,
    ) -> None:
        """The interpreted text and filters drive the search."""
        interpreter = AsyncMock()
        interpreter.interpret.return_value = InterpretedQuery(
            search_text="big plot",
            filters=SearchFilter.parse({"plot_sizes": ["Mega"]}),
        )
        service = LandSearchService(
            store=store,
            embedding_service=embedder,
            settings=Settings(search=SearchSettings(collection="test_plots")),
            interpreter=interpreter,
        )
        mega = await service.create_plot(metadata_factory(plot_size="Mega"))
        await service.create_plot(metadata_factory(plot_size="Nano"))

        results = await service.ask("show me something huge")

        interpreter.interpret.assert_awaited_once_with("show me something huge")
        assert embedder.calls[-1] == "big plot"
        assert [r.id for r in results] == [mega.id]

    async def test_ask_without_interpreter(self, service: LandSearchService) -> None:
        """ask requires a configured interpreter."""
        with pytest.raises(ConfigurationError):
            await service.ask("anything")


class TestInitialize:
    """Tests for collection setup."""

    async def test_initialize_uses_embedder_width(
        self, embedder: Any, search_settings: SearchSettings
    ) -> None:
        """The collection is created with the embedder's dimensions."""
        store = AsyncMock()
        service = LandSearchService(
            store=store,
            embedding_service=embedder,
            settings=Settings(search=search_settings),
        )

        await service.initialize()

        store.ensure_collection.assert_awaited_once_with("test_plots", 3)
