"""Land search service.

Entry point used by the API and the CLI: creates plot records from
metadata or export rows and answers filter, semantic, rarity and
natural-language searches.
"""

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

from land_search.config import Settings, get_settings
from land_search.embeddings.service import EmbeddingService
from land_search.exceptions import (
    ConfigurationError,
    IngestError,
    LandSearchError,
    NotFoundError,
)
from land_search.llm.interpreter import QueryInterpreter
from land_search.logging_config import get_logger
from land_search.plots.filters import SearchFilter
from land_search.plots.ingest import PlotCSVLoader, plot_from_csv_row
from land_search.plots.models import PlotMetadata, PlotRecord, describe_plot
from land_search.search.coordinator import HybridSearchCoordinator
from land_search.store.base import PlotStore

logger = get_logger(__name__)


class LandSearchService:
    """Creates and searches plot records in one collection."""

    def __init__(
        self,
        store: PlotStore,
        embedding_service: EmbeddingService,
        settings: Settings | None = None,
        interpreter: QueryInterpreter | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Plot store.
            embedding_service: Embeds descriptions and queries.
            settings: Application settings.
            interpreter: Optional natural-language query interpreter.
        """
        self._settings = settings or get_settings()
        self._store = store
        self._embedding_service = embedding_service
        self._interpreter = interpreter
        self._collection = self._settings.search.collection
        self._coordinator = HybridSearchCoordinator(
            store=store,
            embedding_service=embedding_service,
            settings=self._settings.search,
        )

    @property
    def coordinator(self) -> HybridSearchCoordinator:
        """Underlying hybrid search coordinator."""
        return self._coordinator

    async def initialize(self) -> None:
        """Make sure the plot collection exists."""
        await self._store.ensure_collection(
            self._collection, self._embedding_service.dimensions
        )

    async def create_plot(
        self,
        metadata: PlotMetadata | Mapping[str, Any],
        record_id: str | None = None,
    ) -> PlotRecord:
        """Describe, embed and persist a new plot.

        Args:
            metadata: Plot metadata, or a mapping validated into it.
            record_id: Explicit id; generated when omitted.

        Returns:
            The stored record.

        Raises:
            EmbeddingError: If the description cannot be embedded.
            PersistenceError: If the store refuses the record.
        """
        if not isinstance(metadata, PlotMetadata):
            metadata = PlotMetadata.model_validate(metadata)

        result = await self._embedding_service.embed(describe_plot(metadata))
        record = PlotRecord.create(metadata, result.embedding, id=record_id)

        try:
            await self._store.create(self._collection, record)
        except LandSearchError as e:
            raise e.add_context(operation="create_plot", name=metadata.name)

        logger.info(
            f"Created plot {record.id}",
            extra={"plot_name": metadata.name, "rank": metadata.rank},
        )
        return record

    async def create_plot_from_csv(self, row: Mapping[str, str]) -> PlotRecord:
        """Create a plot from one export row."""
        return await self.create_plot(plot_from_csv_row(row))

    async def load_csv(self, path: str | Path) -> list[PlotRecord]:
        """Create a plot for every row of an export file.

        Descriptions are embedded in batches. Rows are validated before
        anything is written.

        Returns:
            Stored records in file order.

        Raises:
            IngestError: If the file is not a CSV export or a row is invalid.
        """
        loader = PlotCSVLoader()
        if not loader.supports(path):
            raise IngestError(
                f"Unsupported file type: {Path(path).suffix}",
                details={"path": str(path)},
            )

        plots = loader.load(path)
        embeddings = await self._embedding_service.embed_batch(
            [describe_plot(plot) for plot in plots]
        )

        records: list[PlotRecord] = []
        for plot, embedding in zip(plots, embeddings, strict=True):
            record = PlotRecord.create(plot, embedding.embedding)
            try:
                await self._store.create(self._collection, record)
            except LandSearchError as e:
                raise e.add_context(
                    operation="load_csv", source=str(path), stored=len(records)
                )
            records.append(record)

        logger.info(
            f"Stored {len(records)} plots",
            extra={"source": str(path), "collection": self._collection},
        )
        return records

    async def get_plot(self, record_id: str) -> PlotRecord:
        """Fetch a plot by id.

        Raises:
            NotFoundError: If no plot has this id.
        """
        record = await self._store.get_by_id(self._collection, record_id)
        if record is None:
            raise NotFoundError(
                f"Plot not found: {record_id}",
                details={"id": record_id, "collection": self._collection},
            )
        return record

    async def search_properties(
        self,
        query: str | Sequence[float],
        filters: SearchFilter | Mapping[str, Any] | None = None,
        limit: int | None = None,
        similarity_threshold: float | None = None,
    ) -> list[PlotRecord]:
        """Hybrid search, capped at ``limit`` (default: configured match count)."""
        return await self._coordinator.search(
            query,
            filters=filters,
            similarity_threshold=similarity_threshold,
            limit=self._settings.search.match_count if limit is None else limit,
        )

    async def filter_properties(
        self,
        filters: SearchFilter | Mapping[str, Any] | None,
        limit: int | None = None,
    ) -> list[PlotRecord]:
        """Metadata-only search."""
        return await self._coordinator.filter_search(filters, limit=limit)

    async def get_properties_by_rarity(
        self,
        min_rank: int | None,
        max_rank: int | None,
        limit: int | None = None,
    ) -> list[PlotRecord]:
        """Plots within a rank window, capped at ``limit``."""
        return await self._coordinator.get_properties_by_rarity_range(
            min_rank,
            max_rank,
            limit=self._settings.search.match_count if limit is None else limit,
        )

    async def ask(self, question: str, limit: int | None = None) -> list[PlotRecord]:
        """Answer a natural-language request.

        Raises:
            ConfigurationError: If no query interpreter is configured.
            LLMError: If the request cannot be interpreted.
        """
        if self._interpreter is None:
            raise ConfigurationError("Query interpreter is not configured")

        interpreted = await self._interpreter.interpret(question)
        return await self.search_properties(
            interpreted.search_text,
            filters=interpreted.filters,
            limit=limit,
        )
