"""Hybrid search coordinator.

Combines a similarity search over plot embeddings with the metadata filter
engine. When filters are present the two result sets are intersected by
record id.
"""

import asyncio
import time
from collections.abc import Mapping, Sequence
from typing import Any

from land_search.config import ResultOrder, SearchSettings, get_settings
from land_search.embeddings.service import EmbeddingService
from land_search.exceptions import EmbeddingError, LandSearchError, QueryError
from land_search.logging_config import get_logger
from land_search.observability.metrics import track_search_request
from land_search.plots.filters import SearchFilter
from land_search.plots.models import PlotRecord, ScoredPlot
from land_search.search.filter_engine import MetadataFilterEngine, compile_filter
from land_search.store.base import PlotStore

logger = get_logger(__name__)


def intersect_by_id(
    semantic: Sequence[ScoredPlot],
    filtered: Sequence[PlotRecord],
    order: ResultOrder,
) -> list[PlotRecord]:
    """Keep records present in both result sets.

    Args:
        semantic: Similarity results, most similar first.
        filtered: Metadata filter results in store order.
        order: Which input's order the output follows.

    Returns:
        Records found in both inputs.
    """
    if order is ResultOrder.SIMILARITY:
        filtered_ids = {record.id for record in filtered}
        return [s.record for s in semantic if s.record.id in filtered_ids]

    semantic_ids = {s.record.id for s in semantic}
    return [record for record in filtered if record.id in semantic_ids]


class HybridSearchCoordinator:
    """Semantic search over plots, optionally narrowed by metadata filters."""

    def __init__(
        self,
        store: PlotStore,
        embedding_service: EmbeddingService,
        settings: SearchSettings | None = None,
        filter_engine: MetadataFilterEngine | None = None,
    ) -> None:
        """Initialize the coordinator.

        Args:
            store: Plot store for similarity search.
            embedding_service: Embeds text queries.
            settings: Search configuration (collection, threshold, limits).
            filter_engine: Metadata filter engine; built over the same
                store and collection when omitted.
        """
        self._settings = settings or get_settings().search
        self._store = store
        self._embedding_service = embedding_service
        self._collection = self._settings.collection
        self._filter_engine = filter_engine or MetadataFilterEngine(
            store, self._collection
        )

    @property
    def collection(self) -> str:
        """Collection searched by this coordinator."""
        return self._collection

    async def _query_vector(self, query: str | Sequence[float]) -> list[float]:
        """Embed a text query once; pass precomputed vectors through."""
        if not isinstance(query, str):
            return [float(x) for x in query]

        try:
            result = await self._embedding_service.embed(query)
        except LandSearchError:
            raise
        except Exception as e:
            raise EmbeddingError(
                f"Failed to embed query: {e}",
                details={"error": str(e)},
            ) from e
        return result.embedding

    async def _similarity(
        self, vector: list[float], threshold: float
    ) -> list[ScoredPlot]:
        try:
            return await self._store.similarity_search(
                self._collection,
                vector,
                threshold=threshold,
                limit=self._settings.match_count,
            )
        except LandSearchError:
            raise
        except Exception as e:
            raise QueryError(
                f"Similarity search failed: {e}",
                details={"collection": self._collection, "error": str(e)},
            ) from e

    async def _similarity_and_filter(
        self,
        vector: list[float],
        threshold: float,
        search_filter: SearchFilter,
    ) -> tuple[list[ScoredPlot], list[PlotRecord]]:
        """Run both sub-searches concurrently.

        The first failure cancels the other query and is re-raised as is.
        """
        try:
            async with asyncio.TaskGroup() as group:
                semantic = group.create_task(self._similarity(vector, threshold))
                filtered = group.create_task(
                    self._filter_engine.filter_records(search_filter)
                )
        except ExceptionGroup as eg:
            for exc in eg.exceptions:
                if isinstance(exc, LandSearchError):
                    raise exc
            raise
        return semantic.result(), filtered.result()

    async def search(
        self,
        query: str | Sequence[float],
        filters: SearchFilter | Mapping[str, Any] | None = None,
        similarity_threshold: float | None = None,
        limit: int | None = None,
        order: ResultOrder | None = None,
    ) -> list[PlotRecord]:
        """Run a combined similarity and metadata search.

        Args:
            query: Free-text query, or a precomputed embedding.
            filters: Optional metadata filter.
            similarity_threshold: Minimum similarity (default from settings).
            limit: Maximum results to return (no cap when omitted).
            order: Ordering of combined results (default from settings).

        Returns:
            Matching plot records. Without filters, in similarity order.

        Raises:
            ValidationError: If the filter is invalid.
            EmbeddingError: If the query cannot be embedded.
            QueryError: If either store query fails.
        """
        search_filter = SearchFilter.parse(filters)
        threshold = (
            self._settings.similarity_threshold
            if similarity_threshold is None
            else similarity_threshold
        )
        order = order or self._settings.result_order
        has_filters = bool(compile_filter(search_filter))
        mode = "hybrid" if has_filters else "semantic"

        context = {
            "operation": "search",
            "query": query[:200] if isinstance(query, str) else f"<vector:{len(query)}>",
            "filter": search_filter.model_dump(mode="json", exclude_none=True),
            "similarity_threshold": threshold,
        }

        start_time = time.perf_counter()
        try:
            vector = await self._query_vector(query)

            if not has_filters:
                semantic = await self._similarity(vector, threshold)
                results = [s.record for s in semantic]
            else:
                semantic, filtered = await self._similarity_and_filter(
                    vector, threshold, search_filter
                )
                results = intersect_by_id(semantic, filtered, order)

        except LandSearchError as e:
            track_search_request(mode, time.perf_counter() - start_time, 0, success=False)
            logger.error(f"Search failed: {e.message}", extra={"error_code": e.code.value})
            raise e.add_context(**context)

        if limit is not None:
            results = results[:limit]

        track_search_request(mode, time.perf_counter() - start_time, len(results))
        logger.debug(
            f"Search returned {len(results)} plots",
            extra={"mode": mode, "threshold": threshold, "order": order.value},
        )
        return results

    async def filter_search(
        self,
        filters: SearchFilter | Mapping[str, Any] | None,
        limit: int | None = None,
    ) -> list[PlotRecord]:
        """Run a metadata-only search.

        Args:
            filters: Metadata filter; empty returns the whole collection.
            limit: Maximum results to return.

        Returns:
            Matching records in store order.
        """
        start_time = time.perf_counter()
        try:
            results = await self._filter_engine.filter_records(filters)
        except LandSearchError:
            track_search_request("filter", time.perf_counter() - start_time, 0, success=False)
            raise

        if limit is not None:
            results = results[:limit]

        track_search_request("filter", time.perf_counter() - start_time, len(results))
        return results

    async def get_properties_by_rarity_range(
        self,
        min_rank: int | None,
        max_rank: int | None,
        limit: int | None = None,
    ) -> list[PlotRecord]:
        """Return plots whose rank lies in ``[min_rank, max_rank]``.

        Runs without a semantic component.

        Raises:
            ValidationError: If ``min_rank > max_rank`` or a rank is not positive.
        """
        search_filter = SearchFilter.for_rank_range(min_rank, max_rank)
        try:
            return await self.filter_search(search_filter, limit=limit)
        except LandSearchError as e:
            raise e.add_context(
                operation="get_properties_by_rarity_range",
                min_rank=min_rank,
                max_rank=max_rank,
            )
