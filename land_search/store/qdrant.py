"""Qdrant implementation of the plot store."""

from collections.abc import Sequence
from typing import Any

from qdrant_client import AsyncQdrantClient
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchAny,
    MatchValue,
    PayloadSchemaType,
    PointStruct,
    Range,
    VectorParams,
)

from land_search.config import QdrantSettings, get_settings
from land_search.exceptions import ErrorCode, PersistenceError, QueryError
from land_search.logging_config import get_logger
from land_search.observability.metrics import track_store_operation
from land_search.plots.filters import FieldConstraint, Operator, PlotField
from land_search.plots.models import PlotRecord, ScoredPlot
from land_search.store.base import PlotStore

logger = get_logger(__name__)

# Payload indexes created with each collection so metadata filters stay indexed.
PAYLOAD_INDEXES: dict[PlotField, PayloadSchemaType] = {
    PlotField.NEIGHBORHOOD: PayloadSchemaType.KEYWORD,
    PlotField.ZONING: PayloadSchemaType.KEYWORD,
    PlotField.PLOT_SIZE: PayloadSchemaType.KEYWORD,
    PlotField.BUILDING_TYPE: PayloadSchemaType.KEYWORD,
    PlotField.OCEAN_METERS: PayloadSchemaType.FLOAT,
    PlotField.OCEAN_CATEGORY: PayloadSchemaType.KEYWORD,
    PlotField.BAY_METERS: PayloadSchemaType.FLOAT,
    PlotField.BAY_CATEGORY: PayloadSchemaType.KEYWORD,
    PlotField.FLOORS_MIN: PayloadSchemaType.INTEGER,
    PlotField.FLOORS_MAX: PayloadSchemaType.INTEGER,
    PlotField.HEIGHT_MIN: PayloadSchemaType.FLOAT,
    PlotField.HEIGHT_MAX: PayloadSchemaType.FLOAT,
    PlotField.RANK: PayloadSchemaType.INTEGER,
}


def to_qdrant_condition(constraint: FieldConstraint) -> FieldCondition:
    """Translate one field constraint into a Qdrant condition."""
    key = constraint.field.value

    if constraint.op is Operator.IN:
        return FieldCondition(key=key, match=MatchAny(any=list(constraint.value)))
    if constraint.op is Operator.EQ:
        return FieldCondition(key=key, match=MatchValue(value=constraint.value))
    if constraint.op is Operator.LTE:
        return FieldCondition(key=key, range=Range(lte=constraint.value))
    if constraint.op is Operator.GTE:
        return FieldCondition(key=key, range=Range(gte=constraint.value))
    raise ValueError(f"Unsupported operator: {constraint.op}")


def to_qdrant_filter(constraints: Sequence[FieldConstraint]) -> Filter | None:
    """Combine constraints into a conjunctive Qdrant filter, None when empty."""
    if not constraints:
        return None
    return Filter(must=[to_qdrant_condition(c) for c in constraints])  # type: ignore[arg-type]


def _vector(point: Any) -> list[float]:
    vector = getattr(point, "vector", None)
    return list(vector) if isinstance(vector, list) else []


def _to_record(point: Any) -> PlotRecord:
    return PlotRecord.from_payload(
        id=str(point.id),
        payload=dict(point.payload or {}),
        embedding=_vector(point),
    )


class QdrantPlotStore(PlotStore):
    """Qdrant plot store.

    Records are points whose payload holds the description and metadata.
    Similarity uses cosine distance.
    """

    def __init__(
        self,
        settings: QdrantSettings | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        """Initialize Qdrant plot store.

        Args:
            settings: Qdrant configuration.
            client: Existing client (for testing).
        """
        self._settings = settings or get_settings().qdrant
        self._client = client
        self._owns_client = client is None

    async def _get_client(self) -> AsyncQdrantClient:
        """Get or create Qdrant client."""
        if self._client is None:
            api_key = None
            if self._settings.api_key:
                api_key = self._settings.api_key.get_secret_value()

            self._client = AsyncQdrantClient(
                url=self._settings.url,
                api_key=api_key,
            )
        return self._client

    async def close(self) -> None:
        """Close the Qdrant client."""
        if self._owns_client and self._client is not None:
            await self._client.close()
            self._client = None

    async def ensure_collection(self, collection: str, dimensions: int) -> None:
        """Create the collection and its payload indexes if missing."""
        client = await self._get_client()

        try:
            if await client.collection_exists(collection):
                return

            await client.create_collection(
                collection_name=collection,
                vectors_config=VectorParams(
                    size=dimensions,
                    distance=Distance.COSINE,
                ),
            )
            for field, schema in PAYLOAD_INDEXES.items():
                await client.create_payload_index(
                    collection_name=collection,
                    field_name=field.value,
                    field_schema=schema,
                )
            logger.info(
                f"Created collection: {collection}",
                extra={"dimensions": dimensions},
            )

        except Exception as e:
            raise PersistenceError(
                f"Failed to create collection: {e}",
                details={"collection": collection, "error": str(e)},
            ) from e

    async def create(self, collection: str, record: PlotRecord) -> None:
        """Insert a record, refusing to overwrite an existing id."""
        client = await self._get_client()

        with track_store_operation("create"):
            try:
                existing = await client.retrieve(
                    collection_name=collection,
                    ids=[record.id],
                    with_payload=False,
                    with_vectors=False,
                )
            except Exception as e:
                raise PersistenceError(
                    f"Failed to create record: {e}",
                    details={"collection": collection, "id": record.id, "error": str(e)},
                ) from e

            if existing:
                raise PersistenceError(
                    f"Record already exists: {record.id}",
                    code=ErrorCode.DUPLICATE_RECORD,
                    details={"collection": collection, "id": record.id},
                )

            try:
                await client.upsert(
                    collection_name=collection,
                    points=[
                        PointStruct(
                            id=record.id,
                            vector=list(record.embedding),
                            payload=record.to_payload(),
                        )
                    ],
                )
            except Exception as e:
                raise PersistenceError(
                    f"Failed to create record: {e}",
                    details={"collection": collection, "id": record.id, "error": str(e)},
                ) from e

        logger.debug(f"Created record {record.id}", extra={"collection": collection})

    async def get_by_id(self, collection: str, record_id: str) -> PlotRecord | None:
        """Fetch a single point by id."""
        client = await self._get_client()

        with track_store_operation("get_by_id"):
            try:
                points = await client.retrieve(
                    collection_name=collection,
                    ids=[record_id],
                    with_payload=True,
                    with_vectors=True,
                )
            except Exception as e:
                raise QueryError(
                    f"Failed to fetch record: {e}",
                    details={"collection": collection, "id": record_id, "error": str(e)},
                ) from e

        return _to_record(points[0]) if points else None

    async def query(
        self,
        collection: str,
        constraints: Sequence[FieldConstraint],
    ) -> list[PlotRecord]:
        """Scroll through every point matching the constraints."""
        client = await self._get_client()
        query_filter = to_qdrant_filter(constraints)
        records: list[PlotRecord] = []
        offset: Any = None

        with track_store_operation("query"):
            try:
                while True:
                    points, offset = await client.scroll(
                        collection_name=collection,
                        scroll_filter=query_filter,
                        limit=self._settings.scroll_batch_size,
                        offset=offset,
                        with_payload=True,
                        with_vectors=True,
                    )
                    records.extend(_to_record(point) for point in points)
                    if offset is None:
                        break
            except Exception as e:
                raise QueryError(
                    f"Failed to query records: {e}",
                    details={
                        "collection": collection,
                        "constraints": [str(c) for c in constraints],
                        "error": str(e),
                    },
                ) from e

        logger.debug(
            f"Query matched {len(records)} records",
            extra={"collection": collection, "constraints": len(constraints)},
        )
        return records

    async def similarity_search(
        self,
        collection: str,
        vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[ScoredPlot]:
        """Nearest-neighbour search with a score cutoff."""
        client = await self._get_client()

        with track_store_operation("similarity_search"):
            try:
                results = await client.query_points(
                    collection_name=collection,
                    query=list(vector),
                    limit=limit,
                    score_threshold=threshold,
                    with_payload=True,
                    with_vectors=True,
                )
            except Exception as e:
                raise QueryError(
                    f"Failed to search: {e}",
                    details={
                        "collection": collection,
                        "threshold": threshold,
                        "error": str(e),
                    },
                ) from e

        return [
            ScoredPlot(
                record=_to_record(point),
                score=point.score if point.score is not None else 0.0,
            )
            for point in results.points
        ]

    async def count(self, collection: str) -> int:
        """Exact number of points in the collection."""
        client = await self._get_client()
        try:
            result = await client.count(collection_name=collection, exact=True)
        except Exception as e:
            raise QueryError(
                f"Failed to count records: {e}",
                details={"collection": collection, "error": str(e)},
            ) from e
        return result.count
