"""In-process plot store for development and tests."""

import math
from collections.abc import Sequence

from land_search.exceptions import ErrorCode, PersistenceError, QueryError
from land_search.logging_config import get_logger
from land_search.observability.metrics import track_store_operation
from land_search.plots.filters import FieldConstraint
from land_search.plots.models import PlotRecord, ScoredPlot
from land_search.store.base import PlotStore

logger = get_logger(__name__)


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity of two equal-length vectors; 0.0 if either is zero."""
    dot = math.fsum(x * y for x, y in zip(a, b, strict=True))
    norm_a = math.sqrt(math.fsum(x * x for x in a))
    norm_b = math.sqrt(math.fsum(y * y for y in b))
    if norm_a == 0.0 or norm_b == 0.0:
        return 0.0
    return dot / (norm_a * norm_b)


class InMemoryPlotStore(PlotStore):
    """Dictionary-backed plot store.

    Query results follow insertion order. Similarity search scans every
    record of the collection.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, PlotRecord]] = {}
        self._dimensions: dict[str, int] = {}

    def _records(self, collection: str) -> dict[str, PlotRecord]:
        return self._collections.get(collection, {})

    async def ensure_collection(self, collection: str, dimensions: int) -> None:
        """Register the collection and its vector width."""
        self._collections.setdefault(collection, {})
        self._dimensions.setdefault(collection, dimensions)

    async def create(self, collection: str, record: PlotRecord) -> None:
        """Insert a record, refusing duplicates and mismatched widths."""
        with track_store_operation("create"):
            records = self._collections.setdefault(collection, {})
            if record.id in records:
                raise PersistenceError(
                    f"Record already exists: {record.id}",
                    code=ErrorCode.DUPLICATE_RECORD,
                    details={"collection": collection, "id": record.id},
                )

            expected = self._dimensions.setdefault(collection, len(record.embedding))
            if len(record.embedding) != expected:
                raise PersistenceError(
                    f"Embedding has {len(record.embedding)} dimensions, "
                    f"collection expects {expected}",
                    details={"collection": collection, "id": record.id},
                )

            records[record.id] = record

        logger.debug(f"Created record {record.id}", extra={"collection": collection})

    async def get_by_id(self, collection: str, record_id: str) -> PlotRecord | None:
        """Look up a record by id."""
        with track_store_operation("get_by_id"):
            return self._records(collection).get(record_id)

    async def query(
        self,
        collection: str,
        constraints: Sequence[FieldConstraint],
    ) -> list[PlotRecord]:
        """Evaluate every constraint against each stored payload."""
        with track_store_operation("query"):
            matched: list[PlotRecord] = []
            for record in self._records(collection).values():
                payload = record.to_payload()
                try:
                    if all(c.matches(payload) for c in constraints):
                        matched.append(record)
                except (TypeError, ValueError) as e:
                    raise QueryError(
                        f"Failed to query records: {e}",
                        details={
                            "collection": collection,
                            "constraints": [str(c) for c in constraints],
                            "error": str(e),
                        },
                    ) from e
            return matched

    async def similarity_search(
        self,
        collection: str,
        vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[ScoredPlot]:
        """Rank records by cosine similarity, keeping scores >= threshold."""
        with track_store_operation("similarity_search"):
            expected = self._dimensions.get(collection)
            if expected is not None and len(vector) != expected:
                raise QueryError(
                    f"Query vector has {len(vector)} dimensions, "
                    f"collection expects {expected}",
                    details={"collection": collection, "threshold": threshold},
                )

            scored = [
                ScoredPlot(record=record, score=cosine_similarity(vector, record.embedding))
                for record in self._records(collection).values()
            ]
            scored = [s for s in scored if s.score >= threshold]
            # Stable sort keeps insertion order between equal scores.
            scored.sort(key=lambda s: s.score, reverse=True)
            return scored[:limit]

    async def count(self, collection: str) -> int:
        """Number of records in the collection."""
        return len(self._records(collection))
