"""Plot store interface."""

from abc import ABC, abstractmethod
from collections.abc import Sequence

from land_search.plots.filters import FieldConstraint
from land_search.plots.models import PlotRecord, ScoredPlot


class PlotStore(ABC):
    """Abstract base class for plot stores.

    A store persists plot records per collection and answers both
    predicate queries over metadata and similarity queries over embeddings.
    Every call is independent and read-only apart from ``create``.
    """

    @abstractmethod
    async def ensure_collection(self, collection: str, dimensions: int) -> None:
        """Create a collection if it does not exist yet.

        Args:
            collection: Collection name.
            dimensions: Embedding width for the collection.

        Raises:
            PersistenceError: If the collection cannot be created.
        """
        ...

    @abstractmethod
    async def create(self, collection: str, record: PlotRecord) -> None:
        """Persist a new record.

        Args:
            collection: Collection name.
            record: Record to store.

        Raises:
            PersistenceError: If the id already exists or the write fails.
        """
        ...

    @abstractmethod
    async def get_by_id(self, collection: str, record_id: str) -> PlotRecord | None:
        """Fetch a record by id.

        Args:
            collection: Collection name.
            record_id: Record identifier.

        Returns:
            The record, or None if not found.

        Raises:
            QueryError: If the lookup fails.
        """
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        constraints: Sequence[FieldConstraint],
    ) -> list[PlotRecord]:
        """Return every record satisfying all constraints.

        An empty constraint list matches the whole collection.

        Args:
            collection: Collection name.
            constraints: Conjunctive field constraints.

        Returns:
            Matching records in store order.

        Raises:
            QueryError: If the query fails.
        """
        ...

    @abstractmethod
    async def similarity_search(
        self,
        collection: str,
        vector: Sequence[float],
        threshold: float,
        limit: int,
    ) -> list[ScoredPlot]:
        """Return records ranked by similarity to a vector.

        Args:
            collection: Collection name.
            vector: Query embedding.
            threshold: Minimum similarity score.
            limit: Maximum number of results.

        Returns:
            Scored records, most similar first.

        Raises:
            QueryError: If the search fails.
        """
        ...

    @abstractmethod
    async def count(self, collection: str) -> int:
        """Number of records in a collection."""
        ...

    async def close(self) -> None:
        """Release client resources."""
        return None
