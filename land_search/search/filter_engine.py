"""Metadata filter engine.

Compiles a SearchFilter into typed field constraints and asks the plot
store for every record that satisfies all of them.
"""

from collections.abc import Mapping
from typing import Any

from land_search.exceptions import LandSearchError, QueryError
from land_search.logging_config import get_logger
from land_search.plots.filters import (
    DistanceFilter,
    FieldConstraint,
    NumericBounds,
    Operator,
    PlotField,
    SearchFilter,
)
from land_search.plots.models import PlotRecord
from land_search.store.base import PlotStore

logger = get_logger(__name__)


def _membership(field: PlotField, values: list[Any] | None) -> list[FieldConstraint]:
    if not values:
        return []
    return [
        FieldConstraint(
            field,
            Operator.IN,
            tuple(v.value if hasattr(v, "value") else v for v in values),
        )
    ]


def _distance(
    distance: DistanceFilter | None,
    meters: PlotField,
    category: PlotField,
) -> list[FieldConstraint]:
    if distance is None:
        return []
    constraints: list[FieldConstraint] = []
    if distance.max_meters is not None:
        constraints.append(FieldConstraint(meters, Operator.LTE, distance.max_meters))
    if distance.category is not None:
        constraints.append(FieldConstraint(category, Operator.EQ, distance.category.value))
    return constraints


def _bounds(
    bounds: NumericBounds | None,
    low: PlotField,
    high: PlotField,
) -> list[FieldConstraint]:
    if bounds is None:
        return []
    constraints: list[FieldConstraint] = []
    if bounds.min is not None:
        constraints.append(FieldConstraint(low, Operator.GTE, bounds.min))
    if bounds.max is not None:
        constraints.append(FieldConstraint(high, Operator.LTE, bounds.max))
    return constraints


def compile_filter(search_filter: SearchFilter) -> tuple[FieldConstraint, ...]:
    """Translate a filter into conjunctive field constraints.

    Every populated field becomes one constraint; absent fields and empty
    membership lists contribute nothing.

    Args:
        search_filter: Search filter.

    Returns:
        Constraints in a fixed field order.
    """
    constraints = [
        *_membership(PlotField.NEIGHBORHOOD, search_filter.neighborhoods),
        *_membership(PlotField.ZONING, search_filter.zoning_types),
        *_membership(PlotField.PLOT_SIZE, search_filter.plot_sizes),
        *_membership(PlotField.BUILDING_TYPE, search_filter.building_types),
    ]

    if search_filter.distances is not None:
        constraints += _distance(
            search_filter.distances.ocean, PlotField.OCEAN_METERS, PlotField.OCEAN_CATEGORY
        )
        constraints += _distance(
            search_filter.distances.bay, PlotField.BAY_METERS, PlotField.BAY_CATEGORY
        )

    if search_filter.building is not None:
        constraints += _bounds(
            search_filter.building.floors, PlotField.FLOORS_MIN, PlotField.FLOORS_MAX
        )
        constraints += _bounds(
            search_filter.building.height, PlotField.HEIGHT_MIN, PlotField.HEIGHT_MAX
        )

    if search_filter.rarity is not None and search_filter.rarity.rank_range is not None:
        rank_range = search_filter.rarity.rank_range
        if rank_range.min is not None:
            constraints.append(FieldConstraint(PlotField.RANK, Operator.GTE, rank_range.min))
        if rank_range.max is not None:
            constraints.append(FieldConstraint(PlotField.RANK, Operator.LTE, rank_range.max))

    return tuple(constraints)


class MetadataFilterEngine:
    """Runs structured metadata filters against one plot collection."""

    def __init__(self, store: PlotStore, collection: str) -> None:
        """Initialize the filter engine.

        Args:
            store: Plot store to query.
            collection: Collection holding the plot records.
        """
        self._store = store
        self._collection = collection

    async def filter_records(
        self,
        filters: SearchFilter | Mapping[str, Any] | None = None,
    ) -> list[PlotRecord]:
        """Return every record matching all populated filter fields.

        An empty filter returns the whole collection. Order is the store's.

        Args:
            filters: Filter, or a mapping validated into one.

        Returns:
            Matching records.

        Raises:
            ValidationError: If the filter is malformed or has inconsistent bounds.
            QueryError: If the store rejects the query.
        """
        search_filter = SearchFilter.parse(filters)
        constraints = compile_filter(search_filter)
        filter_context = search_filter.model_dump(mode="json", exclude_none=True)

        try:
            records = await self._store.query(self._collection, constraints)
        except LandSearchError as e:
            raise e.add_context(operation="filter_records", filter=filter_context)
        except Exception as e:
            raise QueryError(
                f"Metadata query failed: {e}",
                details={
                    "operation": "filter_records",
                    "filter": filter_context,
                    "error": str(e),
                },
            ) from e

        logger.debug(
            f"Filter matched {len(records)} records",
            extra={"collection": self._collection, "constraints": len(constraints)},
        )
        return records
