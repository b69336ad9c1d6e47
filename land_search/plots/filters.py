"""Search filter definitions and typed field constraints.

A SearchFilter is sparse: every populated field narrows the result set and
every absent field (``None``) leaves it unconstrained. Bounds of ``0`` are
real bounds. Empty membership lists are treated as absent.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any, Self

import pydantic
from pydantic import BaseModel, ConfigDict, Field, model_validator

from land_search.exceptions import ValidationError
from land_search.plots.models import BuildingType, DistanceCategory, PlotSize, ZoningType


class _FilterModel(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class _Bounds(_FilterModel):
    @model_validator(mode="after")
    def _check_order(self) -> Self:
        low = getattr(self, "min")
        high = getattr(self, "max")
        if low is not None and high is not None and low > high:
            raise ValueError(f"min ({low}) must not exceed max ({high})")
        return self


class DistanceFilter(_FilterModel):
    """Constraints on a distance to a landmark."""

    max_meters: float | None = Field(default=None, ge=0, description="Maximum meters")
    category: DistanceCategory | None = Field(default=None, description="Exact category")


class DistancesFilter(_FilterModel):
    """Distance constraints for the ocean and the bay."""

    ocean: DistanceFilter | None = None
    bay: DistanceFilter | None = None


class NumericBounds(_Bounds):
    """Bounds on a record's own range.

    ``min`` constrains the record's minimum from below (>=), ``max``
    constrains the record's maximum from above (<=).
    """

    min: float | None = Field(default=None, ge=0)
    max: float | None = Field(default=None, ge=0)


class BuildingFilter(_FilterModel):
    """Constraints on the building envelope."""

    floors: NumericBounds | None = None
    height: NumericBounds | None = None


class RankRange(_Bounds):
    """Inclusive bounds on the rarity rank."""

    min: int | None = Field(default=None, ge=1)
    max: int | None = Field(default=None, ge=1)


class RarityFilter(_FilterModel):
    """Constraints on rarity."""

    rank_range: RankRange | None = None


class SearchFilter(_FilterModel):
    """Structured filter over plot metadata.

    Attributes:
        neighborhoods: Match plots in any of these neighborhoods.
        zoning_types: Match plots with any of these zonings.
        plot_sizes: Match plots of any of these sizes.
        building_types: Match plots allowing any of these building types.
        distances: Distance bounds and categories.
        building: Floor and height bounds.
        rarity: Rank range.
    """

    neighborhoods: list[str] | None = None
    zoning_types: list[ZoningType] | None = None
    plot_sizes: list[PlotSize] | None = None
    building_types: list[BuildingType] | None = None
    distances: DistancesFilter | None = None
    building: BuildingFilter | None = None
    rarity: RarityFilter | None = None

    @classmethod
    def parse(cls, data: "SearchFilter | Mapping[str, Any] | None") -> "SearchFilter":
        """Build a filter from a mapping, reporting bad input as ValidationError.

        Args:
            data: Existing filter, mapping of filter fields, or None.

        Returns:
            SearchFilter instance (empty when ``data`` is None).

        Raises:
            ValidationError: If the mapping is malformed or has inconsistent bounds.
        """
        if data is None:
            return cls()
        if isinstance(data, cls):
            return data
        try:
            return cls.model_validate(data)
        except pydantic.ValidationError as e:
            raise ValidationError(
                "Invalid search filter",
                details={
                    "filter": dict(data),
                    "errors": e.errors(include_url=False, include_context=False),
                },
            ) from e

    @classmethod
    def for_rank_range(cls, min_rank: int | None, max_rank: int | None) -> "SearchFilter":
        """Filter that constrains only the rarity rank."""
        return cls.parse({"rarity": {"rank_range": {"min": min_rank, "max": max_rank}}})


class PlotField(str, Enum):
    """Filterable metadata fields, valued by their payload path."""

    NEIGHBORHOOD = "metadata.neighborhood"
    ZONING = "metadata.zoning"
    PLOT_SIZE = "metadata.plot_size"
    BUILDING_TYPE = "metadata.building_type"
    OCEAN_METERS = "metadata.distances.ocean.meters"
    OCEAN_CATEGORY = "metadata.distances.ocean.category"
    BAY_METERS = "metadata.distances.bay.meters"
    BAY_CATEGORY = "metadata.distances.bay.category"
    FLOORS_MIN = "metadata.building.floors.min"
    FLOORS_MAX = "metadata.building.floors.max"
    HEIGHT_MIN = "metadata.building.height.min"
    HEIGHT_MAX = "metadata.building.height.max"
    RANK = "metadata.rank"


class Operator(str, Enum):
    """Comparison applied by a field constraint."""

    IN = "in"
    EQ = "eq"
    LTE = "lte"
    GTE = "gte"


_MISSING = object()


def resolve_field(payload: Mapping[str, Any], field: PlotField) -> Any:
    """Look up a field's value in a store payload, or a sentinel if absent."""
    value: Any = payload
    for part in field.value.split("."):
        if not isinstance(value, Mapping) or part not in value:
            return _MISSING
        value = value[part]
    return value


@dataclass(frozen=True)
class FieldConstraint:
    """One conjunctive constraint on a metadata field."""

    field: PlotField
    op: Operator
    value: Any

    def matches(self, payload: Mapping[str, Any]) -> bool:
        """Check whether a store payload satisfies this constraint."""
        actual = resolve_field(payload, self.field)
        if actual is _MISSING or actual is None:
            return False

        if self.op is Operator.IN:
            return actual in self.value
        if self.op is Operator.EQ:
            return actual == self.value
        if self.op is Operator.LTE:
            return actual <= self.value
        if self.op is Operator.GTE:
            return actual >= self.value
        raise ValueError(f"Unsupported operator: {self.op}")
