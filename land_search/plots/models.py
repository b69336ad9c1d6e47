"""Plot data models.

A plot record pairs a generated description with structured metadata and
the embedding of that description. Distance and rarity categories are
derived from their base values and cannot be set independently.
"""

import re
from enum import Enum
from typing import Any, Self
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, computed_field, model_validator

_NORMALIZE = re.compile(r"[\s_\-]+")


def _lookup_key(value: str) -> str:
    return _NORMALIZE.sub("", value).lower()


class _CanonicalEnum(str, Enum):
    """String enum that also accepts legacy and loosely formatted spellings."""

    @classmethod
    def _legacy_aliases(cls) -> dict[str, str]:
        return {}

    @classmethod
    def _missing_(cls, value: object) -> Self | None:
        if not isinstance(value, str):
            return None
        key = _lookup_key(value)
        for member in cls:
            if _lookup_key(member.value) == key:
                return member
        alias = cls._legacy_aliases().get(key)
        if alias is not None:
            return cls(alias)
        return None


class ZoningType(_CanonicalEnum):
    """Zoning classification of a plot."""

    RESIDENTIAL = "Residential"
    COMMERCIAL = "Commercial"
    INDUSTRIAL = "Industrial"
    MIXED = "Mixed"
    SPECIAL = "Special"
    LEGENDARY = "Legendary"

    @classmethod
    def _legacy_aliases(cls) -> dict[str, str]:
        return {"mixeduse": "Mixed"}


class PlotSize(_CanonicalEnum):
    """Plot size class, declared smallest to largest."""

    NANO = "Nano"
    MICRO = "Micro"
    SMALL = "Small"
    MEDIUM = "Medium"
    LARGE = "Large"
    MEGA = "Mega"
    MAMMOTH = "Mammoth"
    GIGA = "Giga"

    @classmethod
    def _legacy_aliases(cls) -> dict[str, str]:
        return {"mid": "Medium"}


class BuildingType(_CanonicalEnum):
    """Building class allowed on a plot."""

    LOW_RISE = "LowRise"
    MID_RISE = "MidRise"
    HIGH_RISE = "HighRise"
    SKYSCRAPER = "Skyscraper"
    MEGASCRAPER = "Megascraper"

    @classmethod
    def _legacy_aliases(cls) -> dict[str, str]:
        return {"tall": "Skyscraper", "megatall": "Megascraper"}


class DistanceCategory(_CanonicalEnum):
    """Bucketed distance to a landmark."""

    CLOSE = "Close"
    MEDIUM = "Medium"
    FAR = "Far"


class RarityCategory(_CanonicalEnum):
    """Bucketed rarity rank."""

    ULTRA_PREMIUM = "Ultra Premium"
    PREMIUM = "Premium"
    STANDARD = "Standard"
    VALUE = "Value"
    ENTRY_LEVEL = "Entry Level"


def categorize_distance(meters: float) -> DistanceCategory:
    """Bucket a distance in meters into Close, Medium or Far."""
    if meters <= 300:
        return DistanceCategory.CLOSE
    if meters <= 700:
        return DistanceCategory.MEDIUM
    return DistanceCategory.FAR


def categorize_rarity(rank: int) -> RarityCategory:
    """Bucket a rarity rank; lower ranks are rarer."""
    if rank <= 100:
        return RarityCategory.ULTRA_PREMIUM
    if rank <= 500:
        return RarityCategory.PREMIUM
    if rank <= 2000:
        return RarityCategory.STANDARD
    if rank <= 3000:
        return RarityCategory.VALUE
    return RarityCategory.ENTRY_LEVEL


def _check_derived(
    data: Any,
    base_key: str,
    derived_key: str,
    enum_cls: type[_CanonicalEnum],
    derive: Any,
) -> Any:
    """Drop a supplied derived value after checking it against its base value.

    A derived value that disagrees with the base value is rejected.
    """
    if not isinstance(data, dict) or derived_key not in data:
        return data

    data = dict(data)
    supplied = data.pop(derived_key)
    if supplied is None or base_key not in data:
        return data

    try:
        expected = derive(data[base_key])
    except (TypeError, ValueError):
        # Base value is malformed; field validation reports it.
        return data

    try:
        matches = enum_cls(supplied) == expected
    except ValueError:
        matches = False
    if not matches:
        raise ValueError(
            f"{derived_key} {supplied!r} does not match {base_key} "
            f"{data[base_key]!r} (expected {expected.value!r})"
        )
    return data


class _FrozenModel(BaseModel):
    model_config = ConfigDict(frozen=True)


class DistanceInfo(_FrozenModel):
    """Distance to a landmark with its derived category.

    Attributes:
        meters: Distance in meters.
        category: Bucketed distance, computed from ``meters``.
    """

    meters: float = Field(ge=0, description="Distance in meters")

    @model_validator(mode="before")
    @classmethod
    def _validate_category(cls, data: Any) -> Any:
        return _check_derived(
            data,
            "meters",
            "category",
            DistanceCategory,
            lambda meters: categorize_distance(float(meters)),
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def category(self) -> DistanceCategory:
        """Distance category derived from meters."""
        return categorize_distance(self.meters)


class Distances(_FrozenModel):
    """Distances to the ocean and the bay."""

    ocean: DistanceInfo
    bay: DistanceInfo


class IntRange(_FrozenModel):
    """Inclusive integer range with ``min <= max``."""

    min: int = Field(ge=0)
    max: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> Self:
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self


class FloatRange(_FrozenModel):
    """Inclusive numeric range with ``min <= max``."""

    min: float = Field(ge=0)
    max: float = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> Self:
        if self.min > self.max:
            raise ValueError(f"min ({self.min}) must not exceed max ({self.max})")
        return self


class BuildingEnvelope(_FrozenModel):
    """Allowed building envelope.

    Attributes:
        floors: Floor count range.
        height: Building height range in meters.
    """

    floors: IntRange
    height: FloatRange


class Coordinates(_FrozenModel):
    """Plot position on the city map."""

    x: float
    y: float


class PlotMetadata(_FrozenModel):
    """Structured attributes of a land plot.

    Attributes:
        rank: Rarity rank (1 is the rarest).
        name: Display name of the plot.
        neighborhood: Neighborhood the plot belongs to.
        zoning: Zoning classification.
        plot_size: Plot size class.
        building_type: Building class allowed on the plot.
        distances: Distances to the ocean and the bay.
        building: Allowed floors and heights.
        plot_area: Plot area in square meters.
        coordinates: Optional map position.
        rarity_category: Bucketed rarity, computed from ``rank``.
    """

    rank: int = Field(gt=0, description="Rarity rank")
    name: str = Field(default="", description="Plot name")
    neighborhood: str = Field(description="Neighborhood")
    zoning: ZoningType = Field(description="Zoning classification")
    plot_size: PlotSize = Field(description="Plot size class")
    building_type: BuildingType = Field(description="Building class")
    distances: Distances = Field(description="Distances to landmarks")
    building: BuildingEnvelope = Field(description="Allowed building envelope")
    plot_area: float = Field(gt=0, description="Plot area in square meters")
    coordinates: Coordinates | None = Field(default=None, description="Map position")

    @model_validator(mode="before")
    @classmethod
    def _validate_rarity_category(cls, data: Any) -> Any:
        return _check_derived(
            data,
            "rank",
            "rarity_category",
            RarityCategory,
            lambda rank: categorize_rarity(int(rank)),
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def rarity_category(self) -> RarityCategory:
        """Rarity category derived from rank."""
        return categorize_rarity(self.rank)


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def describe_plot(metadata: PlotMetadata) -> str:
    """Generate the natural-language description that gets embedded.

    Args:
        metadata: Plot metadata.

    Returns:
        Deterministic description of the plot.
    """
    ocean = metadata.distances.ocean
    bay = metadata.distances.bay
    floors = metadata.building.floors
    height = metadata.building.height
    name = metadata.name or "This plot"

    return (
        f"{name} is a {metadata.plot_size.value} {metadata.zoning.value} plot "
        f"in {metadata.neighborhood}. "
        f"It is a {metadata.building_type.value} building with {floors.min} to "
        f"{floors.max} floors. "
        f"The plot area is {_number(metadata.plot_area)}m² with building heights from "
        f"{_number(height.min)}m to {_number(height.max)}m. "
        f"Located {ocean.category.value} from ocean ({_number(ocean.meters)}m) and "
        f"{bay.category.value} from bay ({_number(bay.meters)}m)."
    )


class PlotRecord(_FrozenModel):
    """A stored plot: description, metadata and embedding.

    Attributes:
        id: Opaque unique identifier.
        text: Description generated from the metadata.
        metadata: Structured plot attributes.
        embedding: Embedding of ``text``.
    """

    id: str = Field(description="Record identifier")
    text: str = Field(description="Generated description")
    metadata: PlotMetadata = Field(description="Plot metadata")
    embedding: list[float] = Field(default_factory=list, description="Embedding vector")

    @classmethod
    def create(
        cls,
        metadata: PlotMetadata,
        embedding: list[float],
        id: str | None = None,
    ) -> "PlotRecord":
        """Create a new record, generating its id and description.

        Args:
            metadata: Plot metadata.
            embedding: Embedding of the generated description.
            id: Explicit identifier; a UUID4 is assigned when omitted.

        Returns:
            New PlotRecord instance.
        """
        return cls(
            id=id or str(uuid4()),
            text=describe_plot(metadata),
            metadata=metadata,
            embedding=embedding,
        )

    def to_payload(self) -> dict[str, Any]:
        """Serialize text and metadata into a store payload."""
        return {
            "text": self.text,
            "metadata": self.metadata.model_dump(mode="json"),
        }

    @classmethod
    def from_payload(
        cls,
        id: str,
        payload: dict[str, Any],
        embedding: list[float] | None = None,
    ) -> "PlotRecord":
        """Rebuild a record from a store payload."""
        return cls(
            id=id,
            text=payload.get("text", ""),
            metadata=PlotMetadata.model_validate(payload["metadata"]),
            embedding=embedding or [],
        )


class ScoredPlot(_FrozenModel):
    """A plot returned by similarity search with its score."""

    record: PlotRecord
    score: float = Field(description="Similarity score (higher is more similar)")
