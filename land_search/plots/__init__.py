"""Plot data model, filters and ingestion."""

from land_search.plots.filters import FieldConstraint, Operator, PlotField, SearchFilter
from land_search.plots.models import (
    BuildingType,
    DistanceCategory,
    PlotMetadata,
    PlotRecord,
    PlotSize,
    RarityCategory,
    ScoredPlot,
    ZoningType,
    categorize_distance,
    categorize_rarity,
    describe_plot,
)

__all__ = [
    "BuildingType",
    "DistanceCategory",
    "FieldConstraint",
    "Operator",
    "PlotField",
    "PlotMetadata",
    "PlotRecord",
    "PlotSize",
    "RarityCategory",
    "ScoredPlot",
    "SearchFilter",
    "ZoningType",
    "categorize_distance",
    "categorize_rarity",
    "describe_plot",
]
