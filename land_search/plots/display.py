"""Human-readable rendering of plot records."""

from land_search.plots.models import PlotRecord

_RULE = "━" * 40


def format_plot(record: PlotRecord) -> str:
    """Render a plot record as a text card."""
    metadata = record.metadata
    floors = metadata.building.floors
    height = metadata.building.height
    ocean = metadata.distances.ocean
    bay = metadata.distances.bay

    lines = [
        "Land Plot",
        _RULE,
        f"ID: {record.id}",
        f"Name: {metadata.name}",
        f"Rank: {metadata.rank} ({metadata.rarity_category.value})",
        f"Location: {metadata.neighborhood}",
        "",
        "Properties:",
        f"• Plot Size: {metadata.plot_size.value}",
        f"• Zoning: {metadata.zoning.value}",
        f"• Building Type: {metadata.building_type.value}",
        f"• Plot Area: {metadata.plot_area}m²",
        "",
        "Building Details:",
        f"• Floors: {floors.min}-{floors.max}",
        f"• Height: {height.min}-{height.max}m",
        "",
        "Distances:",
        f"• Ocean: {ocean.meters}m ({ocean.category.value})",
        f"• Bay: {bay.meters}m ({bay.category.value})",
        "",
        "Description:",
        record.text,
        _RULE,
    ]
    return "\n".join(lines)
