"""CSV ingestion of plot exports."""

import csv
import math
from collections.abc import Iterator, Mapping
from pathlib import Path

import pydantic

from land_search.exceptions import ErrorCode, IngestError
from land_search.logging_config import get_logger
from land_search.plots.models import PlotMetadata

logger = get_logger(__name__)

# Columns of the plot export. Distance category columns are ignored;
# categories are derived from the meter columns.
REQUIRED_COLUMNS = (
    "Rank",
    "Name",
    "Neighborhood",
    "Zoning Type",
    "Plot Size",
    "Building Size",
    "Distance to Ocean (m)",
    "Distance to Bay (m)",
    "Min # of Floors",
    "Max # of Floors",
    "Min Building Height (m)",
    "Max Building Height (m)",
    "Plot Area (m²)",
)


def _text(row: Mapping[str, str | None], column: str) -> str:
    # csv.DictReader fills cells missing from short rows with None
    return (row.get(column) or "").strip()


def _number(row: Mapping[str, str | None], column: str) -> float:
    raw = _text(row, column).replace(",", "")
    try:
        value = float(raw)
    except ValueError as e:
        raise IngestError(
            f"Column {column!r} is not a number: {raw!r}",
            code=ErrorCode.CSV_ROW_INVALID,
            details={"column": column, "value": raw},
        ) from e

    if not math.isfinite(value):
        raise IngestError(
            f"Column {column!r} is not a finite number: {raw!r}",
            code=ErrorCode.CSV_ROW_INVALID,
            details={"column": column, "value": raw},
        )
    return value


def _integer(row: Mapping[str, str | None], column: str) -> int:
    value = _number(row, column)
    if not value.is_integer():
        raise IngestError(
            f"Column {column!r} is not a whole number: {value!r}",
            code=ErrorCode.CSV_ROW_INVALID,
            details={"column": column, "value": value},
        )
    return int(value)


def plot_from_csv_row(row: Mapping[str, str | None]) -> PlotMetadata:
    """Convert one export row into plot metadata.

    Args:
        row: Mapping of column name to cell text.

    Returns:
        Validated PlotMetadata.

    Raises:
        IngestError: If a column is missing or a value is invalid.
    """
    missing = [column for column in REQUIRED_COLUMNS if column not in row]
    if missing:
        raise IngestError(
            f"Missing columns: {', '.join(missing)}",
            code=ErrorCode.CSV_ROW_INVALID,
            details={"missing": missing},
        )

    data = {
        "rank": _integer(row, "Rank"),
        "name": _text(row, "Name"),
        "neighborhood": _text(row, "Neighborhood"),
        "zoning": _text(row, "Zoning Type"),
        "plot_size": _text(row, "Plot Size"),
        "building_type": _text(row, "Building Size"),
        "distances": {
            "ocean": {"meters": _number(row, "Distance to Ocean (m)")},
            "bay": {"meters": _number(row, "Distance to Bay (m)")},
        },
        "building": {
            "floors": {
                "min": _integer(row, "Min # of Floors"),
                "max": _integer(row, "Max # of Floors"),
            },
            "height": {
                "min": _number(row, "Min Building Height (m)"),
                "max": _number(row, "Max Building Height (m)"),
            },
        },
        "plot_area": _number(row, "Plot Area (m²)"),
    }

    try:
        return PlotMetadata.model_validate(data)
    except pydantic.ValidationError as e:
        raise IngestError(
            f"Invalid plot row {row.get('Name', '')!r}",
            code=ErrorCode.CSV_ROW_INVALID,
            details={
                "name": row.get("Name"),
                "errors": e.errors(include_url=False, include_context=False),
            },
        ) from e


class PlotCSVLoader:
    """Loader for plot export CSV files."""

    SUPPORTED_EXTENSIONS = {".csv"}

    def __init__(self, encoding: str = "utf-8-sig") -> None:
        """Initialize the CSV loader.

        Args:
            encoding: Text encoding to use when reading files.
        """
        self.encoding = encoding

    def supports(self, source: str | Path) -> bool:
        """Check if source has a CSV extension."""
        path = Path(source) if isinstance(source, str) else source
        return path.suffix.lower() in self.SUPPORTED_EXTENSIONS

    def read_rows(self, source: str | Path) -> Iterator[dict[str, str]]:
        """Yield raw rows from a CSV file.

        Raises:
            IngestError: If the file cannot be read.
        """
        path = Path(source) if isinstance(source, str) else source

        if not path.is_file():
            raise IngestError(
                f"File not found: {path}",
                details={"path": str(path)},
            )

        try:
            with path.open(newline="", encoding=self.encoding) as handle:
                yield from csv.DictReader(handle)
        except (OSError, UnicodeDecodeError, csv.Error) as e:
            raise IngestError(
                f"Failed to read file: {path}",
                details={"path": str(path), "error": str(e)},
            ) from e

    def load(self, source: str | Path) -> list[PlotMetadata]:
        """Load and validate every row of a CSV file.

        Args:
            source: Path to the CSV file.

        Returns:
            Plot metadata in file order.

        Raises:
            IngestError: If the file or any row is invalid.
        """
        plots: list[PlotMetadata] = []
        for line, row in enumerate(self.read_rows(source), start=2):
            try:
                plots.append(plot_from_csv_row(row))
            except IngestError as e:
                raise e.add_context(source=str(source), line=line)

        logger.info(f"Loaded {len(plots)} plots", extra={"source": str(source)})
        return plots
