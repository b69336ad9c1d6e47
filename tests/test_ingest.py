"""Tests for CSV ingestion."""

from pathlib import Path

import pytest

from land_search.exceptions import ErrorCode, IngestError
from land_search.plots.ingest import REQUIRED_COLUMNS, PlotCSVLoader, plot_from_csv_row
from land_search.plots.models import BuildingType, DistanceCategory, PlotSize, ZoningType


def _row(**overrides: str) -> dict[str, str]:
    row = {
        "Rank": "150",
        "Name": " Azure Point ",
        "Neighborhood": "Flashing Lights",
        "Zoning Type": "Commercial",
        "Plot Size": "Mega",
        "Building Size": "Highrise",
        "Distance to Ocean": "Far",
        "Distance to Bay": "Close",
        "Distance to Ocean (m)": "1,020",
        "Distance to Bay (m)": "85",
        "Min # of Floors": "20",
        "Max # of Floors": "45",
        "Min Building Height (m)": "80",
        "Max Building Height (m)": "190.5",
        "Plot Area (m²)": "12,400",
    }
    row.update(overrides)
    return row


class TestPlotFromCsvRow:
    """Tests for plot_from_csv_row."""

    def test_valid_row(self) -> None:
        """A complete row maps onto plot metadata."""
        metadata = plot_from_csv_row(_row())

        assert metadata.rank == 150
        assert metadata.name == "Azure Point"
        assert metadata.zoning is ZoningType.COMMERCIAL
        assert metadata.plot_size is PlotSize.MEGA
        assert metadata.building_type is BuildingType.HIGH_RISE
        assert metadata.distances.ocean.meters == 1020
        assert metadata.building.floors.max == 45
        assert metadata.building.height.max == 190.5
        assert metadata.plot_area == 12400

    def test_category_columns_ignored(self) -> None:
        """Distance categories are recomputed from meters."""
        metadata = plot_from_csv_row(_row(**{"Distance to Ocean": "Close"}))

        assert metadata.distances.ocean.category is DistanceCategory.FAR
        assert metadata.distances.bay.category is DistanceCategory.CLOSE

    def test_missing_column(self) -> None:
        """Missing columns are listed in the error."""
        row = _row()
        del row["Plot Area (m²)"]

        with pytest.raises(IngestError) as exc_info:
            plot_from_csv_row(row)

        assert exc_info.value.code == ErrorCode.CSV_ROW_INVALID
        assert exc_info.value.details["missing"] == ["Plot Area (m²)"]

    def test_non_numeric_value(self) -> None:
        """Unparseable numbers name the column."""
        with pytest.raises(IngestError) as exc_info:
            plot_from_csv_row(_row(Rank="first"))

        assert exc_info.value.details["column"] == "Rank"

    @pytest.mark.parametrize("value", ["nan", "inf", "-inf"])
    def test_non_finite_value(self, value: str) -> None:
        """Non-finite numbers are rejected for float and integer columns."""
        for column in ("Rank", "Min # of Floors", "Plot Area (m²)"):
            with pytest.raises(IngestError) as exc_info:
                plot_from_csv_row(_row(**{column: value}))

            assert exc_info.value.code == ErrorCode.CSV_ROW_INVALID
            assert exc_info.value.details["column"] == column

    def test_fractional_integer_column(self) -> None:
        """Ranks and floor counts must be whole numbers."""
        with pytest.raises(IngestError) as exc_info:
            plot_from_csv_row(_row(**{"Max # of Floors": "45.5"}))

        assert exc_info.value.details["column"] == "Max # of Floors"

    def test_short_row(self) -> None:
        """Cells missing from a short row are reported, not crashed on."""
        row: dict[str, str | None] = {**_row(), "Name": None, "Plot Area (m²)": None}

        with pytest.raises(IngestError) as exc_info:
            plot_from_csv_row(row)

        assert exc_info.value.code == ErrorCode.CSV_ROW_INVALID
        assert exc_info.value.details["column"] == "Plot Area (m²)"

    def test_invalid_enum_value(self) -> None:
        """Values outside the enumerations are rejected."""
        with pytest.raises(IngestError) as exc_info:
            plot_from_csv_row(_row(**{"Zoning Type": "Agricultural"}))

        assert exc_info.value.code == ErrorCode.CSV_ROW_INVALID
        assert exc_info.value.details["name"] == " Azure Point "

    def test_required_columns(self) -> None:
        """Category columns are not required."""
        assert "Distance to Ocean" not in REQUIRED_COLUMNS
        assert "Distance to Ocean (m)" in REQUIRED_COLUMNS


class TestPlotCSVLoader:
    """Tests for PlotCSVLoader."""

    def test_supports_csv(self) -> None:
        """Loader supports .csv files only."""
        loader = PlotCSVLoader()
        assert loader.supports("plots.csv")
        assert loader.supports(Path("PLOTS.CSV"))
        assert not loader.supports("plots.json")

    def test_load_file(self, tmp_path: Path) -> None:
        """Rows are loaded in file order, tolerating a byte order mark."""
        header = ",".join(f'"{column}"' for column in _row())
        first = ",".join(f'"{value}"' for value in _row().values())
        second = ",".join(f'"{value}"' for value in _row(Rank="2", Name="Second").values())
        path = tmp_path / "plots.csv"
        path.write_text("\ufeff" + "\n".join([header, first, second]), encoding="utf-8")

        plots = PlotCSVLoader().load(path)

        assert [p.rank for p in plots] == [150, 2]
        assert plots[1].name == "Second"

    def test_missing_file(self, tmp_path: Path) -> None:
        """A missing file raises IngestError."""
        with pytest.raises(IngestError, match="File not found"):
            PlotCSVLoader().load(tmp_path / "absent.csv")

    def test_bad_row_reports_line(self, tmp_path: Path) -> None:
        """Row errors carry the source path and line number."""
        header = ",".join(_row())
        good = ",".join(v.replace(",", "") for v in _row().values())
        bad = ",".join(v.replace(",", "") for v in _row(Rank="x").values())
        path = tmp_path / "plots.csv"
        path.write_text("\n".join([header, good, bad]), encoding="utf-8")

        with pytest.raises(IngestError) as exc_info:
            PlotCSVLoader().load(path)

        assert exc_info.value.details["line"] == 3
        assert exc_info.value.details["source"] == str(path)

    def test_short_row_reports_line(self, tmp_path: Path) -> None:
        """A truncated row fails with its line number."""
        header = ",".join(_row())
        good = ",".join(v.replace(",", "") for v in _row().values())
        short = ",".join(v.replace(",", "") for v in list(_row().values())[:5])
        path = tmp_path / "plots.csv"
        path.write_text("\n".join([header, good, short]), encoding="utf-8")

        with pytest.raises(IngestError) as exc_info:
            PlotCSVLoader().load(path)

        assert exc_info.value.code == ErrorCode.CSV_ROW_INVALID
        assert exc_info.value.details["line"] == 3
