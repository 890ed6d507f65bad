"""Tests for CSV sinks."""

from __future__ import annotations

from pathlib import Path

import pandas as pd

from hyperlocal_weather.contracts import CSV_COLUMNS, GridPoint, WeatherRecord
from hyperlocal_weather.sinks import GRID_COLUMNS, CsvTableSink, write_grid_points


def _record(hour: int) -> WeatherRecord:
    return WeatherRecord(
        latitude=20.3,
        longitude=85.8,
        green_cover_frac=0.25,
        water_cover_frac=None,
        values={"temperature_2m": 301.5},
        date="2024-01-01",
        hour=hour,
        locality_id="20.3000_85.8000",
    )


def test_batches_are_streamed_into_one_file(tmp_path: Path) -> None:
    """Header appears once and every batch is appended."""
    sink = CsvTableSink(tmp_path, folder="exports")
    path, rows = sink.write_table("desc", "weather_2024", [[_record(0)], [], [_record(1), _record(2)]])

    assert path == str(tmp_path / "exports" / "weather_2024.csv")
    assert rows == 3
    frame = pd.read_csv(path)
    assert list(frame.columns) == list(CSV_COLUMNS)
    assert frame["hour"].tolist() == [0, 1, 2]
    assert frame["water_cover_frac"].isna().all()
    assert not (tmp_path / "exports" / "weather_2024.csv.part").exists()


def test_empty_table_still_has_header(tmp_path: Path) -> None:
    """A year without images produces a header-only CSV."""
    path, rows = CsvTableSink(tmp_path).write_table("desc", "empty", [])
    assert rows == 0
    assert Path(path).read_text(encoding="utf-8").strip() == ",".join(CSV_COLUMNS)


def test_write_grid_points(tmp_path: Path) -> None:
    """Grid points are written with their locality ids."""
    out = write_grid_points([GridPoint(20.25, 85.8, 0.5, 0.0)], tmp_path / "grid" / "points.csv")
    frame = pd.read_csv(out)
    assert list(frame.columns) == list(GRID_COLUMNS)
    assert frame["locality_id"].tolist() == ["20.2500_85.8000"]
