"""Tabular file sinks for yearly record batches."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from pathlib import Path
from typing import Protocol

import pandas as pd

from hyperlocal_weather.contracts import CSV_COLUMNS, GridPoint, WeatherRecord

logger = logging.getLogger(__name__)


class TableSink(Protocol):
    """Interface for writing one named table per export unit."""

    def write_table(
        self,
        description: str,
        file_name_prefix: str,
        batches: Iterable[Sequence[WeatherRecord]],
    ) -> tuple[str, int]:
        """Write all batches to one table; return (destination, row_count)."""


def records_frame(records: Sequence[WeatherRecord]) -> pd.DataFrame:
    """Build a DataFrame with the fixed CSV column order."""
    return pd.DataFrame([r.to_row() for r in records], columns=list(CSV_COLUMNS))


class CsvTableSink(TableSink):
    """Write tables as ``<out_dir>/<folder>/<file_name_prefix>.csv``."""

    def __init__(self, out_dir: str | Path, folder: str = "") -> None:
        self._dir = Path(out_dir) / folder if folder else Path(out_dir)

    @property
    def directory(self) -> Path:
        return self._dir

    def write_table(
        self,
        description: str,
        file_name_prefix: str,
        batches: Iterable[Sequence[WeatherRecord]],
    ) -> tuple[str, int]:
        self._dir.mkdir(parents=True, exist_ok=True)
        path = self._dir / f"{file_name_prefix}.csv"
        tmp = path.with_suffix(".csv.part")

        rows = 0
        header_written = False
        try:
            with tmp.open("w", encoding="utf-8", newline="") as fh:
                for batch in batches:
                    if not batch:
                        continue
                    records_frame(batch).to_csv(fh, index=False, header=not header_written, na_rep="")
                    header_written = True
                    rows += len(batch)
                if not header_written:
                    records_frame([]).to_csv(fh, index=False)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        tmp.replace(path)

        logger.info("wrote %s (%s) rows=%d", path, description, rows)
        return str(path), rows


GRID_COLUMNS: tuple[str, ...] = ("latitude", "longitude", "green_cover_frac", "water_cover_frac", "locality_id")


def write_grid_points(points: Sequence[GridPoint], path: str | Path) -> str:
    """Write enriched grid points as CSV; returns the written path."""
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    frame = pd.DataFrame(
        [
            {
                "latitude": p.latitude,
                "longitude": p.longitude,
                "green_cover_frac": p.green_cover_frac,
                "water_cover_frac": p.water_cover_frac,
                "locality_id": p.locality_id,
            }
            for p in points
        ],
        columns=list(GRID_COLUMNS),
    )
    frame.to_csv(out, index=False, na_rep="")
    logger.info("wrote %s points=%d", out, len(points))
    return str(out)
