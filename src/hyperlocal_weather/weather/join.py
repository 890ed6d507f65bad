"""Join hourly weather images against the enriched grid-point set."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from math import cos, radians
from threading import Lock

import numpy as np
from pyproj import CRS, Transformer

from hyperlocal_weather.contracts import (
    EXTRACT_BANDS,
    WGS84,
    GridPoint,
    Raster,
    WeatherImage,
    WeatherRecord,
)
from hyperlocal_weather.errors import ConfigurationError, DataGapError
from hyperlocal_weather.geo.sampling import lookup, pixel_indices
from hyperlocal_weather.time.windows import to_utc
from hyperlocal_weather.weather.derived import add_derived_bands

logger = logging.getLogger(__name__)

_M_PER_DEG_LAT = 110_574.0
_M_PER_DEG_LON_EQUATOR = 111_320.0


@dataclass(frozen=True)
class JoinConfig:
    """Sampling scale in metres and the bands copied into every record."""

    scale_m: float = 1000.0
    bands: tuple[str, ...] = EXTRACT_BANDS

    def validate(self) -> None:
        if self.scale_m <= 0:
            raise ConfigurationError("join sampling scale must be positive")
        if not self.bands:
            raise ConfigurationError("at least one band must be extracted")


_CellIndex = tuple[np.ndarray, np.ndarray, np.ndarray]


class TemporalJoiner:
    """Sample every band of an hourly image at every grid point.

    Sampling is a point-in-cell lookup (first value, no interpolation). Cell
    indices are cached per raster grid, so a collection sharing one grid is
    resolved once.
    """

    def __init__(self, points: Sequence[GridPoint], cfg: JoinConfig | None = None) -> None:
        self._cfg = cfg or JoinConfig()
        self._cfg.validate()
        self._points = tuple(points)
        self._lons = np.array([p.longitude for p in self._points], dtype=float)
        self._lats = np.array([p.latitude for p in self._points], dtype=float)
        self._ids = [p.locality_id for p in self._points]
        self._cells: dict[tuple[object, ...], _CellIndex] = {}
        self._lock = Lock()

    @property
    def points(self) -> tuple[GridPoint, ...]:
        return self._points

    def _block_factors(self, raster: Raster) -> tuple[int, int]:
        """Native pixels per sampling block along (rows, cols); 1 when native is coarser."""
        t = raster.transform
        if CRS.from_user_input(raster.crs).is_geographic:
            mid_lat = float(np.mean(self._lats)) if len(self._lats) else 0.0
            px_x = abs(t.a) * _M_PER_DEG_LON_EQUATOR * cos(radians(mid_lat))
            px_y = abs(t.e) * _M_PER_DEG_LAT
        else:
            px_x, px_y = abs(t.a), abs(t.e)
        by = max(1, int(self._cfg.scale_m // px_y)) if px_y > 0 else 1
        bx = max(1, int(self._cfg.scale_m // px_x)) if px_x > 0 else 1
        return by, bx

    def _cell_index(self, raster: Raster) -> _CellIndex:
        key = (raster.crs, tuple(raster.transform)[:6], raster.shape)
        with self._lock:
            cached = self._cells.get(key)
        if cached is not None:
            return cached

        if CRS.from_user_input(raster.crs) == CRS.from_user_input(WGS84):
            xs, ys = self._lons, self._lats
        else:
            to_raster = Transformer.from_crs(WGS84, raster.crs, always_xy=True)
            xs, ys = to_raster.transform(self._lons, self._lats)
        rows, cols, inside = pixel_indices(raster, np.asarray(xs), np.asarray(ys))

        by, bx = self._block_factors(raster)
        if by > 1 or bx > 1:
            n_rows, n_cols = raster.shape
            rows = np.minimum((rows // by) * by + by // 2, n_rows - 1)
            cols = np.minimum((cols // bx) * bx + bx // 2, n_cols - 1)

        index = (rows, cols, inside)
        with self._lock:
            self._cells[key] = index
        return index

    def join(self, image: WeatherImage) -> list[WeatherRecord]:
        """Return one record per grid point; missing bands become None fields."""
        raster = image.raster
        rows, cols, inside = self._cell_index(raster)
        n = len(self._points)

        columns: dict[str, list[float | None]] = {}
        missing: list[str] = []
        for band in self._cfg.bands:
            try:
                values = lookup(raster.band(band), rows, cols, inside)
            except DataGapError:
                missing.append(band)
                columns[band] = [None] * n
                continue
            columns[band] = [float(v) if np.isfinite(v) else None for v in values]
        if missing:
            logger.warning("image %s missing bands: %s", image.timestamp.isoformat(), ", ".join(missing))

        ts = to_utc(image.timestamp)
        date_str = ts.strftime("%Y-%m-%d")
        hour = ts.hour

        records: list[WeatherRecord] = []
        for i, pt in enumerate(self._points):
            records.append(
                WeatherRecord(
                    latitude=pt.latitude,
                    longitude=pt.longitude,
                    green_cover_frac=pt.green_cover_frac,
                    water_cover_frac=pt.water_cover_frac,
                    values={band: columns[band][i] for band in self._cfg.bands},
                    date=date_str,
                    hour=hour,
                    locality_id=self._ids[i],
                )
            )
        return records

    def process_image(self, image: WeatherImage) -> list[WeatherRecord]:
        """Add derived bands to one raw hourly image and join it."""
        return self.join(add_derived_bands(image))
