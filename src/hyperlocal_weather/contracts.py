"""Core data contracts for the hyperlocal weather pipeline."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import numpy as np
from pyproj import CRS, Transformer
from rasterio.transform import Affine
from shapely.geometry import box
from shapely.geometry.base import BaseGeometry

from hyperlocal_weather.errors import DataGapError
from hyperlocal_weather.geo.locality import locality_id

WGS84 = "EPSG:4326"

TEMPERATURE = "temperature_2m"
DEWPOINT = "dewpoint_temperature_2m"
PRECIPITATION = "total_precipitation_hourly"
SOLAR_RADIATION = "surface_solar_radiation_downwards_hourly"
U_WIND = "u_component_of_wind_10m"
V_WIND = "v_component_of_wind_10m"
RELATIVE_HUMIDITY = "relative_humidity"
WIND_SPEED = "wind_speed_ms"

RAW_WEATHER_BANDS: tuple[str, ...] = (
    TEMPERATURE,
    DEWPOINT,
    PRECIPITATION,
    SOLAR_RADIATION,
    U_WIND,
    V_WIND,
)
DERIVED_WEATHER_BANDS: tuple[str, ...] = (RELATIVE_HUMIDITY, WIND_SPEED)
EXTRACT_BANDS: tuple[str, ...] = RAW_WEATHER_BANDS + DERIVED_WEATHER_BANDS

CSV_COLUMNS: tuple[str, ...] = (
    "latitude",
    "longitude",
    "green_cover_frac",
    "water_cover_frac",
    *EXTRACT_BANDS,
    "date",
    "hour",
    "locality_id",
)


@dataclass(frozen=True, slots=True)
class Raster:
    """In-memory raster: named 2-D float bands sharing one pixel grid.

    ``NaN`` marks no-data pixels. ``transform`` maps (col, row) pixel corners to
    coordinates in ``crs``. ``grid_shape`` keeps the (rows, cols) extent known
    when every band is missing.
    """

    bands: Mapping[str, np.ndarray]
    transform: Affine
    crs: str = WGS84
    grid_shape: tuple[int, int] | None = None

    def __post_init__(self) -> None:
        shapes = {np.shape(arr) for arr in self.bands.values()}
        if self.grid_shape is not None:
            shapes.add(tuple(self.grid_shape))
        if len(shapes) > 1:
            raise ValueError("all raster bands must share one shape")
        if any(len(s) != 2 for s in shapes):
            raise ValueError("raster bands must be 2-D arrays")

    @property
    def shape(self) -> tuple[int, int]:
        """Return (rows, cols); (0, 0) for a raster with no bands and no grid_shape."""
        for arr in self.bands.values():
            rows, cols = np.shape(arr)
            return int(rows), int(cols)
        if self.grid_shape is not None:
            return int(self.grid_shape[0]), int(self.grid_shape[1])
        return (0, 0)

    def has_band(self, name: str) -> bool:
        return name in self.bands

    def band(self, name: str) -> np.ndarray:
        """Return one band, raising DataGapError when absent."""
        try:
            return self.bands[name]
        except KeyError:
            raise DataGapError(name) from None

    def with_bands(self, extra: Mapping[str, np.ndarray]) -> Raster:
        """Return a new raster with ``extra`` bands added; this raster is unchanged."""
        merged = dict(self.bands)
        merged.update(extra)
        return Raster(bands=merged, transform=self.transform, crs=self.crs, grid_shape=self.grid_shape)

    def bounds(self) -> tuple[float, float, float, float]:
        """Return (left, bottom, right, top) in the raster CRS."""
        rows, cols = self.shape
        xs, ys = self.transform @ (np.array([0, cols, 0, cols]), np.array([0, 0, rows, rows]))
        return (float(np.min(xs)), float(np.min(ys)), float(np.max(xs)), float(np.max(ys)))

    def footprint(self) -> BaseGeometry:
        """Return the raster extent as a lon/lat box."""
        left, bottom, right, top = self.bounds()
        if CRS.from_user_input(self.crs) != CRS.from_user_input(WGS84):
            transformer = Transformer.from_crs(self.crs, WGS84, always_xy=True)
            left, bottom, right, top = transformer.transform_bounds(left, bottom, right, top)
        return box(left, bottom, right, top)


@dataclass(frozen=True, slots=True)
class WeatherImage:
    """One hourly reanalysis snapshot."""

    timestamp: datetime
    raster: Raster

    def __post_init__(self) -> None:
        if self.timestamp.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")


@dataclass(frozen=True, slots=True)
class GridPoint:
    """One sample location, optionally enriched with static cover fractions."""

    latitude: float
    longitude: float
    green_cover_frac: float | None = None
    water_cover_frac: float | None = None

    @property
    def locality_id(self) -> str:
        return locality_id(self.latitude, self.longitude)


@dataclass(frozen=True, slots=True)
class WeatherRecord:
    """One output row: a grid point's static attributes joined with one hourly image."""

    latitude: float
    longitude: float
    green_cover_frac: float | None
    water_cover_frac: float | None
    values: Mapping[str, float | None]
    date: str
    hour: int
    locality_id: str

    def to_row(self) -> dict[str, Any]:
        """Serialize into a flat mapping keyed by CSV_COLUMNS."""
        row: dict[str, Any] = {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "green_cover_frac": self.green_cover_frac,
            "water_cover_frac": self.water_cover_frac,
        }
        for band in EXTRACT_BANDS:
            row[band] = self.values.get(band)
        row["date"] = self.date
        row["hour"] = self.hour
        row["locality_id"] = self.locality_id
        return row


@dataclass(frozen=True, slots=True)
class YearWindow:
    """Half-open UTC window [start, end) belonging to one calendar year."""

    year: int
    start: datetime
    end: datetime


@dataclass(slots=True)
class ExportResult:
    """Outcome of one year's export."""

    year: int
    path: str | None = None
    image_count: int = 0
    row_count: int = 0
    error: str | None = None
    meta: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None
