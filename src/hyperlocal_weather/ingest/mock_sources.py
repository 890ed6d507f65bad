"""Deterministic mock sources for local/offline runs and tests."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from math import ceil, floor, pi

import numpy as np
from rasterio.transform import from_origin
from shapely.geometry import Polygon
from shapely.geometry.base import BaseGeometry

from hyperlocal_weather.contracts import (
    DEWPOINT,
    PRECIPITATION,
    SOLAR_RADIATION,
    TEMPERATURE,
    U_WIND,
    V_WIND,
    WGS84,
    Raster,
    WeatherImage,
)
from hyperlocal_weather.time.windows import iter_hours, to_utc

# Irregular city-like outline whose bounding box is (85.75, 20.20)-(85.90, 20.35).
MOCK_BOUNDARY_COORDS: tuple[tuple[float, float], ...] = (
    (85.75, 20.27),
    (85.78, 20.21),
    (85.84, 20.20),
    (85.90, 20.25),
    (85.89, 20.32),
    (85.83, 20.35),
    (85.77, 20.33),
)

# Surface reflectance (B3, B4, B8) per synthetic cover class.
_VEGETATION = (0.08, 0.05, 0.35)
_WATER = (0.08, 0.04, 0.02)
_BUILT = (0.15, 0.18, 0.20)


class MockBoundarySource:
    """Fixed polygon boundary."""

    def __init__(self, coords: Sequence[tuple[float, float]] = MOCK_BOUNDARY_COORDS) -> None:
        self._polygon = Polygon(coords)

    def get_boundary(self) -> BaseGeometry:
        return self._polygon


class MockCompositeSource:
    """Synthetic B3/B4/B8 composite: a meandering river, park patches, built-up elsewhere."""

    def __init__(self, pixel_deg: float = 0.0002) -> None:
        if pixel_deg <= 0:
            raise ValueError("pixel_deg must be positive")
        self._pixel_deg = pixel_deg

    def get_composite(self, region: BaseGeometry) -> Raster:
        west, south, east, north = region.bounds
        d = self._pixel_deg
        width = max(1, int(ceil((east - west) / d)))
        height = max(1, int(ceil((north - south) / d)))
        lons = west + (np.arange(width) + 0.5) * d
        lats = north - (np.arange(height) + 0.5) * d
        lon_g, lat_g = np.meshgrid(lons, lats)

        river_lat = 20.26 + 0.01 * np.sin(lon_g * 2.0 * pi / 0.05)
        water = np.abs(lat_g - river_lat) < 0.002
        parks = (np.sin(lon_g * 2.0 * pi / 0.03) * np.sin(lat_g * 2.0 * pi / 0.03)) > 0.5
        vegetation = parks & ~water

        bands: dict[str, np.ndarray] = {}
        for i, name in enumerate(("B3", "B4", "B8")):
            band = np.full((height, width), _BUILT[i], dtype=float)
            band[vegetation] = _VEGETATION[i]
            band[water] = _WATER[i]
            bands[name] = band
        return Raster(
            bands=bands,
            transform=from_origin(west, north, d, d),
            crs=WGS84,
            grid_shape=(height, width),
        )


def _diurnal(hour: int, peak_hour: int) -> float:
    return float(np.cos(2.0 * pi * (hour - peak_hour) / 24.0))


class MockWeatherImageSource:
    """Hourly synthetic reanalysis on a coarse lon/lat lattice.

    ``missing_bands`` are left out of every image to emulate upstream gaps.
    """

    def __init__(
        self,
        cell_deg: float = 0.1,
        missing_bands: Sequence[str] = (),
    ) -> None:
        if cell_deg <= 0:
            raise ValueError("cell_deg must be positive")
        self._cell_deg = cell_deg
        self._missing = frozenset(missing_bands)

    def _grid(self, region: BaseGeometry) -> tuple[np.ndarray, np.ndarray, object]:
        west, south, east, north = region.bounds
        d = self._cell_deg
        x0 = floor(west / d) * d
        y0 = ceil(north / d) * d
        width = max(1, int(ceil((east - x0) / d)))
        height = max(1, int(ceil((y0 - south) / d)))
        lons = x0 + (np.arange(width) + 0.5) * d
        lats = y0 - (np.arange(height) + 0.5) * d
        lon_g, lat_g = np.meshgrid(lons, lats)
        return lon_g, lat_g, from_origin(x0, y0, d, d)

    def _image(self, ts: datetime, lon_g: np.ndarray, lat_g: np.ndarray, transform) -> WeatherImage:
        day = ts.timetuple().tm_yday
        seasonal = float(np.sin(2.0 * pi * (day - 80) / 365.0))
        spatial = 0.5 * np.sin(lon_g * 10.0) + 0.5 * np.cos(lat_g * 10.0)
        daylight = max(0.0, _diurnal(ts.hour, 6))

        temperature = 299.0 + 4.0 * seasonal + 5.0 * _diurnal(ts.hour, 9) + spatial
        dewpoint = temperature - 6.0 - 3.0 * daylight
        bands = {
            TEMPERATURE: temperature,
            DEWPOINT: dewpoint,
            PRECIPITATION: np.full_like(temperature, 0.0005 * max(0.0, seasonal)),
            SOLAR_RADIATION: np.full_like(temperature, 3.2e6 * daylight),
            U_WIND: 2.0 + np.cos(lat_g * 5.0) + _diurnal(ts.hour, 15),
            V_WIND: 1.5 * np.sin(lon_g * 5.0) - seasonal,
        }
        for band in self._missing:
            bands.pop(band, None)
        raster = Raster(bands=bands, transform=transform, crs=WGS84, grid_shape=lon_g.shape)
        return WeatherImage(timestamp=ts, raster=raster)

    def list_timestamps(self, start: datetime, end: datetime, region: BaseGeometry) -> list[datetime]:
        return list(iter_hours(start, end))

    def get_image(self, timestamp: datetime, region: BaseGeometry) -> WeatherImage:
        lon_g, lat_g, transform = self._grid(region)
        return self._image(to_utc(timestamp), lon_g, lat_g, transform)
