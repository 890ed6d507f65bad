"""
Real-data sources backed by Google Earth Engine (GEE).

Implements:
- BoundarySource.get_boundary() -> shapely geometry from a FeatureCollection asset
- CompositeSource.get_composite(region) -> Sentinel-2 SR median composite pixels
- WeatherImageSource.list_timestamps/get_image -> ERA5-Land hourly pixels

Earth Engine only fetches pixels here (``ee.data.computePixels``); every buffer,
index, threshold and join runs locally on the returned arrays.

Important:
- Must be opt-in. Default CLI/tests use mock_sources.
"""
from __future__ import annotations

import logging
from collections.abc import Iterator
from threading import Lock
from dataclasses import dataclass
from datetime import UTC, date, datetime
from math import ceil, cos, floor, radians
from typing import Any

import numpy as np
import shapely
from rasterio.transform import from_origin
from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry

from hyperlocal_weather.contracts import RAW_WEATHER_BANDS, WGS84, Raster, WeatherImage
from hyperlocal_weather.ingest.gee_client import GeeConfig, config_from_env, init_ee
from hyperlocal_weather.time.windows import to_utc

logger = logging.getLogger(__name__)

# Dataset IDs (Earth Engine)
_S2_SR = "COPERNICUS/S2_SR_HARMONIZED"
_ERA5_LAND = "ECMWF/ERA5_LAND/HOURLY"

_M_PER_DEG_LAT = 110_574.0
_M_PER_DEG_LON_EQUATOR = 111_320.0
# Keeps each computePixels response well under the 48 MB payload limit.
_MAX_TILE_PX = 1024
_MASK_SUFFIX = "__mask"


@dataclass(frozen=True)
class PixelGrid:
    """North-up lon/lat pixel grid: origin at the top-left corner."""

    west: float
    north: float
    dx: float
    dy: float
    width: int
    height: int

    @property
    def transform(self):
        return from_origin(self.west, self.north, self.dx, self.dy)

    @property
    def shape(self) -> tuple[int, int]:
        return self.height, self.width

    def tiles(self, max_px: int = _MAX_TILE_PX) -> Iterator[tuple[int, int, "PixelGrid"]]:
        """Yield (row_off, col_off, sub_grid) tiles covering this grid."""
        for row_off in range(0, self.height, max_px):
            for col_off in range(0, self.width, max_px):
                yield row_off, col_off, PixelGrid(
                    west=self.west + col_off * self.dx,
                    north=self.north - row_off * self.dy,
                    dx=self.dx,
                    dy=self.dy,
                    width=min(max_px, self.width - col_off),
                    height=min(max_px, self.height - row_off),
                )

    def to_request(self) -> dict[str, Any]:
        return {
            "dimensions": {"width": self.width, "height": self.height},
            "affineTransform": {
                "scaleX": self.dx,
                "shearX": 0,
                "translateX": self.west,
                "shearY": 0,
                "scaleY": -self.dy,
                "translateY": self.north,
            },
            "crsCode": WGS84,
        }


def grid_for_scale(bounds: tuple[float, float, float, float], scale_m: float) -> PixelGrid:
    """Pixel grid covering lon/lat bounds at roughly ``scale_m`` metres per pixel."""
    west, south, east, north = bounds
    mid_lat = (south + north) / 2.0
    dy = scale_m / _M_PER_DEG_LAT
    dx = scale_m / (_M_PER_DEG_LON_EQUATOR * cos(radians(mid_lat)))
    width = max(1, int(ceil((east - west) / dx)))
    height = max(1, int(ceil((north - south) / dy)))
    return PixelGrid(west=west, north=north, dx=dx, dy=dy, width=width, height=height)


def grid_for_native(
    bounds: tuple[float, float, float, float],
    cell_deg: float,
    origin: tuple[float, float],
) -> PixelGrid:
    """Pixel grid snapped to a dataset's native lon/lat lattice."""
    west, south, east, north = bounds
    ox, oy = origin
    col0 = floor((west - ox) / cell_deg)
    col1 = ceil((east - ox) / cell_deg)
    row0 = floor((oy - north) / cell_deg)
    row1 = ceil((oy - south) / cell_deg)
    return PixelGrid(
        west=ox + col0 * cell_deg,
        north=oy - row0 * cell_deg,
        dx=cell_deg,
        dy=cell_deg,
        width=max(1, col1 - col0),
        height=max(1, row1 - row0),
    )


def structured_to_bands(arr: np.ndarray, bands: list[str]) -> dict[str, np.ndarray]:
    """Turn a computePixels structured array into float bands, NaN where masked.

    Each band ``b`` is expected next to a ``b__mask`` field (0 = masked).
    """
    out: dict[str, np.ndarray] = {}
    names = set(arr.dtype.names or ())
    for band in bands:
        if band not in names:
            continue
        values = np.asarray(arr[band], dtype=float)
        mask_name = band + _MASK_SUFFIX
        if mask_name in names:
            values = np.where(np.asarray(arr[mask_name]) > 0, values, np.nan)
        out[band] = values
    return out


def _millis(dt: datetime) -> int:
    return int(round(to_utc(dt).timestamp() * 1000))


def _with_mask_bands(img: Any, bands: list[str]) -> Any:
    selected = img.select(bands).toFloat()
    masks = img.select(bands).mask().rename([b + _MASK_SUFFIX for b in bands]).toFloat()
    return selected.addBands(masks)


def _fetch_pixels(ee: Any, img: Any, bands: list[str], grid: PixelGrid) -> dict[str, np.ndarray]:
    """Download ``bands`` of ``img`` over ``grid`` tile by tile."""
    if not bands:
        return {}
    expression = _with_mask_bands(img, bands)
    out = {b: np.full((grid.height, grid.width), np.nan) for b in bands}
    for row_off, col_off, tile in grid.tiles():
        arr = ee.data.computePixels(
            {"expression": expression, "fileFormat": "NUMPY_NDARRAY", "grid": tile.to_request()}
        )
        for band, values in structured_to_bands(arr, bands).items():
            out[band][row_off : row_off + tile.height, col_off : col_off + tile.width] = values
    return out


class _EeBacked:
    def __init__(self, gee: Any | None = None, cfg: GeeConfig | None = None) -> None:
        self._cfg = cfg
        self._ee = gee

    def _ensure_ee(self) -> Any:
        if self._ee is not None:
            return self._ee
        cfg = self._cfg or config_from_env()
        self._ee = init_ee(cfg)
        return self._ee


class GeeBoundarySource(_EeBacked):
    """Boundary polygon from an Earth Engine FeatureCollection asset."""

    def __init__(self, asset_id: str, gee: Any | None = None, cfg: GeeConfig | None = None) -> None:
        super().__init__(gee, cfg)
        self._asset_id = asset_id

    def get_boundary(self) -> BaseGeometry:
        ee = self._ensure_ee()
        geojson = ee.FeatureCollection(self._asset_id).geometry().getInfo()
        return shapely.unary_union(shape(geojson))


@dataclass(frozen=True)
class S2CompositeConfig:
    start: date = date(2024, 4, 1)
    end: date = date(2024, 6, 1)
    max_cloud_pct: float = 20.0
    scale_m: float = 10.0
    bands: tuple[str, ...] = ("B3", "B4", "B8")


class GeeCompositeSource(_EeBacked):
    """Sentinel-2 SR harmonized median composite, filtered by scene cloudiness."""

    def __init__(
        self,
        gee: Any | None = None,
        cfg: GeeConfig | None = None,
        s2_cfg: S2CompositeConfig | None = None,
    ) -> None:
        super().__init__(gee, cfg)
        self._s2_cfg = s2_cfg or S2CompositeConfig()

    def get_composite(self, region: BaseGeometry) -> Raster:
        ee = self._ensure_ee()
        c = self._s2_cfg
        ee_region = ee.Geometry(mapping(shapely.box(*region.bounds)))
        s2 = (
            ee.ImageCollection(_S2_SR)
            .filterBounds(ee_region)
            .filterDate(c.start.isoformat(), c.end.isoformat())
            .filter(ee.Filter.lt("CLOUDY_PIXEL_PERCENTAGE", c.max_cloud_pct))
        )
        scene_count = int(s2.size().getInfo())
        logger.info("s2 scenes=%d window=%s..%s cloud<%.0f%%", scene_count, c.start, c.end, c.max_cloud_pct)

        grid = grid_for_scale(region.bounds, c.scale_m)
        bands = list(c.bands)
        pixels = _fetch_pixels(ee, s2.median(), bands, grid)
        return Raster(bands=pixels, transform=grid.transform, crs=WGS84, grid_shape=grid.shape)


@dataclass(frozen=True)
class Era5Config:
    collection: str = _ERA5_LAND
    bands: tuple[str, ...] = RAW_WEATHER_BANDS
    cell_deg: float = 0.1
    # ERA5-Land pixel centres sit on multiples of 0.1 degrees.
    origin: tuple[float, float] = (-180.05, 90.05)


class GeeWeatherImageSource(_EeBacked):
    """Hourly ERA5-Land images, fetched on the native reanalysis grid."""

    def __init__(
        self,
        gee: Any | None = None,
        cfg: GeeConfig | None = None,
        era5_cfg: Era5Config | None = None,
    ) -> None:
        super().__init__(gee, cfg)
        self._era5_cfg = era5_cfg or Era5Config()
        self._available: list[str] | None = None
        self._lock = Lock()

    def _collection(self, ee: Any, start: datetime, end: datetime, region: BaseGeometry) -> Any:
        ee_region = ee.Geometry(mapping(shapely.box(*region.bounds)))
        return (
            ee.ImageCollection(self._era5_cfg.collection)
            .filterDate(_millis(start), _millis(end))
            .filterBounds(ee_region)
        )

    def _bands(self, ee: Any) -> list[str]:
        """Requested bands the collection actually carries, resolved once."""
        with self._lock:
            if self._available is None:
                first = ee.Image(ee.ImageCollection(self._era5_cfg.collection).first())
                self._available = list(first.bandNames().getInfo())
                absent = [b for b in self._era5_cfg.bands if b not in self._available]
                if absent:
                    logger.warning("%s lacks bands: %s", self._era5_cfg.collection, ", ".join(absent))
            return [b for b in self._era5_cfg.bands if b in self._available]

    def list_timestamps(self, start: datetime, end: datetime, region: BaseGeometry) -> list[datetime]:
        ee = self._ensure_ee()
        ic = self._collection(ee, start, end, region)
        stamps = sorted(int(ms) for ms in ic.aggregate_array("system:time_start").getInfo())
        return [datetime.fromtimestamp(ms / 1000.0, tz=UTC) for ms in stamps]

    def get_image(self, timestamp: datetime, region: BaseGeometry) -> WeatherImage:
        ee = self._ensure_ee()
        ts = to_utc(timestamp)
        ms = _millis(ts)
        img = ee.Image(
            ee.ImageCollection(self._era5_cfg.collection)
            .filter(ee.Filter.eq("system:time_start", ms))
            .first()
        )
        c = self._era5_cfg
        grid = grid_for_native(region.bounds, c.cell_deg, c.origin)
        pixels = _fetch_pixels(ee, img, self._bands(ee), grid)
        raster = Raster(bands=pixels, transform=grid.transform, crs=WGS84, grid_shape=grid.shape)
        return WeatherImage(timestamp=ts, raster=raster)
