"""Regular lattice of sample points restricted to a buffered boundary."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from math import floor

import numpy as np
import shapely
from shapely.geometry.base import BaseGeometry

from hyperlocal_weather.contracts import GridPoint
from hyperlocal_weather.errors import ConfigurationError
from hyperlocal_weather.geo.geodesic import geodesic_buffer
from hyperlocal_weather.geo.locality import MIN_UNIQUE_STEP_DEG

logger = logging.getLogger(__name__)

_EPS = 1e-9


@dataclass(frozen=True)
class GridConfig:
    """Lattice step in degrees and outward boundary buffer in metres."""

    step_deg: float = 0.01
    buffer_m: float = 1000.0

    def validate(self) -> None:
        if self.step_deg <= 0:
            raise ConfigurationError("grid step must be positive")
        if self.buffer_m < 0:
            raise ConfigurationError("buffer distance must be non-negative")


def inclusive_sequence(start: float, stop: float, step: float) -> list[float]:
    """Return start, start+step, ... up to and including stop.

    A degenerate range (start == stop) yields exactly one value.
    """
    if step <= 0:
        raise ConfigurationError("grid step must be positive")
    if start > stop:
        raise ConfigurationError("sequence start must be <= stop")
    count = floor((stop - start) / step + _EPS) + 1
    return [round(start + i * step, 10) for i in range(count)]


def candidate_lattice(
    bounds: tuple[float, float, float, float], step_deg: float
) -> list[tuple[float, float]]:
    """Cross product of lon/lat sequences over (lon_min, lat_min, lon_max, lat_max).

    Returns ``(lat, lon)`` pairs in lon-major order.
    """
    lon_min, lat_min, lon_max, lat_max = bounds
    lons = inclusive_sequence(lon_min, lon_max, step_deg)
    lats = inclusive_sequence(lat_min, lat_max, step_deg)
    return [(lat, lon) for lon in lons for lat in lats]


def build_grid(polygon: BaseGeometry, cfg: GridConfig | None = None) -> tuple[GridPoint, ...]:
    """Build grid points covering ``polygon`` buffered outward by ``cfg.buffer_m``.

    Points lying exactly on the buffered boundary are retained.
    """
    cfg = cfg or GridConfig()
    cfg.validate()
    if polygon.is_empty:
        raise ConfigurationError("boundary geometry is empty")
    if cfg.step_deg < MIN_UNIQUE_STEP_DEG:
        logger.warning(
            "grid step %.6f is finer than %.4f degrees; locality ids may collide",
            cfg.step_deg,
            MIN_UNIQUE_STEP_DEG,
        )

    candidates = candidate_lattice(polygon.bounds, cfg.step_deg)
    buffered = geodesic_buffer(polygon, cfg.buffer_m)
    shapely.prepare(buffered)

    coords = np.array([(lon, lat) for lat, lon in candidates], dtype=float)
    inside = shapely.covers(buffered, shapely.points(coords))

    points = tuple(
        GridPoint(latitude=lat, longitude=lon)
        for (lat, lon), keep in zip(candidates, inside)
        if keep
    )
    logger.info("grid candidates=%d retained=%d", len(candidates), len(points))
    return points
