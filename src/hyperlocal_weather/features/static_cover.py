"""Static green/water cover fractions around each grid point.

Each point gets a geodesic disc sampled on an equal-area lattice in the point's
local azimuthal-equidistant frame. Every lattice sample is a point-in-pixel
lookup in the composite, so the mean of a thresholded index over valid samples
is an area-weighted cover fraction.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from math import ceil, sqrt

import numpy as np
from pyproj import Transformer

from hyperlocal_weather.contracts import GridPoint, Raster
from hyperlocal_weather.errors import ConfigurationError, CoverageComputationError, DataGapError
from hyperlocal_weather.features.indices import vegetation_index, water_index
from hyperlocal_weather.geo.geodesic import local_aeqd
from hyperlocal_weather.geo.sampling import lookup, pixel_indices

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CoverConfig:
    """Disc radius, sampling scale, pixel budget and index thresholds."""

    buffer_m: float = 250.0
    scale_m: float = 10.0
    max_pixels: int = 1_000_000
    green_threshold: float = 0.3
    water_threshold: float = 0.2

    def validate(self) -> None:
        if self.buffer_m < 0:
            raise ConfigurationError("cover buffer must be non-negative")
        if self.scale_m <= 0:
            raise ConfigurationError("cover sampling scale must be positive")
        if self.max_pixels <= 0:
            raise ConfigurationError("max_pixels must be positive")


def disc_offsets(radius_m: float, scale_m: float, max_pixels: int) -> tuple[np.ndarray, np.ndarray, float]:
    """Return (dx, dy, effective_scale) for lattice samples inside a disc.

    When the lattice at ``scale_m`` would exceed ``max_pixels`` samples, the
    spacing grows by the smallest integer factor that fits the budget.
    """
    factor = 1
    while True:
        spacing = scale_m * factor
        n = int(ceil(radius_m / spacing))
        steps = np.arange(-n, n + 1, dtype=float) * spacing
        gx, gy = np.meshgrid(steps, steps)
        inside = gx**2 + gy**2 <= radius_m**2 + 1e-9
        count = int(inside.sum())
        if count <= max_pixels:
            if factor > 1:
                logger.debug(
                    "pixel budget %d exceeded at %.1fm; sampling at %.1fm",
                    max_pixels,
                    scale_m,
                    spacing,
                )
            return gx[inside], gy[inside], spacing
        factor = max(factor + 1, int(ceil(factor * sqrt(count / max_pixels))))


def mask_fraction(values: np.ndarray, threshold: float) -> float:
    """Fraction of valid (finite) samples strictly above ``threshold``."""
    valid = np.isfinite(values)
    if not valid.any():
        raise CoverageComputationError("no valid pixels in region")
    return float(np.mean(values[valid] > threshold))


class StaticFeatureAttacher:
    """Compute green/water cover fractions once for a whole grid-point set."""

    def __init__(self, composite: Raster, cfg: CoverConfig | None = None) -> None:
        self._cfg = cfg or CoverConfig()
        self._cfg.validate()
        self._composite = composite
        self._ndvi = self._index_or_gap(vegetation_index, "NDVI")
        self._ndwi = self._index_or_gap(water_index, "NDWI")
        self._dx, self._dy, self.effective_scale_m = disc_offsets(
            self._cfg.buffer_m, self._cfg.scale_m, self._cfg.max_pixels
        )

    def _index_or_gap(self, fn, label: str) -> np.ndarray:
        try:
            return fn(self._composite)
        except DataGapError as exc:
            logger.warning("composite lacks band %s; %s cover will be null", exc.band, label)
            return np.full(self._composite.shape, np.nan)

    def _fraction(self, index: np.ndarray, sample, threshold: float) -> float | None:
        rows, cols, inside = sample
        try:
            return mask_fraction(lookup(index, rows, cols, inside), threshold)
        except CoverageComputationError:
            return None

    def cover_fractions(self, lat: float, lon: float) -> tuple[float | None, float | None]:
        """Return (green_cover_frac, water_cover_frac) for one location."""
        to_raster = Transformer.from_crs(local_aeqd(lat, lon), self._composite.crs, always_xy=True)
        xs, ys = to_raster.transform(self._dx, self._dy)
        sample = pixel_indices(self._composite, np.asarray(xs), np.asarray(ys))
        green = self._fraction(self._ndvi, sample, self._cfg.green_threshold)
        water = self._fraction(self._ndwi, sample, self._cfg.water_threshold)
        if green is None or water is None:
            logger.debug("no valid composite pixels around %.4f,%.4f", lat, lon)
        return green, water

    def attach(self, points: Sequence[GridPoint]) -> tuple[GridPoint, ...]:
        """Return new points carrying cover fractions; inputs are not mutated."""
        enriched: list[GridPoint] = []
        missing = 0
        for pt in points:
            green, water = self.cover_fractions(pt.latitude, pt.longitude)
            if green is None or water is None:
                missing += 1
            enriched.append(replace(pt, green_cover_frac=green, water_cover_frac=water))
        logger.info("cover attached points=%d without_coverage=%d", len(enriched), missing)
        return tuple(enriched)
