"""Normalized-difference spectral indices over Sentinel-2 reflectance bands."""

from __future__ import annotations

import numpy as np

from hyperlocal_weather.contracts import Raster

NIR = "B8"
RED = "B4"
GREEN = "B3"


def normalized_difference(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    """Compute (a - b) / (a + b) in [-1, 1].

    Pixels where either input is negative or non-finite, or where a + b == 0,
    are masked as NaN.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    total = a + b
    valid = np.isfinite(a) & np.isfinite(b) & (a >= 0) & (b >= 0) & (total > 0)
    with np.errstate(divide="ignore", invalid="ignore"):
        nd = (a - b) / total
    return np.where(valid, np.clip(nd, -1.0, 1.0), np.nan)


def vegetation_index(composite: Raster) -> np.ndarray:
    """NDVI = ND(B8, B4)."""
    return normalized_difference(composite.band(NIR), composite.band(RED))


def water_index(composite: Raster) -> np.ndarray:
    """NDWI = ND(B3, B8)."""
    return normalized_difference(composite.band(GREEN), composite.band(NIR))
