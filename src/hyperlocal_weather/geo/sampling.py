"""Point-in-pixel lookups against in-memory rasters."""

from __future__ import annotations

import numpy as np

from hyperlocal_weather.contracts import Raster


def pixel_indices(raster: Raster, xs: np.ndarray, ys: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """Map raster-CRS coordinates to (rows, cols, inside) index arrays.

    ``inside`` is False for coordinates that fall off the raster; their row/col
    entries are clamped to 0 and must not be used.
    """
    inv = ~raster.transform
    cols_f, rows_f = inv @ (np.asarray(xs, dtype=float), np.asarray(ys, dtype=float))
    finite = np.isfinite(rows_f) & np.isfinite(cols_f)
    rows = np.floor(np.where(finite, rows_f, -1.0)).astype(np.int64)
    cols = np.floor(np.where(finite, cols_f, -1.0)).astype(np.int64)
    n_rows, n_cols = raster.shape
    inside = finite & (rows >= 0) & (rows < n_rows) & (cols >= 0) & (cols < n_cols)
    return np.where(inside, rows, 0), np.where(inside, cols, 0), inside


def lookup(values: np.ndarray, rows: np.ndarray, cols: np.ndarray, inside: np.ndarray) -> np.ndarray:
    """Return pixel values at (rows, cols); NaN where ``inside`` is False."""
    out = np.asarray(values, dtype=float)[rows, cols]
    return np.where(inside, out, np.nan)
