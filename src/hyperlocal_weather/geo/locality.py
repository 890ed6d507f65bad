"""Deterministic locality identifiers for grid points."""

from __future__ import annotations

LOCALITY_DECIMALS = 4
# Smallest grid step for which locality ids stay unique.
MIN_UNIQUE_STEP_DEG = 10.0 ** -LOCALITY_DECIMALS


def _format_coord(value: float) -> str:
    # Adding 0.0 folds -0.0 into 0.0.
    return f"{round(float(value), LOCALITY_DECIMALS) + 0.0:.{LOCALITY_DECIMALS}f}"


def locality_id(lat: float, lon: float) -> str:
    """Encode a point as ``"{lat}_{lon}"`` with both coordinates at 4 decimals."""
    return f"{_format_coord(lat)}_{_format_coord(lon)}"
