"""Tests for normalized-difference indices."""

from __future__ import annotations

import numpy as np
import pytest
from rasterio.transform import from_origin

from hyperlocal_weather.contracts import Raster
from hyperlocal_weather.errors import DataGapError
from hyperlocal_weather.features.indices import normalized_difference, vegetation_index, water_index


def test_normalized_difference_value() -> None:
    """(0.3 - 0.1) / (0.3 + 0.1) == 0.5."""
    assert normalized_difference(np.array([0.3]), np.array([0.1]))[0] == pytest.approx(0.5)


def test_invalid_inputs_are_masked() -> None:
    """Zero sums, negative and non-finite reflectance become NaN."""
    a = np.array([0.0, -0.1, np.nan, 0.2])
    b = np.array([0.0, 0.2, 0.2, 0.0])
    out = normalized_difference(a, b)
    assert np.isnan(out[:3]).all()
    assert out[3] == pytest.approx(1.0)


def test_indices_use_expected_bands() -> None:
    """NDVI contrasts B8 with B4, NDWI contrasts B3 with B8."""
    raster = Raster(
        bands={"B3": np.full((1, 1), 0.1), "B4": np.full((1, 1), 0.1), "B8": np.full((1, 1), 0.3)},
        transform=from_origin(0, 1, 1, 1),
    )
    assert vegetation_index(raster)[0, 0] == pytest.approx(0.5)
    assert water_index(raster)[0, 0] == pytest.approx(-0.5)


def test_index_over_missing_band_raises() -> None:
    """Indices need all of their input bands."""
    raster = Raster(bands={"B4": np.zeros((1, 1))}, transform=from_origin(0, 1, 1, 1))
    with pytest.raises(DataGapError):
        vegetation_index(raster)
