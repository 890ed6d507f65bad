"""Tests for static green/water cover fractions."""

from __future__ import annotations

import logging

import numpy as np
import pytest
from rasterio.transform import from_origin

from hyperlocal_weather.contracts import WGS84, GridPoint, Raster
from hyperlocal_weather.errors import CoverageComputationError
from hyperlocal_weather.features.static_cover import (
    CoverConfig,
    StaticFeatureAttacher,
    disc_offsets,
    mask_fraction,
)

_VEG = {"B3": 0.08, "B4": 0.05, "B8": 0.35}
_WATER = {"B3": 0.08, "B4": 0.04, "B8": 0.02}
_BUILT = {"B3": 0.15, "B4": 0.18, "B8": 0.20}


def _composite(**reflectance: float) -> Raster:
    # 0.02 x 0.02 degree tile centred on (20.0, 85.0) at ~11 m pixels.
    return Raster(
        bands={name: np.full((200, 200), value) for name, value in reflectance.items()},
        transform=from_origin(84.99, 20.01, 0.0001, 0.0001),
        crs=WGS84,
    )


def _half_vegetation() -> Raster:
    bands = {}
    for name in ("B3", "B4", "B8"):
        band = np.full((200, 200), _BUILT[name])
        band[:, :100] = _VEG[name]
        bands[name] = band
    return Raster(bands=bands, transform=from_origin(84.99, 20.01, 0.0001, 0.0001), crs=WGS84)


def test_disc_offsets_sample_count_matches_area() -> None:
    """A 250 m disc at 10 m spacing holds about pi * 25^2 samples."""
    dx, dy, spacing = disc_offsets(250.0, 10.0, 1_000_000)
    assert spacing == 10.0
    assert 1900 < len(dx) < 2050
    assert np.all(dx**2 + dy**2 <= 250.0**2 + 1e-6)


def test_disc_offsets_coarsen_to_fit_budget() -> None:
    """Exceeding the pixel budget coarsens the lattice instead of failing."""
    dx, _, spacing = disc_offsets(250.0, 10.0, 100)
    assert spacing > 10.0
    assert 0 < len(dx) <= 100


def test_all_vegetation_gives_full_green_cover() -> None:
    """A uniformly vegetated disc is fully green and has no water."""
    attacher = StaticFeatureAttacher(_composite(**_VEG))
    assert attacher.cover_fractions(20.0, 85.0) == (1.0, 0.0)


def test_all_water_gives_full_water_cover() -> None:
    """Open water exceeds the NDWI threshold everywhere."""
    attacher = StaticFeatureAttacher(_composite(**_WATER))
    assert attacher.cover_fractions(20.0, 85.0) == (0.0, 1.0)


def test_half_vegetated_disc_is_area_weighted() -> None:
    """Vegetation west of the point covers half of the disc."""
    green, water = StaticFeatureAttacher(_half_vegetation()).cover_fractions(20.0, 85.0)
    assert green == pytest.approx(0.5, abs=0.03)
    assert water == 0.0


def test_no_coverage_yields_null_fractions() -> None:
    """A disc entirely off the composite has no valid pixels."""
    attacher = StaticFeatureAttacher(_composite(**_VEG))
    assert attacher.cover_fractions(10.0, 70.0) == (None, None)


def test_pixel_budget_still_returns_a_value() -> None:
    """A tiny pixel budget coarsens sampling but still yields fractions."""
    attacher = StaticFeatureAttacher(_composite(**_VEG), CoverConfig(max_pixels=50))
    assert attacher.effective_scale_m > 10.0
    assert attacher.cover_fractions(20.0, 85.0) == (1.0, 0.0)


def test_missing_band_nulls_only_the_affected_fraction() -> None:
    """Without B3 the water fraction is null while green is still computed."""
    composite = _composite(B4=_VEG["B4"], B8=_VEG["B8"])
    assert StaticFeatureAttacher(composite).cover_fractions(20.0, 85.0) == (1.0, None)


def test_attach_returns_new_points_without_mutating_inputs() -> None:
    """Enrichment produces new points and keeps the originals unenriched."""
    points = (GridPoint(20.0, 85.0), GridPoint(10.0, 70.0))
    enriched = StaticFeatureAttacher(_composite(**_VEG)).attach(points)

    assert points[0].green_cover_frac is None
    assert enriched[0].green_cover_frac == 1.0
    assert enriched[0].water_cover_frac == 0.0
    assert enriched[1].green_cover_frac is None
    assert [(p.latitude, p.longitude) for p in enriched] == [(20.0, 85.0), (10.0, 70.0)]


def test_mask_fraction_requires_valid_samples() -> None:
    """All-NaN input cannot produce a fraction."""
    with pytest.raises(CoverageComputationError):
        mask_fraction(np.array([np.nan, np.nan]), 0.3)
    assert mask_fraction(np.array([0.5, 0.1, np.nan]), 0.3) == 0.5


def test_summary_counts_points_with_any_null_fraction(caplog: pytest.LogCaptureFixture) -> None:
    """A point missing only its water fraction is reported as lacking coverage."""
    composite = _composite(B4=_VEG["B4"], B8=_VEG["B8"])
    with caplog.at_level(logging.INFO, logger="hyperlocal_weather.features.static_cover"):
        StaticFeatureAttacher(composite).attach((GridPoint(20.0, 85.0),))
    assert "without_coverage=1" in caplog.text
