"""Tests for derived relative humidity and wind speed."""

from __future__ import annotations

from datetime import UTC, datetime

import numpy as np
import pytest
from rasterio.transform import from_origin

from hyperlocal_weather.contracts import (
    DEWPOINT,
    RELATIVE_HUMIDITY,
    TEMPERATURE,
    U_WIND,
    V_WIND,
    WIND_SPEED,
    Raster,
    WeatherImage,
)
from hyperlocal_weather.weather.derived import add_derived_bands, relative_humidity, wind_speed


def _image(**bands: float) -> WeatherImage:
    raster = Raster(
        bands={name: np.full((2, 2), value) for name, value in bands.items()},
        transform=from_origin(85.7, 20.4, 0.1, 0.1),
    )
    return WeatherImage(timestamp=datetime(2024, 5, 1, 6, tzinfo=UTC), raster=raster)


def test_relative_humidity_reference_value() -> None:
    """T = 300 K with Td = 290 K is about 54.26 % under Magnus-Tetens."""
    assert float(relative_humidity(300.0, 290.0)) == pytest.approx(54.26, abs=0.01)


@pytest.mark.parametrize("temp_k", [250.0, 273.15, 300.0, 320.0])
def test_saturated_air_is_exactly_one_hundred_percent(temp_k: float) -> None:
    """Dewpoint equal to temperature means saturation."""
    assert float(relative_humidity(temp_k, temp_k)) == 100.0


def test_relative_humidity_is_bounded() -> None:
    """RH stays in [0, 100] even when dewpoint exceeds temperature."""
    rng = np.random.default_rng(0)
    temp = rng.uniform(250.0, 320.0, size=500)
    dew = temp + rng.uniform(-40.0, 5.0, size=500)
    rh = relative_humidity(temp, dew)
    assert np.all((rh >= 0.0) & (rh <= 100.0))


def test_relative_humidity_keeps_nan() -> None:
    """Missing pixels stay missing."""
    assert np.isnan(relative_humidity(np.nan, 290.0))


def test_wind_speed_values() -> None:
    """Speed is the magnitude of the (u, v) vector."""
    assert float(wind_speed(3.0, 4.0)) == 5.0
    assert float(wind_speed(0.0, 0.0)) == 0.0
    assert float(wind_speed(-3.0, -4.0)) == float(wind_speed(3.0, 4.0)) == float(wind_speed(4.0, 3.0))


def test_add_derived_bands_is_non_destructive() -> None:
    """Derived bands are added to a copy; raw bands are untouched."""
    image = _image(**{TEMPERATURE: 300.0, DEWPOINT: 290.0, U_WIND: 3.0, V_WIND: 4.0})
    derived = add_derived_bands(image)

    assert not image.raster.has_band(RELATIVE_HUMIDITY)
    assert derived.timestamp == image.timestamp
    assert derived.raster.band(TEMPERATURE) is image.raster.band(TEMPERATURE)
    assert derived.raster.band(RELATIVE_HUMIDITY)[0, 0] == pytest.approx(54.26, abs=0.01)
    assert np.all(derived.raster.band(WIND_SPEED) == 5.0)


def test_missing_input_band_skips_only_its_derived_band() -> None:
    """Without dewpoint there is no humidity band, but wind speed is still derived."""
    derived = add_derived_bands(_image(**{TEMPERATURE: 300.0, U_WIND: 3.0, V_WIND: 4.0}))
    assert not derived.raster.has_band(RELATIVE_HUMIDITY)
    assert derived.raster.has_band(WIND_SPEED)
