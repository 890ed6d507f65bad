"""Relative humidity and wind speed derived from raw reanalysis bands."""

from __future__ import annotations

import numpy as np

from hyperlocal_weather.contracts import (
    DEWPOINT,
    RELATIVE_HUMIDITY,
    TEMPERATURE,
    U_WIND,
    V_WIND,
    WIND_SPEED,
    WeatherImage,
)

KELVIN_OFFSET = 273.15
# Magnus-Tetens coefficients (hPa, degC).
MAGNUS_E0 = 6.112
MAGNUS_A = 17.67
MAGNUS_B = 243.5


def saturation_vapor_pressure(t_c):
    """Saturation vapour pressure in hPa for temperature in degC."""
    t_c = np.asarray(t_c, dtype=float)
    return MAGNUS_E0 * np.exp(MAGNUS_A * t_c / (t_c + MAGNUS_B))


def relative_humidity(temp_k, dewpoint_k):
    """Relative humidity in percent from 2 m temperature and dewpoint in kelvin.

    Clamped to [0, 100]; NaN inputs stay NaN.
    """
    es_t = saturation_vapor_pressure(np.asarray(temp_k, dtype=float) - KELVIN_OFFSET)
    es_td = saturation_vapor_pressure(np.asarray(dewpoint_k, dtype=float) - KELVIN_OFFSET)
    return np.clip(100.0 * es_td / es_t, 0.0, 100.0)


def wind_speed(u, v):
    """Horizontal wind speed in m/s from u/v components."""
    return np.hypot(np.asarray(u, dtype=float), np.asarray(v, dtype=float))


def add_derived_bands(image: WeatherImage) -> WeatherImage:
    """Return a copy of ``image`` with relative humidity and wind speed bands.

    A derived band is left out when any of its inputs is missing from the image.
    """
    raster = image.raster
    extra: dict[str, np.ndarray] = {}
    if raster.has_band(TEMPERATURE) and raster.has_band(DEWPOINT):
        extra[RELATIVE_HUMIDITY] = relative_humidity(raster.band(TEMPERATURE), raster.band(DEWPOINT))
    if raster.has_band(U_WIND) and raster.has_band(V_WIND):
        extra[WIND_SPEED] = wind_speed(raster.band(U_WIND), raster.band(V_WIND))
    return WeatherImage(timestamp=image.timestamp, raster=raster.with_bands(extra))
