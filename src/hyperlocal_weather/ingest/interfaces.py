"""Source interfaces for boundary, optical composite and hourly weather data."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from shapely.geometry.base import BaseGeometry

from hyperlocal_weather.contracts import Raster, WeatherImage


class BoundarySource(Protocol):
    """Interface for retrieving the study-area boundary."""

    def get_boundary(self) -> BaseGeometry:
        """Return the boundary polygon in lon/lat."""


class CompositeSource(Protocol):
    """Interface for a cloud-filtered optical median composite."""

    def get_composite(self, region: BaseGeometry) -> Raster:
        """Return a composite with bands B3, B4, B8 covering ``region``."""


class WeatherImageSource(Protocol):
    """Interface for hourly reanalysis images.

    Listing and fetching are separate so callers can fetch images concurrently.
    """

    def list_timestamps(self, start: datetime, end: datetime, region: BaseGeometry) -> list[datetime]:
        """Return UTC timestamps of images in [start, end) overlapping ``region``."""

    def get_image(self, timestamp: datetime, region: BaseGeometry) -> WeatherImage:
        """Return the image at ``timestamp`` with pixels covering ``region``."""
