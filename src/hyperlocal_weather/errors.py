"""Error kinds raised by the hyperlocal weather pipeline."""

from __future__ import annotations


class HyperlocalWeatherError(Exception):
    """Base class for pipeline errors."""


class ConfigurationError(HyperlocalWeatherError, ValueError):
    """Invalid grid step, date range or other settings; aborts before any work."""


class DataGapError(HyperlocalWeatherError, LookupError):
    """A requested band is absent from a raster."""

    def __init__(self, band: str) -> None:
        super().__init__(f"band not present in raster: {band}")
        self.band = band


class CoverageComputationError(HyperlocalWeatherError):
    """A cover-fraction region contained zero valid pixels."""
