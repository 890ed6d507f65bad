"""Source factory functions with lazy GEE imports."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import TYPE_CHECKING

from hyperlocal_weather.errors import ConfigurationError
from hyperlocal_weather.ingest.interfaces import BoundarySource, CompositeSource, WeatherImageSource
from hyperlocal_weather.ingest.mock_sources import (
    MockBoundarySource,
    MockCompositeSource,
    MockWeatherImageSource,
)

if TYPE_CHECKING:
    from hyperlocal_weather.ingest.gee_sources import S2CompositeConfig

DEFAULT_BOUNDARY_ASSET = "users/sahityaatripathy/Bhubaneswar_shapefile"


@dataclass(frozen=True)
class Sources:
    """The three data collaborators one pipeline run needs."""

    boundary: BoundarySource
    composite: CompositeSource
    weather: WeatherImageSource


def resolve_mode(mode: str | None) -> str:
    """Resolve source mode from argument or environment."""
    raw = mode or os.getenv("HYPERLOCAL_PROVIDER_MODE", "mock")
    resolved = raw.strip().lower()
    if resolved not in {"mock", "gee"}:
        raise ConfigurationError("provider mode must be one of: mock, gee")
    return resolved


def create_sources(
    mode: str | None = None,
    boundary_asset: str = DEFAULT_BOUNDARY_ASSET,
    s2_cfg: S2CompositeConfig | None = None,
) -> Sources:
    """Create boundary, composite and weather sources for the selected mode."""
    resolved = resolve_mode(mode)
    if resolved == "mock":
        return Sources(
            boundary=MockBoundarySource(),
            composite=MockCompositeSource(),
            weather=MockWeatherImageSource(),
        )

    from hyperlocal_weather.ingest.gee_client import config_from_env, init_ee
    from hyperlocal_weather.ingest.gee_sources import (
        GeeBoundarySource,
        GeeCompositeSource,
        GeeWeatherImageSource,
    )

    ee = init_ee(config_from_env())
    return Sources(
        boundary=GeeBoundarySource(boundary_asset, gee=ee),
        composite=GeeCompositeSource(gee=ee, s2_cfg=s2_cfg),
        weather=GeeWeatherImageSource(gee=ee),
    )
