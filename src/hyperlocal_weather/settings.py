"""Pipeline settings loaded from YAML and command-line overrides.

YAML loading is strict: the file must exist and hold a mapping. Every
validation problem surfaces as ConfigurationError before any data is fetched.
"""

from __future__ import annotations

from datetime import UTC, date, datetime
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from hyperlocal_weather.errors import ConfigurationError
from hyperlocal_weather.features.static_cover import CoverConfig
from hyperlocal_weather.geo.grid import GridConfig
from hyperlocal_weather.ingest.factory import DEFAULT_BOUNDARY_ASSET
from hyperlocal_weather.ingest.gee_sources import S2CompositeConfig
from hyperlocal_weather.orchestrate.yearly_export import ExportConfig
from hyperlocal_weather.time.windows import to_utc
from hyperlocal_weather.weather.join import JoinConfig

DEFAULT_START = datetime(2020, 1, 1, tzinfo=UTC)


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid")


class GridSettings(_Section):
    step_deg: float = 0.01
    buffer_m: float = 1000.0


class CoverSettings(_Section):
    buffer_m: float = 250.0
    scale_m: float = 10.0
    max_pixels: int = 1_000_000
    green_threshold: float = 0.3
    water_threshold: float = 0.2


class CompositeSettings(_Section):
    start: date = date(2024, 4, 1)
    end: date = date(2024, 6, 1)
    max_cloud_pct: float = Field(default=20.0, ge=0.0, le=100.0)


class JoinSettings(_Section):
    scale_m: float = 1000.0


class ExportSettings(_Section):
    out_dir: str = "exports"
    folder: str = "GEE_Exports_Hyperlocal"
    file_name_template: str = "bhubaneswar_hyperlocal_weather_greenwater_{year}"
    description_template: str = "Bhubaneswar_Hyperlocal_Weather_{year}_GreenWater"
    year_workers: int = 1
    image_workers: int = 4


class PipelineSettings(_Section):
    """Validated settings for one pipeline run."""

    provider: Literal["mock", "gee"] = "mock"
    boundary_asset: str = DEFAULT_BOUNDARY_ASSET
    start: datetime = DEFAULT_START
    end: datetime | None = None
    grid: GridSettings = Field(default_factory=GridSettings)
    cover: CoverSettings = Field(default_factory=CoverSettings)
    composite: CompositeSettings = Field(default_factory=CompositeSettings)
    join: JoinSettings = Field(default_factory=JoinSettings)
    export: ExportSettings = Field(default_factory=ExportSettings)

    @field_validator("start", "end")
    @classmethod
    def _utc(cls, value: datetime | None) -> datetime | None:
        return None if value is None else to_utc(value)

    @model_validator(mode="after")
    def _check(self) -> PipelineSettings:
        self.grid_config().validate()
        self.cover_config().validate()
        self.join_config().validate()
        self.export_config().validate()
        if self.end is not None and self.end <= self.start:
            raise ValueError("end must be greater than start")
        if self.composite.end <= self.composite.start:
            raise ValueError("composite end must be greater than composite start")
        return self

    def grid_config(self) -> GridConfig:
        return GridConfig(step_deg=self.grid.step_deg, buffer_m=self.grid.buffer_m)

    def cover_config(self) -> CoverConfig:
        return CoverConfig(**self.cover.model_dump())

    def join_config(self) -> JoinConfig:
        return JoinConfig(scale_m=self.join.scale_m)

    def export_config(self) -> ExportConfig:
        e = self.export
        return ExportConfig(
            file_name_template=e.file_name_template,
            description_template=e.description_template,
            folder=e.folder,
            year_workers=e.year_workers,
            image_workers=e.image_workers,
        )

    def s2_config(self) -> S2CompositeConfig:
        c = self.composite
        return S2CompositeConfig(
            start=c.start,
            end=c.end,
            max_cloud_pct=c.max_cloud_pct,
            scale_m=self.cover.scale_m,
        )


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping, raising ConfigurationError on a missing file or non-mapping."""
    if not path.exists():
        raise ConfigurationError(f"Config not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Expected YAML mapping at {path}")
    return data


def _merge(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for key, value in overrides.items():
        if value is None:
            continue
        if isinstance(value, dict):
            current = out.get(key)
            out[key] = _merge(current if isinstance(current, dict) else {}, value)
        else:
            out[key] = value
    return out


def load_settings(path: Path | None = None, overrides: dict[str, Any] | None = None) -> PipelineSettings:
    """Build settings from an optional YAML file plus overrides (None values are ignored)."""
    data = load_yaml(path) if path is not None else {}
    data = _merge(data, overrides or {})
    try:
        return PipelineSettings.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(str(exc)) from exc
