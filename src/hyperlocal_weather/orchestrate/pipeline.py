"""End-to-end pipeline: grid, static enrichment, then yearly weather exports."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime

from shapely.geometry.base import BaseGeometry

from hyperlocal_weather.contracts import ExportResult, GridPoint
from hyperlocal_weather.features.static_cover import StaticFeatureAttacher
from hyperlocal_weather.geo.geodesic import geodesic_buffer
from hyperlocal_weather.geo.grid import build_grid
from hyperlocal_weather.ingest.factory import Sources, create_sources
from hyperlocal_weather.orchestrate.yearly_export import YearlyExporter
from hyperlocal_weather.settings import PipelineSettings
from hyperlocal_weather.sinks import CsvTableSink, TableSink
from hyperlocal_weather.time.windows import year_windows
from hyperlocal_weather.weather.join import TemporalJoiner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PreparedGrid:
    """Enriched grid points plus the geometries the joins need."""

    boundary: BaseGeometry
    region: BaseGeometry
    points: tuple[GridPoint, ...]


def sources_for(settings: PipelineSettings) -> Sources:
    return create_sources(settings.provider, settings.boundary_asset, settings.s2_config())


def prepare_grid(settings: PipelineSettings, sources: Sources) -> PreparedGrid:
    """Build the grid and attach cover fractions once; shared by every join."""
    grid_cfg = settings.grid_config()
    cover_cfg = settings.cover_config()

    boundary = sources.boundary.get_boundary()
    points = build_grid(boundary, grid_cfg)
    if not points:
        logger.warning("no grid points fall inside the buffered boundary")

    composite_region = geodesic_buffer(boundary, grid_cfg.buffer_m + cover_cfg.buffer_m)
    composite = sources.composite.get_composite(composite_region)
    enriched = StaticFeatureAttacher(composite, cover_cfg).attach(points)

    region = geodesic_buffer(boundary, grid_cfg.buffer_m)
    return PreparedGrid(boundary=boundary, region=region, points=enriched)


def run_export(
    settings: PipelineSettings,
    sources: Sources | None = None,
    sink: TableSink | None = None,
    now: datetime | None = None,
) -> list[ExportResult]:
    """Run the whole pipeline and return one result per exported year."""
    start = settings.start
    end = settings.end or now or datetime.now(UTC)
    windows = year_windows(start, end)
    export_cfg = settings.export_config()
    export_cfg.validate()
    logger.info("date range %s .. %s (%d year(s))", start.isoformat(), end.isoformat(), len(windows))

    sources = sources or sources_for(settings)
    sink = sink or CsvTableSink(settings.export.out_dir, export_cfg.folder)

    prepared = prepare_grid(settings, sources)
    joiner = TemporalJoiner(prepared.points, settings.join_config())
    exporter = YearlyExporter(
        source=sources.weather,
        sink=sink,
        joiner=joiner,
        boundary=prepared.boundary,
        region=prepared.region,
        cfg=export_cfg,
    )
    return exporter.run(start, end)
