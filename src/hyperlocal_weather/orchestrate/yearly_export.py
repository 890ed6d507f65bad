"""Per-calendar-year export of joined hourly weather records."""

from __future__ import annotations

import logging
from collections import deque
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from datetime import datetime
from typing import TypeVar

from shapely.geometry.base import BaseGeometry

from hyperlocal_weather.contracts import ExportResult, WeatherRecord, YearWindow
from hyperlocal_weather.errors import ConfigurationError
from hyperlocal_weather.ingest.interfaces import WeatherImageSource
from hyperlocal_weather.sinks import TableSink
from hyperlocal_weather.time.windows import year_windows
from hyperlocal_weather.weather.join import TemporalJoiner

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True)
class ExportConfig:
    """Naming templates and worker counts for yearly exports."""

    file_name_template: str = "bhubaneswar_hyperlocal_weather_greenwater_{year}"
    description_template: str = "Bhubaneswar_Hyperlocal_Weather_{year}_GreenWater"
    folder: str = "GEE_Exports_Hyperlocal"
    year_workers: int = 1
    image_workers: int = 4

    def validate(self) -> None:
        if self.year_workers < 1 or self.image_workers < 1:
            raise ConfigurationError("worker counts must be >= 1")
        for template in (self.file_name_template, self.description_template):
            if "{year}" not in template:
                raise ConfigurationError(f"export template must contain {{year}}: {template}")

    def file_name_prefix(self, year: int) -> str:
        return self.file_name_template.format(year=year)

    def description(self, year: int) -> str:
        return self.description_template.format(year=year)


def bounded_map(fn: Callable[[T], R], items: Iterable[T], workers: int) -> Iterator[R]:
    """Ordered parallel map keeping at most ``2 * workers`` tasks in flight."""
    if workers <= 1:
        for item in items:
            yield fn(item)
        return

    with ThreadPoolExecutor(max_workers=workers) as pool:
        pending = deque()
        for item in items:
            pending.append(pool.submit(fn, item))
            if len(pending) >= 2 * workers:
                yield pending.popleft().result()
        while pending:
            yield pending.popleft().result()


class YearlyExporter:
    """Join every hourly image of each calendar year and write one table per year.

    ``region`` is the area images must cover (the buffered boundary);
    ``boundary`` is the study polygon an image footprint must intersect.
    """

    def __init__(
        self,
        source: WeatherImageSource,
        sink: TableSink,
        joiner: TemporalJoiner,
        boundary: BaseGeometry,
        region: BaseGeometry | None = None,
        cfg: ExportConfig | None = None,
    ) -> None:
        self._cfg = cfg or ExportConfig()
        self._cfg.validate()
        self._source = source
        self._sink = sink
        self._joiner = joiner
        self._boundary = boundary
        self._region = region if region is not None else boundary

    def _process(self, timestamp: datetime) -> list[WeatherRecord] | None:
        image = self._source.get_image(timestamp, self._region)
        if not image.raster.footprint().intersects(self._boundary):
            return None
        return self._joiner.process_image(image)

    def export_year(self, window: YearWindow) -> ExportResult:
        """Export one year window; failures propagate to the caller."""
        stamps = [
            ts
            for ts in self._source.list_timestamps(window.start, window.end, self._region)
            if window.start <= ts < window.end
        ]
        result = ExportResult(year=window.year)
        skipped = 0

        def batches() -> Iterator[Sequence[WeatherRecord]]:
            nonlocal skipped
            for records in bounded_map(self._process, stamps, self._cfg.image_workers):
                if records is None:
                    skipped += 1
                    continue
                result.image_count += 1
                yield records

        path, rows = self._sink.write_table(
            self._cfg.description(window.year),
            self._cfg.file_name_prefix(window.year),
            batches(),
        )
        result.path = path
        result.row_count = rows
        result.meta = {
            "window_start": window.start.isoformat(),
            "window_end": window.end.isoformat(),
            "images_outside_boundary": skipped,
        }
        logger.info(
            "year %d images=%d rows=%d skipped=%d",
            window.year,
            result.image_count,
            rows,
            skipped,
        )
        return result

    def _export_isolated(self, window: YearWindow) -> ExportResult:
        try:
            return self.export_year(window)
        except Exception as exc:
            logger.exception("export failed for year %d", window.year)
            return ExportResult(year=window.year, error=f"{type(exc).__name__}: {exc}")

    def run(self, start: datetime, end: datetime) -> list[ExportResult]:
        """Export every calendar year in [start, end); one failing year does not stop the others."""
        windows = year_windows(start, end)
        logger.info("exporting %d year window(s) with %d worker(s)", len(windows), self._cfg.year_workers)

        if self._cfg.year_workers == 1:
            return [self._export_isolated(w) for w in windows]

        results: list[ExportResult] = []
        with ThreadPoolExecutor(max_workers=self._cfg.year_workers) as pool:
            futures = {pool.submit(self._export_isolated, w): w for w in windows}
            for future in as_completed(futures):
                results.append(future.result())
        return sorted(results, key=lambda r: r.year)
