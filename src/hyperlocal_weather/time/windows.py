"""Deterministic UTC time helpers: calendar-year windows and hourly stamps."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta

from hyperlocal_weather.contracts import YearWindow
from hyperlocal_weather.errors import ConfigurationError


def to_utc(dt: datetime) -> datetime:
    """Convert datetime to timezone-aware UTC, assuming UTC for naive values."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def year_start(year: int) -> datetime:
    return datetime(year, 1, 1, tzinfo=UTC)


def year_windows(start: datetime, end: datetime) -> list[YearWindow]:
    """Split [start, end) into consecutive calendar-year windows.

    Each window covers [Y-01-01, Y+1-01-01) clipped to the requested range, so
    the final window ends at ``end`` rather than at the next new year. Windows
    that would be empty are skipped.
    """
    start_utc = to_utc(start)
    end_utc = to_utc(end)
    if end_utc <= start_utc:
        raise ConfigurationError("end must be greater than start")

    windows: list[YearWindow] = []
    for year in range(start_utc.year, end_utc.year + 1):
        w_start = max(start_utc, year_start(year))
        w_end = min(end_utc, year_start(year + 1))
        if w_end > w_start:
            windows.append(YearWindow(year=year, start=w_start, end=w_end))
    return windows


def iter_hours(start: datetime, end: datetime) -> Iterator[datetime]:
    """Yield whole-hour UTC stamps in [start, end)."""
    current = to_utc(start).replace(minute=0, second=0, microsecond=0)
    if current < to_utc(start):
        current += timedelta(hours=1)
    end_utc = to_utc(end)
    step = timedelta(hours=1)
    while current < end_utc:
        yield current
        current += step
