"""Command-line entrypoint for hyperlocal_weather."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from datetime import datetime
from pathlib import Path

from hyperlocal_weather import __version__
from hyperlocal_weather.errors import ConfigurationError
from hyperlocal_weather.orchestrate.pipeline import prepare_grid, run_export, sources_for
from hyperlocal_weather.settings import load_settings
from hyperlocal_weather.sinks import write_grid_points
from hyperlocal_weather.time.windows import to_utc

logger = logging.getLogger("hyperlocal_weather")

_LIBS_TO_SILENCE = ("urllib3.connectionpool", "googleapiclient.discovery", "google_auth_httplib2")


def _parse_iso_datetime(value: str) -> datetime:
    """Parse ISO datetime string and normalize to aware UTC."""
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"invalid datetime: {value}") from exc
    return to_utc(parsed)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    for name in _LIBS_TO_SILENCE:
        logging.getLogger(name).setLevel(logging.WARNING)


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--config", type=Path, default=None, help="YAML settings file.")
    parser.add_argument("--provider", choices=["mock", "gee"], default=None)
    parser.add_argument("--out-dir", default=None)
    parser.add_argument("--grid-step", type=float, default=None, help="Grid step in degrees.")
    parser.add_argument("--buffer-m", type=float, default=None, help="Boundary buffer in metres.")
    parser.add_argument("--log-level", default="INFO")


def build_parser() -> argparse.ArgumentParser:
    """Create and return the top-level CLI parser."""
    parser = argparse.ArgumentParser(
        prog="hyperlocal_weather",
        description="Hyperlocal weather and land-cover dataset builder.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command")
    grid = subparsers.add_parser("grid", help="Build the enriched grid and write grid_points.csv.")
    _add_common(grid)

    export = subparsers.add_parser("export", help="Export one hourly weather CSV per calendar year.")
    _add_common(export)
    export.add_argument("--start", type=_parse_iso_datetime, default=None)
    export.add_argument("--end", type=_parse_iso_datetime, default=None)
    export.add_argument("--year-workers", type=int, default=None)
    export.add_argument("--image-workers", type=int, default=None)

    return parser


def _overrides(args: argparse.Namespace) -> dict:
    return {
        "provider": args.provider,
        "start": getattr(args, "start", None),
        "end": getattr(args, "end", None),
        "grid": {"step_deg": args.grid_step, "buffer_m": args.buffer_m},
        "export": {
            "out_dir": args.out_dir,
            "year_workers": getattr(args, "year_workers", None),
            "image_workers": getattr(args, "image_workers", None),
        },
    }


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI application."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        return 0

    configure_logging(args.log_level)
    try:
        settings = load_settings(args.config, _overrides(args))
        if args.command == "grid":
            prepared = prepare_grid(settings, sources_for(settings))
            path = write_grid_points(prepared.points, Path(settings.export.out_dir) / "grid_points.csv")
            print(f"grid complete points={len(prepared.points)} path={path}")
            return 0

        results = run_export(settings)
    except ConfigurationError as exc:
        logger.error("configuration error: %s", exc)
        return 2

    failed = 0
    for r in results:
        if r.ok:
            print(f"year={r.year} images={r.image_count} rows={r.row_count} path={r.path}")
        else:
            failed += 1
            print(f"year={r.year} FAILED {r.error}")
    return 1 if failed else 0


if __name__ == "__main__":
    raise SystemExit(main())
