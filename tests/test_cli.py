"""Smoke tests for the package CLI."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from hyperlocal_weather.__main__ import main


def test_cli_import_smoke() -> None:
    """Ensure CLI entrypoint can be imported and executed."""
    assert main([]) == 0


def test_grid_command_writes_points(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    """`grid` writes the enriched points table."""
    code = main(["grid", "--provider", "mock", "--out-dir", str(tmp_path), "--grid-step", "0.05"])

    assert code == 0
    frame = pd.read_csv(tmp_path / "grid_points.csv")
    assert len(frame) > 0
    assert frame["green_cover_frac"].between(0, 1).all()
    assert "grid complete" in capsys.readouterr().out


def test_export_command_writes_yearly_files(tmp_path: Path) -> None:
    """`export` produces one CSV per calendar year in the export folder."""
    code = main(
        [
            "export",
            "--provider",
            "mock",
            "--out-dir",
            str(tmp_path),
            "--grid-step",
            "0.05",
            "--start",
            "2023-12-31T23:00:00+00:00",
            "--end",
            "2024-01-01T01:00:00+00:00",
        ]
    )

    assert code == 0
    names = sorted(p.name for p in (tmp_path / "GEE_Exports_Hyperlocal").glob("*.csv"))
    assert names == [
        "bhubaneswar_hyperlocal_weather_greenwater_2023.csv",
        "bhubaneswar_hyperlocal_weather_greenwater_2024.csv",
    ]


def test_invalid_configuration_exits_with_code_2(tmp_path: Path) -> None:
    """A non-positive grid step is rejected before any work starts."""
    assert main(["grid", "--provider", "mock", "--out-dir", str(tmp_path), "--grid-step", "0"]) == 2
