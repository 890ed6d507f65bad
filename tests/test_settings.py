"""Tests for YAML settings and overrides."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from hyperlocal_weather.errors import ConfigurationError
from hyperlocal_weather.settings import load_settings


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "settings.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults() -> None:
    """Without a file the documented defaults apply."""
    settings = load_settings()
    assert settings.provider == "mock"
    assert settings.grid_config().step_deg == 0.01
    assert settings.cover_config().buffer_m == 250.0
    assert settings.join_config().scale_m == 1000.0
    assert settings.start == datetime(2020, 1, 1, tzinfo=UTC)
    assert settings.end is None


def test_yaml_values_and_overrides(tmp_path: Path) -> None:
    """File values apply, overrides win, and None overrides are ignored."""
    path = _write(
        tmp_path,
        "grid:\n  step_deg: 0.02\n  buffer_m: 500\n"
        "start: 2021-01-01T00:00:00Z\n"
        "export:\n  year_workers: 3\n",
    )
    settings = load_settings(path, {"grid": {"step_deg": 0.05, "buffer_m": None}, "provider": None})

    assert settings.grid.step_deg == 0.05
    assert settings.grid.buffer_m == 500.0
    assert settings.export.year_workers == 3
    assert settings.start == datetime(2021, 1, 1, tzinfo=UTC)


def test_sample_config_loads() -> None:
    """The shipped sample configuration is valid."""
    settings = load_settings(Path(__file__).resolve().parents[1] / "config" / "bhubaneswar.yaml")
    assert settings.provider == "gee"
    assert settings.s2_config().max_cloud_pct == 20.0


@pytest.mark.parametrize(
    "text",
    [
        "grid:\n  step_deg: 0\n",
        "grid:\n  step_deg: -0.01\n",
        "cover:\n  max_pixels: 0\n",
        "join:\n  scale_m: -5\n",
        "export:\n  file_name_template: weather\n",
        "start: 2022-01-01T00:00:00Z\nend: 2021-01-01T00:00:00Z\n",
        "grid:\n  stepdeg: 0.01\n",
        "- not\n- a mapping\n",
    ],
)
def test_invalid_settings_raise_configuration_error(tmp_path: Path, text: str) -> None:
    """Every invalid setting surfaces as ConfigurationError."""
    with pytest.raises(ConfigurationError):
        load_settings(_write(tmp_path, text))


def test_missing_file(tmp_path: Path) -> None:
    """A missing config path is a configuration error."""
    with pytest.raises(ConfigurationError):
        load_settings(tmp_path / "absent.yaml")
