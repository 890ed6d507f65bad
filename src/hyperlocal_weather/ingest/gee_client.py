"""
Google Earth Engine client bootstrap (optional dependency).

- This module must NOT import ``ee`` at import time; default test paths run without it.
- Only use it when the `earthengine-api` extra is installed and the user opts in.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import os
from typing import Any

logger = logging.getLogger(__name__)

HIGH_VOLUME_URL = "https://earthengine-highvolume.googleapis.com"


class EarthEngineUnavailableError(RuntimeError):
    pass


@dataclass(frozen=True)
class GeeConfig:
    """Runtime configuration for Earth Engine initialization."""
    project: str
    # Optional: service account mode (non-interactive)
    service_account_email: str | None = None
    private_key_json_path: str | None = None
    # High-volume endpoint suits many small computePixels calls.
    url: str | None = HIGH_VOLUME_URL


def _import_ee() -> Any:
    try:
        import ee  # type: ignore
    except ImportError as exc:  # pragma: no cover
        raise EarthEngineUnavailableError(
            "earthengine-api is not installed. Install with: pip install -e '.[gee]'"
        ) from exc
    return ee


def init_ee(cfg: GeeConfig) -> Any:
    """
    Initialize Earth Engine and return the ``ee`` module.

    Auth modes:
    - OAuth (interactive): run `earthengine authenticate` once on the machine,
      then we call `ee.Initialize(project=cfg.project)`.
    - Service account (non-interactive): uses ee.ServiceAccountCredentials(email, key_path).

    Credentials must never be committed to the repo.
    """
    ee = _import_ee()

    if cfg.service_account_email and cfg.private_key_json_path:
        credentials = ee.ServiceAccountCredentials(cfg.service_account_email, cfg.private_key_json_path)
        ee.Initialize(credentials, project=cfg.project, url=cfg.url)
        logger.info("earth engine initialized project=%s endpoint=%s (service account)", cfg.project, cfg.url)
        return ee

    ee.Initialize(project=cfg.project, url=cfg.url)
    logger.info("earth engine initialized project=%s endpoint=%s", cfg.project, cfg.url)
    return ee


def config_from_env() -> GeeConfig:
    """
    Build GeeConfig from environment variables.

    Required:
      - HYPERLOCAL_GEE_PROJECT

    Optional (service account):
      - HYPERLOCAL_GEE_SERVICE_ACCOUNT_EMAIL
      - HYPERLOCAL_GEE_PRIVATE_KEY_JSON

    Optional (endpoint, defaults to the high-volume API):
      - HYPERLOCAL_GEE_API_URL
    """
    project = os.environ.get("HYPERLOCAL_GEE_PROJECT")
    if not project:
        raise EarthEngineUnavailableError("Missing env HYPERLOCAL_GEE_PROJECT")

    return GeeConfig(
        project=project,
        service_account_email=os.environ.get("HYPERLOCAL_GEE_SERVICE_ACCOUNT_EMAIL"),
        private_key_json_path=os.environ.get("HYPERLOCAL_GEE_PRIVATE_KEY_JSON"),
        url=os.environ.get("HYPERLOCAL_GEE_API_URL") or HIGH_VOLUME_URL,
    )
