"""Geodesic helpers built on local azimuthal-equidistant projections.

Distances are exact from the projection centre and distort slowly away from it,
which keeps metre-based buffers faithful over city-scale extents.
"""

from __future__ import annotations

from pyproj import CRS, Transformer
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform

from hyperlocal_weather.errors import ConfigurationError

_WGS84 = "EPSG:4326"


def local_aeqd(lat: float, lon: float) -> CRS:
    """Return an azimuthal-equidistant CRS (metres) centred on lat/lon."""
    return CRS.from_proj4(f"+proj=aeqd +lat_0={lat} +lon_0={lon} +datum=WGS84 +units=m +no_defs")


def to_local(lat: float, lon: float) -> tuple[Transformer, Transformer]:
    """Return (lonlat -> local metres, local metres -> lonlat) transformers."""
    aeqd = local_aeqd(lat, lon)
    forward = Transformer.from_crs(_WGS84, aeqd, always_xy=True)
    inverse = Transformer.from_crs(aeqd, _WGS84, always_xy=True)
    return forward, inverse


def geodesic_buffer(geometry: BaseGeometry, distance_m: float, quad_segs: int = 16) -> BaseGeometry:
    """Buffer a lon/lat geometry outward by a ground distance in metres."""
    if distance_m < 0:
        raise ConfigurationError("buffer distance must be non-negative")
    if distance_m == 0:
        return geometry

    centre = geometry.centroid
    forward, inverse = to_local(centre.y, centre.x)
    local = transform(forward.transform, geometry)
    buffered = local.buffer(distance_m, quad_segs=quad_segs)
    return transform(inverse.transform, buffered)
