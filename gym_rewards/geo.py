"""Geospatial utilities (no external dependencies)."""

from __future__ import annotations

import math

from gym_rewards.models import GeoPoint


def haversine_m(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Compute Haversine distance in meters between two lat/lon points.

    Args:
        lat1: Latitude 1 in degrees.
        lon1: Longitude 1 in degrees.
        lat2: Latitude 2 in degrees.
        lon2: Longitude 2 in degrees.

    Returns:
        Distance in meters.
    """

    r = 6_371_000.0  # mean Earth radius in meters
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2.0) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2.0) ** 2
    c = 2.0 * math.atan2(math.sqrt(a), math.sqrt(1.0 - a))
    return r * c


def distance_m(a: GeoPoint, b: GeoPoint) -> float:
    """Great-circle distance in meters between two points."""

    return haversine_m(a.latitude, a.longitude, b.latitude, b.longitude)


def is_valid_coordinate(point: GeoPoint) -> bool:
    """Check that a point is finite and inside the WGS84 lat/lon ranges."""

    lat = point.latitude
    lon = point.longitude
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0
