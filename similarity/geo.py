"""
similarity/geo.py

Geographic helpers: great-circle distance, distance decay, search windows.
"""

from __future__ import annotations

import math

EARTH_RADIUS_METERS = 6_371_000.0
METERS_PER_DEGREE_LAT = 111_320.0


def is_valid_coordinate(lat: float | None, lon: float | None) -> bool:
    if lat is None or lon is None:
        return False
    if not (math.isfinite(lat) and math.isfinite(lon)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0


def haversine_meters(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """
    Great-circle distance between two WGS84 points in metres.
    """

    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)
    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    a = min(1.0, max(0.0, a))
    return 2 * EARTH_RADIUS_METERS * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_score(
    lat1: float | None,
    lon1: float | None,
    lat2: float | None,
    lon2: float | None,
    *,
    cutoff_meters: float,
) -> float:
    """
    Linear decay from 1.0 at zero distance to 0.0 at ``cutoff_meters``.

    Missing or non-finite coordinates score 0.0.
    """

    if not (is_valid_coordinate(lat1, lon1) and is_valid_coordinate(lat2, lon2)):
        return 0.0
    if cutoff_meters <= 0:
        return 1.0 if (lat1, lon1) == (lat2, lon2) else 0.0
    meters = haversine_meters(lat1, lon1, lat2, lon2)  # type: ignore[arg-type]
    return max(0.0, 1.0 - meters / cutoff_meters)


def bounding_box(lat: float, lon: float, radius_meters: float) -> tuple[float, float, float, float]:
    """
    Return ``(min_lat, max_lat, min_lon, max_lon)`` enclosing a radius.

    The longitude span widens with latitude and is clamped near the poles.
    """

    lat_delta = radius_meters / METERS_PER_DEGREE_LAT
    cos_lat = max(math.cos(math.radians(lat)), 0.01)
    lon_delta = min(180.0, radius_meters / (METERS_PER_DEGREE_LAT * cos_lat))
    return (
        max(-90.0, lat - lat_delta),
        min(90.0, lat + lat_delta),
        max(-180.0, lon - lon_delta),
        min(180.0, lon + lon_delta),
    )
