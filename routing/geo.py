#Purpose: Straight-line (great-circle) distance math.
#Used as the cheap radius filter and as the fallback distance whenever
#the routing service cannot give us a real route.
#No HTTP, no state.

import math
from typing import Any

EARTH_RADIUS_M = 6371000.0 #mean Earth radius in meters


def is_valid_coordinate(lat: Any, lng: Any) -> bool:
    """True only for finite numbers inside the lat/lng ranges."""
    if isinstance(lat, bool) or isinstance(lng, bool):
        return False
    if not isinstance(lat, (int, float)) or not isinstance(lng, (int, float)):
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90.0 <= lat <= 90.0 and -180.0 <= lng <= 180.0


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """
    Great-circle distance between two points in meters.

    Args:
        lat1, lng1: first point in degrees
        lat2, lng2: second point in degrees

    Returns:
        distance in meters
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    delta_phi = math.radians(lat2 - lat1)
    delta_lambda = math.radians(lng2 - lng1)

    a = (
        math.sin(delta_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(delta_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_M * c


def point_distance_m(a, b) -> float:
    """haversine_m for two objects exposing .lat / .lng"""
    return haversine_m(a.lat, a.lng, b.lat, b.lng)
