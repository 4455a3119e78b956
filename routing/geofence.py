#Purpose: Radius geofencing around the pickup point.
#Builds the "eligible by straight-line distance" set the selection screen shows.
#Typical responsibilities:
#Given pickup point + candidate positions -> haversine distance per candidate
#Keep candidates with distance <= radius (inclusive)
#Output: the subset, in input order, ready for route enrichment.

from typing import List, Optional, Sequence

from routing.geo import haversine_m, is_valid_coordinate

# candidates placed at exactly the radius must survive float rounding
DISTANCE_TOLERANCE_M = 1e-6


def _has_valid_coordinates(point) -> bool:
    if point is None:
        return False
    return is_valid_coordinate(getattr(point, "lat", None), getattr(point, "lng", None))


def filter_by_radius(
        candidates: Sequence,
        origin,
        radius_m: float,
) -> List:
    """
    Straight-line geofence around the trip origin.

    Args:
        candidates: candidate objects exposing .location (.lat, .lng)
        origin: pickup point exposing .lat / .lng; None or invalid coordinates
            yield an empty result instead of raising
        radius_m: inclusive radius in meters

    Returns:
        New list with the candidates inside the radius, input order kept.
    """
    if radius_m < 0:
        raise ValueError(f"radius must be >= 0, got {radius_m}")

    #defensive : empty candidate list edge case
    if not candidates:
        return []

    if not _has_valid_coordinates(origin):
        return []

    limit = radius_m + DISTANCE_TOLERANCE_M
    kept = []
    for candidate in candidates:
        location = getattr(candidate, "location", None)
        #fail closed : a candidate we cannot place is not shown
        if not _has_valid_coordinates(location):
            continue
        distance = haversine_m(origin.lat, origin.lng, location.lat, location.lng)
        if distance <= limit:
            kept.append(candidate)
    return kept


def distance_to_origin_m(candidate, origin) -> Optional[float]:
    """Haversine distance candidate -> origin, None when either side is unusable."""
    location = getattr(candidate, "location", None)
    if not _has_valid_coordinates(origin) or not _has_valid_coordinates(location):
        return None
    return haversine_m(origin.lat, origin.lng, location.lat, location.lng)
