#Marks routing as a package.
#Re-exports the routing clients and distance math so other modules import from
#routing without knowing internal file names.
#geofence / enrichment are imported by their module path (they depend on offers.models).
#No business logic.

from .geo import EARTH_RADIUS_M, haversine_m, is_valid_coordinate
from .route_service import RouteProvider, RouteResult, RoutingError
from .osrm_client import OSRMClient
from .directions_client import DirectionsClient

__all__ = [
    "EARTH_RADIUS_M",
    "haversine_m",
    "is_valid_coordinate",
    "RouteProvider",
    "RouteResult",
    "RoutingError",
    "OSRMClient",
    "DirectionsClient",
]
