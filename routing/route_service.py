#Purpose: The routing-service contract shared by every routing client.
#A client answers "how far / how long from A to B by road" for one pair of points.
#It's the "I need an actual route" module, while geofence.py is "I need a cheap radius check".

from dataclasses import dataclass
from typing import Optional, Protocol


class RoutingError(Exception):
    """Raised when a routing service cannot be queried or answers with an error."""
    pass


@dataclass(frozen=True)
class RouteResult:
    distance_m: float  # in meters
    duration_s: float  # in seconds


class RouteProvider(Protocol):
    def route(self, origin, destination) -> Optional[RouteResult]:
        """
        Road distance/duration from origin to destination (both expose .lat/.lng).
        Returns None when the service answers but has no route.
        Raises RoutingError (or requests.RequestException) when it cannot answer.
        """
        ...
