#Purpose: The OSRM "adapter/client".
#Sole responsibility: talk to OSRM via HTTP and return normalized outputs.
#Encapsulates OSRM-specific details:
#coordinate formatting (lng,lat)
#URL construction (/route)
#timeouts and error handling
#parsing response JSON into RouteResult
#It should not contain filtering or ranking rules.


from dotenv import load_dotenv
import logging
import os
from typing import Dict, List, Optional, Tuple

import requests

from routing.route_service import RouteResult, RoutingError

# Read OSRM base URL from environment
# Example in .env:
# OSRM_BASE_URL=http://router.project-osrm.org
load_dotenv()
OSRM_BASE_URL = os.getenv("OSRM_BASE_URL")

logger = logging.getLogger(__name__)

# Internal coordinate type: (lat, lng)
LatLng = Tuple[float, float]

# OSRM answers these codes when the request was fine but there is nothing to return
NO_ROUTE_CODES = ("NoRoute", "NoSegment")


class OSRMClient:
    """
    OSRM Adapter / Client

    Sole responsibility:
    - Talk to OSRM via HTTP
    - Convert internal (lat, lng) -> OSRM (lng,lat)
    - Return normalized outputs

    """
    def __init__(self, base_url: Optional[str] = None, profile: str = "driving", timeout: float = 10):
        self.base_url = (base_url or OSRM_BASE_URL or "").rstrip("/")
        self.timeout = timeout #the time to wait for a response from OSRM before giving up
        self.profile = profile #the mode of transportation (driving, walking, cycling)

        if not self.base_url:
            raise ValueError("OSRM base URL not set. Please set OSRM_BASE_URL in the .env file.")

    @classmethod
    def from_policy(cls, policy, base_url: Optional[str] = None, profile: str = "driving") -> "OSRMClient":
        """Client whose per-request timeout is the policy's routing_request_timeout_s."""
        return cls(base_url=base_url, profile=profile, timeout=policy.routing_request_timeout_s)

    def format_coordinates(self, coords: List[LatLng]) -> str:
        """Convert list of (lat, lng) to OSRM format 'lng,lat;lng,lat;...'"""
        return ';'.join([f"{lng},{lat}" for lat, lng in coords])

    def compute_route(self, coordinates: List[LatLng]) -> Optional[Dict[str, float]]:
        """
        calls the OSRM /route endpoint with the given coordinates and
        returns a dict with distance and duration, or None when OSRM has no route

        Returns:
            {
                "distance": float, # in meters
                "duration": float, # in seconds
            }
        """
        if len(coordinates) < 2:
            raise ValueError("At least two coordinates are required to compute a route.")

        url = f"{self.base_url}/route/v1/{self.profile}/{self.format_coordinates(coordinates)}"

        try:
            response = requests.get(
                url,
                params={
                    "overview": "false", # we don't need the geometry of the route
                },
                timeout=self.timeout,
            )
            data = response.json() #OSRM answers JSON even for 4xx
        except requests.RequestException as exc:
            raise RoutingError(f"OSRM request failed: {exc}") from exc
        except ValueError as exc:
            raise RoutingError(f"OSRM returned non-JSON response (HTTP {response.status_code})") from exc

        code = data.get("code")
        if code in NO_ROUTE_CODES:
            logger.debug(f"OSRM found no route: {data.get('message', code)}")
            return None

        #validating OSRM response
        if code != "Ok":
            raise RoutingError(f"OSRM error: {data.get('message', 'Unknown error')}")

        routes = data.get("routes") or []
        if not routes:
            return None

        route = routes[0] #take the first route (OSRM may return alternatives)

        #Normalize output to internal format
        try:
            return {
                "distance": float(route["distance"]),
                "duration": float(route["duration"]),
            }
        except (KeyError, TypeError, ValueError) as exc:
            raise RoutingError(f"OSRM returned a malformed route: {route!r}") from exc

    def route(self, origin, destination) -> Optional[RouteResult]:
        """RouteProvider contract: one origin -> destination leg."""
        result = self.compute_route([(origin.lat, origin.lng), (destination.lat, destination.lng)])
        if result is None:
            return None
        return RouteResult(distance_m=result["distance"], duration_s=result["duration"])
