#Purpose: Google Directions adapter/client.
#Sole responsibility: talk to the Directions API via HTTP and return normalized outputs.
#Encapsulates Google-specific details:
#"lat,lng" formatting, API key handling, status codes, legs/steps parsing.
#It should not contain filtering or ranking rules.

from dotenv import load_dotenv
import logging
import os
from typing import Any, Dict, Optional

import requests

from routing.route_service import RouteResult, RoutingError

# Example in .env:
# GOOGLE_MAPS_API_KEY=AIza...
load_dotenv()
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY")

DIRECTIONS_URL = "https://maps.googleapis.com/maps/api/directions/json"

# statuses where Google answered fine but has nothing for us
NO_ROUTE_STATUSES = ("ZERO_RESULTS", "NOT_FOUND")

logger = logging.getLogger(__name__)


class DirectionsClient:
    """
    Google Directions client.

    The API key is configuration: pass it in or set GOOGLE_MAPS_API_KEY.
    """

    def __init__(self, api_key: Optional[str] = None, *, mode: str = "driving",
                 timeout: float = 10, url: str = DIRECTIONS_URL):
        self.api_key = api_key or GOOGLE_MAPS_API_KEY
        self.mode = mode
        self.timeout = timeout
        self.url = url

        if not self.api_key:
            raise ValueError("Google Maps API key not set. Please set GOOGLE_MAPS_API_KEY in the .env file.")

    @classmethod
    def from_policy(cls, policy, api_key: Optional[str] = None, *, mode: str = "driving") -> "DirectionsClient":
        return cls(api_key, mode=mode, timeout=policy.routing_request_timeout_s)

    @staticmethod
    def format_point(point) -> str:
        return f"{point.lat},{point.lng}"

    def fetch_directions(self, origin, destination) -> Dict[str, Any]:
        """Raw Directions JSON for one origin/destination pair."""
        try:
            response = requests.get(
                self.url,
                params={
                    "origin": self.format_point(origin),
                    "destination": self.format_point(destination),
                    "mode": self.mode,
                    "key": self.api_key,
                },
                timeout=self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except requests.RequestException as exc:
            raise RoutingError(f"Directions request failed: {exc}") from exc
        except ValueError as exc:
            raise RoutingError("Directions returned non-JSON response") from exc

    def route(self, origin, destination) -> Optional[RouteResult]:
        """
        RouteProvider contract.

        Returns the first leg of the first route, None when Google has no route.
        """
        data = self.fetch_directions(origin, destination)

        status = data.get("status", "OK")
        if status in NO_ROUTE_STATUSES:
            return None
        if status != "OK":
            raise RoutingError(f"Directions error {status}: {data.get('error_message', 'Unknown error')}")

        routes = data.get("routes") or []
        if not routes:
            logger.debug("Directions returned no routes")
            return None

        legs = routes[0].get("legs") or []
        if not legs:
            return None

        leg = legs[0]
        try:
            return RouteResult(
                distance_m=float(leg["distance"]["value"]),
                duration_s=float(leg["duration"]["value"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise RoutingError(f"Malformed Directions leg: {exc}") from exc
