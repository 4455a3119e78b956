"""
Purpose: Domain models for the offers capability.
What it does:
- Defines core data structures:
- Point (lat/lng) and NamedPoint (a point with an address label)
- TripEndpoints (pickup + dropoff of the active request)
- Candidate (a driver offer as received from the backend)
- EnrichedCandidate (candidate + real route distance/duration)
- OfferSnapshot (one backend fetch result)

Defines enums/constants:
- RadiusMeters = 1 km | 5 km | 10 km | 20 km | 30 km
- OfferStatus = WAITING | AVAILABLE | STOPPED

Rule: No HTTP calls, no filtering/ranking logic. Models only.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, List, Mapping, Optional

from routing.geo import is_valid_coordinate


class RadiusMeters(IntEnum):
    KM_1 = 1000
    KM_5 = 5000
    KM_10 = 10000
    KM_20 = 20000
    KM_30 = 30000

    @property
    def label(self) -> str:
        return f"{self.value // 1000} km"


class OfferStatus(str, Enum):
    """
    What the selection screen should show.
    WAITING is "no offers yet", which is not an error.
    """
    WAITING = "waiting"
    AVAILABLE = "available"
    STOPPED = "stopped"


class RouteSource(str, Enum):
    ROUTE = "route"          # distance/duration came from the routing service
    HAVERSINE = "haversine"  # straight-line fallback, duration unknown


def _to_float(value: Any) -> Optional[float]:
    #backend sends numbers as strings for DECIMAL columns
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ValueError(f"expected a number, got {value!r}")
    return float(value)


@dataclass(frozen=True)
class Point:
    lat: float
    lng: float

    def is_valid(self) -> bool:
        return is_valid_coordinate(self.lat, self.lng)

    def as_tuple(self):
        return (self.lat, self.lng)


@dataclass(frozen=True)
class NamedPoint:
    name: str
    point: Point

    @property
    def lat(self) -> float:
        return self.point.lat

    @property
    def lng(self) -> float:
        return self.point.lng


@dataclass(frozen=True)
class TripEndpoints:
    """
    Pickup (origin) and dropoff (destination) of the active request.
    Populated once from the first poll that carries them.
    """
    origin: NamedPoint
    destination: NamedPoint

    @classmethod
    def from_backend(cls, info: Mapping[str, Any]) -> TripEndpoints:
        """Build from the backend's PickupDropoffInfo block."""
        try:
            origin = Point(_to_float(info["pickup_lat"]), _to_float(info["pickup_long"]))
            destination = Point(_to_float(info["dropoff_lat"]), _to_float(info["dropoff_long"]))
        except KeyError as exc:
            raise ValueError(f"PickupDropoffInfo is missing {exc}") from exc

        return cls(
            origin=NamedPoint(name=info.get("location_from") or "", point=origin),
            destination=NamedPoint(name=info.get("location_to") or "", point=destination),
        )


@dataclass(frozen=True)
class Candidate:
    """
    A driver offer on the active request at a specific poll.
    Identity is `id`; `price` may differ between polls.
    """
    id: str
    name: str
    rating: float
    location: Point
    price: Optional[float] = None

    # echoed back by the backend, kept for the payment hand-off
    offer_id: Optional[str] = None
    request_id: Optional[str] = None
    customer_id: Optional[str] = None

    @classmethod
    def from_backend(cls, row: Mapping[str, Any]) -> Candidate:
        """
        Build a Candidate from one row of the offer-list response.
        Raises ValueError when the row has no driver id or no usable location.
        """
        driver_id = row.get("driver_id")
        if driver_id is None or driver_id == "":
            raise ValueError("offer row has no driver_id")

        lat = _to_float(row.get("current_latitude"))
        lng = _to_float(row.get("current_longitude"))
        if lat is None or lng is None:
            raise ValueError(f"offer row for driver {driver_id} has no location")

        name = f"{row.get('first_name') or ''} {row.get('last_name') or ''}".strip()

        return cls(
            id=str(driver_id),
            name=name,
            rating=_to_float(row.get("average_rating")) or 0.0,
            location=Point(lat, lng),
            price=_to_float(row.get("offered_price")),
            offer_id=_optional_str(row.get("offer_id")),
            request_id=_optional_str(row.get("request_id")),
            customer_id=_optional_str(row.get("customer_id")),
        )


def _optional_str(value: Any) -> Optional[str]:
    return None if value is None else str(value)


@dataclass(frozen=True)
class EnrichedCandidate:
    """
    Candidate plus travel metrics to the pickup point.
    distance_m / duration_s are None when nothing is known; ranking copes.
    """
    candidate: Candidate
    distance_m: Optional[float]
    duration_s: Optional[float]
    route_source: RouteSource = RouteSource.ROUTE

    @property
    def id(self) -> str:
        return self.candidate.id

    @property
    def name(self) -> str:
        return self.candidate.name

    @property
    def price(self) -> Optional[float]:
        return self.candidate.price

    @property
    def duration_minutes(self) -> Optional[int]:
        if self.duration_s is None:
            return None
        return int(round(self.duration_s / 60.0))


@dataclass(frozen=True)
class OfferSnapshot:
    """Output of one offer-list fetch."""
    endpoints: Optional[TripEndpoints]
    candidates: List[Candidate] = field(default_factory=list)

    @property
    def has_offers(self) -> bool:
        return len(self.candidates) > 0
