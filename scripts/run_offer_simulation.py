"""
End-to-end run of one choose-a-driver session without a real backend.

Offers come from a CSV (see generate_mock_candidates.py), polling runs on a
virtual clock, and routing goes to OSRM when OSRM_BASE_URL is set, otherwise
to a straight-line estimate.
"""

import csv
import logging
import os
import random
from typing import Dict, List

from offers.backend_client import BackendError
from offers.models import Candidate, NamedPoint, OfferSnapshot, Point, TripEndpoints
from offers.policy import OfferPolicy
from offers.scheduler import ManualScheduler
from routing.geo import haversine_m
from routing.osrm_client import OSRMClient
from routing.route_service import RouteResult
from selection.controller import SelectionController

PICKUP = NamedPoint("Siam Paragon", Point(13.7462, 100.5347))
DROPOFF = NamedPoint("Chatuchak Park", Point(13.8040, 100.5530))


class CsvOfferBackend:
    """
    Stands in for the offers backend.
    Every poll a few more drivers have made an offer, and everyone drifts a little.
    """
    def __init__(self, rows: List[Dict[str, str]], offers_per_poll: int = 5):
        self.rows = rows
        self.offers_per_poll = offers_per_poll
        self.polls = 0
        self.cancelled = False
        self.accepted = None

    def fetch_offers(self, request_id: str) -> OfferSnapshot:
        if self.cancelled:
            raise BackendError(f"request {request_id} is cancelled")
        self.polls += 1

        visible = self.rows[: self.polls * self.offers_per_poll - self.offers_per_poll]
        candidates = []
        for row in visible:
            row = dict(row)
            row["current_latitude"] = float(row["current_latitude"]) + random.uniform(-0.001, 0.001)
            row["current_longitude"] = float(row["current_longitude"]) + random.uniform(-0.001, 0.001)
            candidates.append(Candidate.from_backend(row))

        return OfferSnapshot(endpoints=TripEndpoints(origin=PICKUP, destination=DROPOFF), candidates=candidates)

    def cancel_request(self, request_id: str) -> None:
        self.cancelled = True

    def update_offer_status(self, request_id, driver_id, offered_price=None) -> bool:
        self.accepted = (driver_id, offered_price)
        return True


class StraightLineRouteProvider:
    """Road distance ~ 1.3 x straight line at an average 30 km/h."""
    detour_factor = 1.3
    speed_m_s = 30 * 1000 / 3600

    def route(self, origin, destination):
        distance = haversine_m(origin.lat, origin.lng, destination.lat, destination.lng) * self.detour_factor
        return RouteResult(distance_m=distance, duration_s=distance / self.speed_m_s)


def load_offer_rows(filepath="mock_candidates_30.csv") -> List[Dict[str, str]]:
    # Resolve the correct path depending on where the user runs the script from.
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    absolute_path = filepath if os.path.isabs(filepath) else os.path.join(base_dir, filepath)

    with open(absolute_path, 'r') as file:
        return list(csv.DictReader(file))


def print_ranked(controller: SelectionController) -> None:
    print(f"  radius {controller.radius_m / 1000:.0f} km -> {len(controller.ranked)} drivers")
    for enriched in controller.ranked[:5]:
        distance = f"{enriched.distance_m / 1000:.2f} km" if enriched.distance_m is not None else "-"
        minutes = enriched.duration_minutes if enriched.duration_minutes is not None else "-"
        print(f"    {enriched.id} {enriched.name:<22} {distance:>9}  {minutes} min  {enriched.price} THB")


def run_simulation():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    print("=== STARTING CHOOSE-OFFER SIMULATION ===")

    rows = load_offer_rows()
    print(f"Loaded {len(rows)} candidate drivers.\n")

    policy = OfferPolicy.from_env()
    backend = CsvOfferBackend(rows)
    route_provider = OSRMClient.from_policy(policy) if os.getenv("OSRM_BASE_URL") else StraightLineRouteProvider()
    scheduler = ManualScheduler(policy.poll_interval_s)

    controller = SelectionController.create(
        "REQ-SIM-1", backend, route_provider, scheduler=scheduler, policy=policy
    )
    controller.start()
    print(f"Initial fetch: {controller.offer_status.value}")

    for _ in range(3):
        scheduler.advance(policy.poll_interval_s)
        print(f"t={scheduler.now:.0f}s status={controller.offer_status.value}")
        print_ranked(controller)

    for radius in policy.allowed_radii_m:
        controller.set_radius(radius)
        print_ranked(controller)

    if not controller.ranked:
        controller.cancel_request()
        print("\nNo driver in range, request cancelled.")
        return

    best = controller.ranked[0]
    controller.tap(best.id)
    controller.tap(best.id)
    controller.confirm()

    print("\n=== SIMULATION COMPLETE ===")
    print(f"Confirmed driver {best.id} ({best.name}) at {backend.accepted[1]} THB")
    print(f"Backend polls: {backend.polls}")

if __name__ == "__main__":
    run_simulation()
