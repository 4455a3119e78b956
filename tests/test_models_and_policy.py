import pytest

from offers.models import Candidate, EnrichedCandidate, OfferSnapshot, Point, RadiusMeters, TripEndpoints
from offers.policy import OfferPolicy, default_offer_policy

from .fakes import ORIGIN, make_candidate


def test_candidate_from_backend_converts_strings():
    candidate = Candidate.from_backend({
        "driver_id": 5,
        "first_name": "Niran",
        "last_name": "Boonmee",
        "current_latitude": "13.75",
        "current_longitude": "100.49",
        "average_rating": "3.6667",
        "offered_price": "1200.00",
    })

    assert candidate.id == "5"
    assert candidate.name == "Niran Boonmee"
    assert candidate.location == Point(13.75, 100.49)
    assert candidate.rating == pytest.approx(3.6667)
    assert candidate.price == 1200.0
    assert candidate.request_id is None


@pytest.mark.parametrize("row", [
    {"current_latitude": 13.7, "current_longitude": 100.5},
    {"driver_id": "", "current_latitude": 13.7, "current_longitude": 100.5},
    {"driver_id": 1, "current_latitude": "", "current_longitude": 100.5},
    {"driver_id": 1, "current_latitude": "north", "current_longitude": 100.5},
])
def test_candidate_from_backend_rejects_unusable_rows(row):
    with pytest.raises(ValueError):
        Candidate.from_backend(row)


def test_trip_endpoints_from_backend():
    endpoints = TripEndpoints.from_backend({
        "pickup_lat": 13.7, "pickup_long": 100.5, "location_from": None,
        "dropoff_lat": "13.8", "dropoff_long": "100.6", "location_to": "Airport",
    })

    assert endpoints.origin.name == ""
    assert (endpoints.origin.lat, endpoints.origin.lng) == (13.7, 100.5)
    assert endpoints.destination.point == Point(13.8, 100.6)


def test_enriched_candidate_views():
    enriched = EnrichedCandidate(candidate=make_candidate("c1", ORIGIN, price=900.0), distance_m=1500.0, duration_s=89.0)

    assert enriched.id == "c1"
    assert enriched.price == 900.0
    assert enriched.duration_minutes == 1
    assert OfferSnapshot(endpoints=None).has_offers is False


def test_radius_labels():
    assert [r.value for r in RadiusMeters] == [1000, 5000, 10000, 20000, 30000]
    assert RadiusMeters.KM_20.label == "20 km"


def test_default_policy():
    policy = default_offer_policy()

    assert policy.poll_interval_s == 5.0
    assert policy.allowed_radii_m == (1000, 5000, 10000, 20000, 30000)
    assert policy.default_radius_m == 5000
    assert policy.routing_timeout_s == 30.0


@pytest.mark.parametrize("overrides", [
    {"poll_interval_s": 0},
    {"allowed_radii_m": ()},
    {"allowed_radii_m": (0, 5000)},
    {"default_radius_m": 7000},
    {"routing_timeout_s": -1},
    {"max_concurrent_routes": 0},
])
def test_policy_validation(overrides):
    with pytest.raises(ValueError):
        OfferPolicy(**overrides).validate()


def test_policy_from_env(monkeypatch):
    monkeypatch.setenv("OFFER_POLL_INTERVAL_S", "2.5")
    monkeypatch.setenv("OFFER_ALLOWED_RADII_M", "500, 2000")
    monkeypatch.setenv("OFFER_DEFAULT_RADIUS_M", "500")
    monkeypatch.setenv("OFFER_ROUTING_TIMEOUT_S", "8")
    monkeypatch.delenv("OFFER_ROUTING_REQUEST_TIMEOUT_S", raising=False)
    monkeypatch.delenv("OFFER_MAX_CONCURRENT_ROUTES", raising=False)

    policy = OfferPolicy.from_env()

    assert policy.poll_interval_s == 2.5
    assert policy.allowed_radii_m == (500, 2000)
    assert policy.default_radius_m == 500
    assert policy.routing_timeout_s == 8.0
    assert policy.max_concurrent_routes == 10


def test_policy_from_env_rejects_garbage(monkeypatch):
    monkeypatch.setenv("OFFER_POLL_INTERVAL_S", "often")

    with pytest.raises(ValueError):
        OfferPolicy.from_env()
