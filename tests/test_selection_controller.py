import threading
from dataclasses import replace

import pytest

from offers.backend_client import BackendError
from offers.models import OfferSnapshot, OfferStatus
from routing.geo import haversine_m
from routing.route_service import RouteResult, RoutingError
from selection.controller import CancellationError, PaymentHandoffError
from selection.state_machine import SelectionPhase, SelectionState, SelectionStateException

from .fakes import FakeBackend, FakePayment, FakeRouteProvider, ORIGIN, candidates_at, make_endpoints


def offers(*distances):
    return OfferSnapshot(endpoints=make_endpoints(), candidates=candidates_at(*distances))


@pytest.fixture
def outage():
    return FakeRouteProvider(error=RoutingError("routing outage"))


@pytest.fixture
def started(make_controller, outage):
    """Controller polling a backend with drivers at 300, 1200 and 2500 m."""
    backend = FakeBackend([offers(300, 1200, 2500)])
    payment = FakePayment()
    controller = make_controller(backend, outage, payment=payment)
    controller.start()
    return controller, backend, payment


def test_routing_outage_scenario(make_controller, outage):
    """
    Pickup (13.7, 100.5), radius 5 km, drivers at 2000 / 4999 / 5000 / 5001 m,
    routing service down: the 5001 m driver is filtered out, the rest fall back
    to straight-line distance and come out closest first.
    """
    backend = FakeBackend([offers(5001, 5000, 2000, 4999)])
    controller = make_controller(backend, outage)

    controller.start()

    ranked = controller.ranked
    assert [c.id for c in ranked] == ["d2000", "d4999", "d5000"]
    for enriched in ranked:
        location = enriched.candidate.location
        assert enriched.distance_m == haversine_m(ORIGIN.lat, ORIGIN.lng, location.lat, location.lng)
        assert enriched.duration_s is None
    assert controller.offer_status == OfferStatus.AVAILABLE


def test_radius_change_refilters_without_network(make_controller, outage):
    backend = FakeBackend([offers(5001, 5000, 2000, 4999)])
    controller = make_controller(backend, outage)
    controller.start()
    fetches = backend.fetch_calls
    routing_calls = len(outage.calls)

    controller.set_radius(1000)

    assert controller.ranked == []
    assert controller.radius_m == 1000
    assert backend.fetch_calls == fetches
    assert len(outage.calls) == routing_calls


def test_radius_change_keeps_selection(started):
    controller, backend, _ = started
    controller.tap("d1200")

    controller.set_radius(20000)

    assert controller.state == SelectionState.highlighted("d1200")
    assert [c.id for c in controller.ranked] == ["d300", "d1200", "d2500"]


def test_radius_must_be_an_allowed_value(started):
    controller, _, _ = started

    with pytest.raises(ValueError):
        controller.set_radius(7000)
    assert controller.radius_m == 5000


def test_ranked_list_uses_route_distance_when_available(make_controller):
    near, far = candidates_at(1000, 3000)
    provider = FakeRouteProvider(results={
        # the closer driver has to go around a river
        (near.location.lat, near.location.lng): RouteResult(4500.0, 900.0),
        (far.location.lat, far.location.lng): RouteResult(3200.0, 420.0),
    })
    backend = FakeBackend([OfferSnapshot(endpoints=make_endpoints(), candidates=[near, far])])
    controller = make_controller(backend, provider)

    controller.start()

    assert [c.id for c in controller.ranked] == ["d3000", "d1000"]
    assert controller.ranked[0].duration_minutes == 7


def test_no_offers_yet(make_controller, outage):
    controller = make_controller(FakeBackend([offers()]), outage)

    controller.start()

    assert controller.offer_status == OfferStatus.WAITING
    assert controller.ranked == []
    assert controller.endpoints == make_endpoints()


def test_tap_highlights_then_opens_confirmation(started):
    controller, _, _ = started

    assert controller.state == SelectionState.idle()
    assert controller.tap("d300") == SelectionState.highlighted("d300")
    assert controller.selected_candidate.id == "d300"

    # tapping another driver moves the highlight
    assert controller.tap("d1200") == SelectionState.highlighted("d1200")

    # second tap on the same driver opens the confirmation
    assert controller.tap("d1200") == SelectionState.confirm_pending("d1200")

    with pytest.raises(SelectionStateException):
        controller.tap("d300")


def test_tap_on_unknown_candidate_is_rejected(started):
    controller, _, _ = started

    with pytest.raises(SelectionStateException):
        controller.tap("ghost")
    assert controller.state == SelectionState.idle()


def test_cancel_confirmation_goes_back_to_highlighted(started):
    controller, _, _ = started
    controller.tap("d300")
    controller.tap("d300")

    assert controller.cancel_confirmation() == SelectionState.highlighted("d300")

    with pytest.raises(SelectionStateException):
        controller.cancel_confirmation()


def test_confirm_hands_off_and_stops_polling(started, scheduler):
    controller, backend, payment = started
    controller.tap("d1200")
    controller.tap("d1200")

    state = controller.confirm()

    assert state == SelectionState.confirmed("d1200")
    assert payment.calls == [("REQ-1", "d1200", 500.0)]
    assert not controller.synchronizer.active

    fetches = backend.fetch_calls
    scheduler.advance(60)
    assert backend.fetch_calls == fetches


def test_confirm_uses_latest_polled_price(make_controller, outage, scheduler):
    first = offers(300)
    repriced = OfferSnapshot(
        endpoints=make_endpoints(),
        candidates=[replace(first.candidates[0], price=650.0)],
    )
    backend = FakeBackend([first, repriced])
    payment = FakePayment()
    controller = make_controller(backend, outage, payment=payment)
    controller.start()
    controller.tap("d300")
    controller.tap("d300")

    scheduler.advance(5)
    controller.confirm()

    assert payment.calls == [("REQ-1", "d300", 650.0)]


@pytest.mark.parametrize("outcome", [False, BackendError("payment service down"), RuntimeError("payment down")])
def test_failed_hand_off_returns_to_highlighted(make_controller, outage, outcome):
    backend = FakeBackend([offers(300, 1200)])
    controller = make_controller(backend, outage, payment=FakePayment(outcome))
    controller.start()
    controller.tap("d300")
    controller.tap("d300")

    with pytest.raises(PaymentHandoffError):
        controller.confirm()

    assert controller.state == SelectionState.highlighted("d300")
    assert controller.synchronizer.active


def test_confirm_requires_open_confirmation(started):
    controller, _, payment = started
    controller.tap("d300")

    with pytest.raises(SelectionStateException):
        controller.confirm()
    assert payment.calls == []


def test_cancel_request_is_terminal_and_idempotent(started, scheduler):
    controller, backend, _ = started
    controller.tap("d300")

    first = controller.cancel_request()
    second = controller.cancel_request()

    assert first == second == SelectionState.cancelled()
    assert backend.cancel_calls == 1
    assert controller.ranked == []
    assert controller.endpoints is None
    assert controller.offer_status == OfferStatus.STOPPED

    fetches = backend.fetch_calls
    scheduler.advance(60)
    assert backend.fetch_calls == fetches

    with pytest.raises(SelectionStateException):
        controller.tap("d300")
    with pytest.raises(SelectionStateException):
        controller.set_radius(1000)


def test_failed_cancel_leaves_state_for_retry(started):
    controller, backend, _ = started
    controller.tap("d300")
    controller.tap("d300")
    backend.cancel_error = BackendError("HTTP 500")

    with pytest.raises(CancellationError):
        controller.cancel_request()

    assert controller.state == SelectionState.confirm_pending("d300")
    assert controller.synchronizer.active

    backend.cancel_error = None
    assert controller.cancel_request() == SelectionState.cancelled()
    assert backend.cancel_calls == 2


def test_cancel_after_confirm(started):
    controller, _, _ = started
    controller.tap("d300")
    controller.tap("d300")
    controller.confirm()

    assert controller.cancel_request().phase == SelectionPhase.CANCELLED


def test_close_tears_down_without_backend_call(started, scheduler):
    controller, backend, _ = started

    controller.close()

    assert backend.cancel_calls == 0
    assert controller.ranked == []
    assert not controller.synchronizer.active
    assert controller.refresh() is False


def test_superseded_ranking_is_dropped(make_controller):
    """
    A poll's enrichment is still running when the user shrinks the radius.
    The slow result belongs to the old radius and must not overwrite the new list.
    """
    (driver,) = candidates_at(4000)
    release = threading.Event()
    entered = threading.Event()

    class SlowProvider:
        def route(self, origin, destination):
            entered.set()
            release.wait(5)
            return RouteResult(4100.0, 500.0)

    backend = FakeBackend([OfferSnapshot(endpoints=make_endpoints(), candidates=[driver])])
    controller = make_controller(backend, SlowProvider())

    poll = threading.Thread(target=controller.start)
    poll.start()
    assert entered.wait(2)

    controller.set_radius(1000)
    release.set()
    poll.join(5)

    assert controller.radius_m == 1000
    assert controller.ranked == []


def test_slow_routing_keeps_one_batch_in_flight(make_controller):
    """
    Routing is slower than the poll interval. Ticks and a radius change that
    arrive meanwhile must not start a second batch of routing calls.
    """
    release = threading.Event()
    saturated = threading.Event()
    lock = threading.Lock()
    load = {"now": 0, "peak": 0}

    class SlowProvider:
        def route(self, origin, destination):
            with lock:
                load["now"] += 1
                load["peak"] = max(load["peak"], load["now"])
                if load["now"] == 4:
                    saturated.set()
            release.wait(5)
            with lock:
                load["now"] -= 1
            return RouteResult(1000.0, 120.0)

    backend = FakeBackend([offers(500, 1000, 1500, 2000, 2500, 3000)])
    controller = make_controller(backend, SlowProvider())
    controller.start(fetch_now=False)

    poll = threading.Thread(target=controller.refresh)
    poll.start()
    assert saturated.wait(2)

    for _ in range(3):
        assert controller.synchronizer.tick() is False
    radius_change = threading.Thread(target=controller.set_radius, args=(10000,))
    radius_change.start()

    release.set()
    poll.join(5)
    radius_change.join(5)

    # the enricher in these tests runs at most 4 workers
    assert load["peak"] <= 4
    assert backend.fetch_calls == 1
    assert controller.radius_m == 10000
    assert len(controller.ranked) == 6


def test_listeners_see_every_update(started):
    controller, _, _ = started
    seen = []
    controller.add_listener(lambda c: seen.append((c.state.phase, len(c.ranked))))

    controller.set_radius(1000)
    controller.tap("d300")

    assert seen == [(SelectionPhase.IDLE, 1), (SelectionPhase.HIGHLIGHTED, 1)]
