"""
Purpose: Orchestrator for the choose-a-driver step (the "glue").
What it does:
Owns everything that changes while the customer picks a driver for one request:
- the raw candidates from the last successful poll
- the radius the user picked
- the ranked list shown on screen
- the SelectionState

Every poll result and every radius change goes through _recompute(), the one
place that runs geofence -> route enrichment -> ranking. Radius changes reuse
the last fetched candidates and never trigger a backend fetch.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, List, Optional

import requests

from offers.backend_client import BackendClient, BackendError
from offers.models import Candidate, EnrichedCandidate, OfferStatus, TripEndpoints
from offers.payment import BackendPaymentHandoff, PaymentHandoff
from offers.policy import OfferPolicy, default_offer_policy
from offers.scheduler import IntervalScheduler
from offers.synchronizer import OfferSynchronizer, OfferUpdate
from routing.enrichment import RouteEnricher
from routing.geofence import filter_by_radius
from routing.route_service import RouteProvider

from .ranking import rank_candidates
from .state_machine import (
    SelectionPhase,
    SelectionState,
    SelectionStateException,
    transition_back_to_highlighted,
    transition_on_tap,
    transition_to_cancelled,
    transition_to_confirmed,
)

logger = logging.getLogger(__name__)


class PaymentHandoffError(Exception):
    """Raised when the confirmed offer could not be handed to payment. Selection is back to Highlighted."""
    pass


class CancellationError(Exception):
    """Raised when the backend did not cancel the request. Selection is unchanged."""
    pass


SelectionListener = Callable[["SelectionController"], None]


class SelectionController:
    """
    State machine driving highlight / confirm / cancel for one request.
    """

    def __init__(
        self,
        request_id: str,
        backend: BackendClient,
        enricher: RouteEnricher,
        payment: Optional[PaymentHandoff] = None,
        scheduler=None,
        policy: Optional[OfferPolicy] = None,
    ):
        self.policy = policy or default_offer_policy()
        self.request_id = request_id
        self.backend = backend
        self.enricher = enricher
        self.payment = payment or BackendPaymentHandoff(backend)

        scheduler = scheduler or IntervalScheduler(self.policy.poll_interval_s)
        self.synchronizer = OfferSynchronizer(backend, request_id, scheduler, listener=self._on_offers)

        self._lock = threading.RLock()
        # confirm / cancel network calls never interleave
        self._action_lock = threading.Lock()
        # one enrichment batch at a time keeps routing calls under max_concurrent_routes
        self._enrich_lock = threading.Lock()

        self._state = SelectionState.idle()
        self._radius_m = self.policy.default_radius_m
        self._raw: List[Candidate] = []
        self._endpoints: Optional[TripEndpoints] = None
        self._ranked: List[EnrichedCandidate] = []
        self._offer_status = OfferStatus.WAITING
        self._highlighted_snapshot: Optional[Candidate] = None
        self._generation = 0
        self._confirming = False
        self._closed = False
        self._listeners: List[SelectionListener] = []

    @classmethod
    def create(
        cls,
        request_id: str,
        backend: BackendClient,
        route_provider: RouteProvider,
        *,
        payment: Optional[PaymentHandoff] = None,
        scheduler=None,
        policy: Optional[OfferPolicy] = None,
    ) -> SelectionController:
        """Wire a controller with an enricher configured from the policy."""
        policy = policy or default_offer_policy()
        enricher = RouteEnricher(
            route_provider,
            batch_timeout_s=policy.routing_timeout_s,
            max_workers=policy.max_concurrent_routes,
        )
        return cls(request_id, backend, enricher, payment=payment, scheduler=scheduler, policy=policy)

    # --- Read-only views ---

    @property
    def state(self) -> SelectionState:
        return self._state

    @property
    def radius_m(self) -> int:
        return self._radius_m

    @property
    def ranked(self) -> List[EnrichedCandidate]:
        return list(self._ranked)

    @property
    def endpoints(self) -> Optional[TripEndpoints]:
        return self._endpoints

    @property
    def offer_status(self) -> OfferStatus:
        return self._offer_status

    @property
    def selected_candidate(self) -> Optional[EnrichedCandidate]:
        with self._lock:
            return self._find_ranked(self._state.candidate_id)

    def add_listener(self, listener: SelectionListener) -> None:
        self._listeners.append(listener)

    # --- Lifecycle ---

    def start(self, fetch_now: bool = True) -> None:
        self.synchronizer.start(fetch_now=fetch_now)

    def refresh(self) -> bool:
        """Manual refresh. Skipped while a fetch is in flight or after shutdown."""
        if self._closed:
            return False
        return self.synchronizer.refresh()

    def close(self) -> None:
        """Request completed or screen left: stop polling and drop the working set."""
        self.synchronizer.stop()
        self.synchronizer.clear()
        with self._lock:
            self._closed = True
            self._teardown()
        self._notify()

    # --- User actions ---

    def set_radius(self, radius_m: int) -> None:
        """
        Change the geofence radius. SelectionState is untouched and no fetch
        is made: the last fetched candidates are filtered again.
        """
        radius_m = int(radius_m)
        if radius_m not in self.policy.allowed_radii_m:
            raise ValueError(f"radius {radius_m} is not one of {self.policy.allowed_radii_m}")

        with self._lock:
            if self._closed:
                raise SelectionStateException("request is closed")
            self._radius_m = radius_m
        logger.info(f"Radius for request {self.request_id} set to {radius_m} m")
        self._recompute()

    def tap(self, candidate_id: str) -> SelectionState:
        """Tap on a ranked candidate: highlight it, or open confirmation on a second tap."""
        candidate_id = str(candidate_id)
        with self._lock:
            next_state = transition_on_tap(self._state, candidate_id)
            ranked = self._find_ranked(candidate_id)
            if ranked is None:
                raise SelectionStateException(f"Candidate {candidate_id} is not in the current list")

            if next_state.phase == SelectionPhase.HIGHLIGHTED:
                self._highlighted_snapshot = ranked.candidate
            self._state = next_state
        self._notify()
        return next_state

    def cancel_confirmation(self) -> SelectionState:
        """Back out of the confirmation surface only."""
        with self._lock:
            if self._confirming:
                raise SelectionStateException("Confirmation already submitted")
            self._state = transition_back_to_highlighted(self._state)
            state = self._state
        self._notify()
        return state

    def confirm(self) -> SelectionState:
        """
        Confirm the pending candidate and hand it to payment.

        On success polling stops and the state becomes Confirmed.
        On failure the state goes back to Highlighted and PaymentHandoffError is raised.
        """
        with self._action_lock:
            with self._lock:
                if self._state.phase != SelectionPhase.CONFIRM_PENDING:
                    raise SelectionStateException(f"Nothing to confirm while {self._state.phase.value}")
                candidate_id = self._state.candidate_id
                agreed_price = self._agreed_price(candidate_id)
                self._confirming = True

            error: Optional[Exception] = None
            try:
                ok = self.payment.hand_off(self.request_id, candidate_id, agreed_price)
            except Exception as e:
                # any hand-off failure reverts to Highlighted below
                ok = False
                error = e
            finally:
                with self._lock:
                    self._confirming = False

            with self._lock:
                if ok:
                    self._state = transition_to_confirmed(self._state)
                else:
                    self._state = transition_back_to_highlighted(self._state)
                state = self._state

            if ok:
                self.synchronizer.stop()
                logger.info(f"Request {self.request_id} confirmed with driver {candidate_id} at {agreed_price}")
                self._notify()
                return state

            logger.error(f"Payment hand-off for request {self.request_id} failed: {error or 'rejected'}")
            self._notify()
            raise PaymentHandoffError(f"Could not confirm driver {candidate_id}: {error or 'rejected by backend'}") from error

    def cancel_request(self) -> SelectionState:
        """
        Cancel the whole request on the backend. Terminal on success; a
        second call is a no-op. On failure CancellationError is raised and
        the state is left as it was so the user can retry.
        """
        with self._action_lock:
            with self._lock:
                if self._state.phase == SelectionPhase.CANCELLED:
                    return self._state

            try:
                self.backend.cancel_request(self.request_id)
            except (BackendError, requests.RequestException) as e:
                logger.error(f"Cancelling request {self.request_id} failed: {e}")
                raise CancellationError(f"Could not cancel request {self.request_id}: {e}") from e

            self.synchronizer.stop()
            self.synchronizer.clear()
            with self._lock:
                self._state = transition_to_cancelled(self._state)
                self._closed = True
                self._teardown()
                state = self._state

        logger.info(f"Request {self.request_id} cancelled")
        self._notify()
        return state

    # --- Pipeline ---

    def _on_offers(self, update: OfferUpdate) -> None:
        with self._lock:
            if self._closed:
                return
            self._raw = list(update.candidates)
            if self._endpoints is None and update.endpoints is not None:
                self._endpoints = update.endpoints
            self._offer_status = update.status
        self._recompute()

    def _recompute(self) -> bool:
        """
        geofence -> enrich -> rank over the current raw set and radius.
        A result is dropped if another recompute started meanwhile.
        """
        with self._lock:
            if self._closed:
                return False
            self._generation += 1
            generation = self._generation
            raw = list(self._raw)
            radius_m = self._radius_m
            origin = self._endpoints.origin.point if self._endpoints is not None else None

        filtered = filter_by_radius(raw, origin, radius_m)
        enriched = []
        if filtered:
            with self._enrich_lock:
                if self._is_stale(generation):
                    logger.debug(f"Skipping superseded enrichment for request {self.request_id}")
                    return False
                enriched = self.enricher.enrich(filtered, origin)
        ranked = rank_candidates(enriched)

        with self._lock:
            if self._is_stale(generation):
                logger.debug(f"Dropping superseded ranking for request {self.request_id}")
                return False
            self._ranked = ranked

        self._notify()
        return True

    # --- Helpers ---

    def _is_stale(self, generation: int) -> bool:
        with self._lock:
            return generation != self._generation or self._closed

    def _find_ranked(self, candidate_id: Optional[str]) -> Optional[EnrichedCandidate]:
        if candidate_id is None:
            return None
        for enriched in self._ranked:
            if enriched.id == candidate_id:
                return enriched
        return None

    def _agreed_price(self, candidate_id: str) -> Optional[float]:
        # latest poll wins; the highlight snapshot covers a driver that just dropped out
        for candidate in self._raw:
            if candidate.id == candidate_id:
                return candidate.price
        if self._highlighted_snapshot is not None and self._highlighted_snapshot.id == candidate_id:
            return self._highlighted_snapshot.price
        return None

    def _teardown(self) -> None:
        self._generation += 1
        self._raw = []
        self._ranked = []
        self._endpoints = None
        self._highlighted_snapshot = None
        self._offer_status = OfferStatus.STOPPED

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
