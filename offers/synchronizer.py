"""
Purpose: Keeps the candidate set of one request in sync with the backend.
What it does:
- Polls the offer-list endpoint every policy.poll_interval_s through a scheduler
- Guarantees at most one fetch in flight (ticks and manual refreshes alike),
  counting the listener call that follows it
- Replaces the raw candidate set wholesale on every successful fetch
- Populates the trip endpoints once, from the first fetch that carries them
- Treats fetch errors as transient: log, keep the previous set, poll again
- Stops permanently once stop() is called; late results are discarded

Rule: Synchronizer owns fetching and the raw set. Filtering, enrichment and
ranking happen in the listener (the selection controller).
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Callable, List, Optional

import requests

from .backend_client import BackendClient, BackendError
from .models import Candidate, OfferSnapshot, OfferStatus, TripEndpoints

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OfferUpdate:
    """What the listener receives after every applied fetch."""
    status: OfferStatus
    endpoints: Optional[TripEndpoints]
    candidates: List[Candidate] = field(default_factory=list)


UpdateListener = Callable[[OfferUpdate], None]


class OfferSynchronizer:
    """
    Polling loop for one request.

    `in_flight` is a non-blocking lock rather than a shared boolean, so two
    threads can never both believe they own the fetch.
    """

    def __init__(
        self,
        backend: BackendClient,
        request_id: str,
        scheduler,
        listener: Optional[UpdateListener] = None,
    ):
        self.backend = backend
        self.request_id = request_id
        self.scheduler = scheduler
        self.listener = listener

        self._in_flight = threading.Lock()
        self._state_lock = threading.Lock()
        self._active = False
        self._stopped = False

        self._endpoints: Optional[TripEndpoints] = None
        self._candidates: List[Candidate] = []
        self._status = OfferStatus.WAITING

        self.fetch_count = 0
        self.error_count = 0

    # --- Read-only views ---

    @property
    def active(self) -> bool:
        return self._active

    @property
    def in_flight(self) -> bool:
        return self._in_flight.locked()

    @property
    def endpoints(self) -> Optional[TripEndpoints]:
        return self._endpoints

    @property
    def candidates(self) -> List[Candidate]:
        return list(self._candidates)

    @property
    def status(self) -> OfferStatus:
        return self._status

    # --- Lifecycle ---

    def start(self, fetch_now: bool = True) -> None:
        """
        Begin polling. A stopped synchronizer cannot be restarted.
        """
        with self._state_lock:
            if self._stopped:
                raise RuntimeError(f"synchronizer for request {self.request_id} was stopped")
            if self._active:
                return
            self._active = True

        logger.info(f"Polling offers for request {self.request_id} every {self.scheduler.interval_s}s")
        self.scheduler.start(self.tick)
        if fetch_now:
            self.refresh()

    def stop(self) -> None:
        """Stop polling for good. A fetch already in flight completes but is discarded."""
        with self._state_lock:
            if self._stopped:
                return
            self._active = False
            self._stopped = True
            self._status = OfferStatus.STOPPED
        self.scheduler.stop()
        logger.info(f"Stopped polling offers for request {self.request_id}")

    def clear(self) -> None:
        """Drop the working set (request cancelled / completed)."""
        with self._state_lock:
            self._endpoints = None
            self._candidates = []

    # --- Fetching ---

    def tick(self) -> bool:
        """Scheduler entry point. Returns True when a fetch was applied."""
        if not self._active:
            return False
        return self._fetch()

    def refresh(self) -> bool:
        """User-triggered refresh, same in-flight guard as a tick."""
        if not self._active:
            return False
        return self._fetch()

    def _fetch(self) -> bool:
        if not self._in_flight.acquire(blocking=False):
            logger.debug(f"Fetch for request {self.request_id} already in flight, skipping")
            return False

        # held until the listener returns: a tick never overlaps the previous recompute
        try:
            try:
                self.fetch_count += 1
                snapshot = self.backend.fetch_offers(self.request_id)
            except (BackendError, requests.RequestException, ValueError) as e:
                self.error_count += 1
                logger.warning(f"Offer fetch for request {self.request_id} failed, will retry: {e}")
                return False

            update = self._apply(snapshot)
            if update is None:
                return False

            if self.listener is not None:
                self.listener(update)
            return True
        finally:
            self._in_flight.release()

    def _apply(self, snapshot: OfferSnapshot) -> Optional[OfferUpdate]:
        with self._state_lock:
            if not self._active:
                logger.debug(f"Discarding offers for stopped request {self.request_id}")
                return None

            if self._endpoints is None and snapshot.endpoints is not None:
                self._endpoints = snapshot.endpoints

            self._candidates = list(snapshot.candidates)
            self._status = OfferStatus.AVAILABLE if snapshot.has_offers else OfferStatus.WAITING

            return OfferUpdate(
                status=self._status,
                endpoints=self._endpoints,
                candidates=list(self._candidates),
            )
