"""
Purpose: Route enrichment for geofenced candidates.
What it does:
Takes the candidates that survived the radius filter and asks the routing
service for the real road distance/duration from each candidate to the pickup.

Rules:
- one routing query per candidate, run concurrently (capped worker pool)
- each query is fault-isolated: error, empty route or deadline falls back to
  the haversine distance with an unknown duration
- the whole batch waits for every query to settle or for the batch deadline
"""

import logging
from concurrent.futures import ThreadPoolExecutor, wait
from typing import List, Optional, Sequence

import requests

from offers.models import EnrichedCandidate, RouteSource
from routing.geofence import distance_to_origin_m
from routing.route_service import RouteProvider, RoutingError

logger = logging.getLogger(__name__)


class RouteEnricher:
    """
    Fan-out / fan-in over a RouteProvider.

    Stateless between calls: every enrich() builds its own worker pool, so
    concurrent enrich() calls never share mutable structures.
    """

    def __init__(self, provider: RouteProvider, *, batch_timeout_s: float = 30.0, max_workers: int = 10):
        if batch_timeout_s <= 0:
            raise ValueError("batch_timeout_s must be > 0")
        if max_workers <= 0:
            raise ValueError("max_workers must be > 0")
        self.provider = provider
        self.batch_timeout_s = batch_timeout_s
        self.max_workers = max_workers

    def enrich(self, candidates: Sequence, origin) -> List[EnrichedCandidate]:
        """
        Args:
            candidates: Candidate objects (already radius filtered)
            origin: pickup point (.lat / .lng)

        Returns:
            EnrichedCandidate list in the same order as `candidates`.
        """
        if not candidates:
            return []

        pool = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(candidates)),
            thread_name_prefix="route-enrich",
        )
        try:
            futures = [pool.submit(self.provider.route, candidate.location, origin) for candidate in candidates]
            done, not_done = wait(futures, timeout=self.batch_timeout_s)
            if not_done:
                logger.warning(
                    f"Routing deadline of {self.batch_timeout_s}s hit, "
                    f"{len(not_done)}/{len(futures)} candidates fall back to straight-line distance"
                )

            enriched = []
            for candidate, future in zip(candidates, futures):
                if future not in done:
                    enriched.append(self._fallback(candidate, origin))
                    continue
                enriched.append(self._settle(candidate, origin, future))
            return enriched
        finally:
            # stragglers are abandoned, not awaited
            pool.shutdown(wait=False, cancel_futures=True)

    def _settle(self, candidate, origin, future) -> EnrichedCandidate:
        try:
            result = future.result()
        except (RoutingError, requests.RequestException) as exc:
            logger.warning(f"Routing failed for candidate {candidate.id}: {exc}")
            return self._fallback(candidate, origin)
        except Exception as exc:
            # one broken provider reply must not sink the batch
            logger.warning(f"Routing provider crashed for candidate {candidate.id}: {exc!r}")
            return self._fallback(candidate, origin)

        if result is None:
            logger.info(f"No route for candidate {candidate.id}, using straight-line distance")
            return self._fallback(candidate, origin)

        return EnrichedCandidate(
            candidate=candidate,
            distance_m=result.distance_m,
            duration_s=result.duration_s,
            route_source=RouteSource.ROUTE,
        )

    @staticmethod
    def _fallback(candidate, origin) -> EnrichedCandidate:
        distance: Optional[float] = distance_to_origin_m(candidate, origin)
        return EnrichedCandidate(
            candidate=candidate,
            distance_m=distance,
            duration_s=None,
            route_source=RouteSource.HAVERSINE,
        )
