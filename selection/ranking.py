#Purpose: Ranking model (the "who is closest" layer).
#Takes enriched candidates (already geofenced) and orders them for display.
#Rules:
#ascending by road distance
#unknown distance sorts last
#ties keep their input order (sorted() is stable)

import math
from typing import List, Sequence

from offers.models import EnrichedCandidate


def _distance_key(candidate: EnrichedCandidate) -> float:
    return math.inf if candidate.distance_m is None else candidate.distance_m


def rank_candidates(enriched: Sequence[EnrichedCandidate]) -> List[EnrichedCandidate]:
    """Return a new list, closest first. The input is not touched."""
    return sorted(enriched, key=_distance_key)
