"""
Offers domain package.

Public API:
- Domain models: Point, TripEndpoints, Candidate, EnrichedCandidate, RadiusMeters, OfferStatus
- Configuration: OfferPolicy
- Backend access: BackendClient, BackendError, BackendPaymentHandoff
- Polling: OfferSynchronizer, IntervalScheduler, ManualScheduler
"""
from .models import (
    Candidate,
    EnrichedCandidate,
    NamedPoint,
    OfferSnapshot,
    OfferStatus,
    Point,
    RadiusMeters,
    RouteSource,
    TripEndpoints,
)
from .policy import OfferPolicy, default_offer_policy
from .backend_client import BackendClient, BackendError
from .payment import BackendPaymentHandoff, PaymentHandoff
from .scheduler import IntervalScheduler, ManualScheduler
from .synchronizer import OfferSynchronizer, OfferUpdate

__all__ = ["Candidate",
           "EnrichedCandidate",
           "NamedPoint",
           "OfferSnapshot",
           "OfferStatus",
           "Point",
           "RadiusMeters",
           "RouteSource",
           "TripEndpoints",
           "OfferPolicy",
           "default_offer_policy",
           "BackendClient",
           "BackendError",
           "BackendPaymentHandoff",
           "PaymentHandoff",
           "IntervalScheduler",
           "ManualScheduler",
           "OfferSynchronizer",
           "OfferUpdate",
           ]
