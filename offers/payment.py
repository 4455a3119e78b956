"""
Purpose: Payment hand-off for a confirmed offer.
What it does:
Tells the backend which offer the customer agreed to, so the payment surface
can take over. Payment processing itself happens elsewhere.
"""

import logging
from typing import Optional, Protocol

import requests

from .backend_client import BackendClient, BackendError

logger = logging.getLogger(__name__)


class PaymentHandoff(Protocol):
    def hand_off(self, request_id: str, candidate_id: str, agreed_price: Optional[float]) -> bool:
        ...


class BackendPaymentHandoff:
    """
    Hand-off backed by the offer-status endpoint.
    Returns True on success, False when the backend refused or was unreachable.
    """

    def __init__(self, backend: BackendClient):
        self.backend = backend

    def hand_off(self, request_id: str, candidate_id: str, agreed_price: Optional[float]) -> bool:
        try:
            return self.backend.update_offer_status(request_id, candidate_id, agreed_price)
        except (BackendError, requests.RequestException) as e:
            logger.error(f"Payment hand-off failed for request {request_id}, driver {candidate_id}: {e}")
            return False
