#Purpose: The backend "adapter/client" for the choose-a-driver step.
#Sole responsibility: talk to the offers backend via HTTP and return normalized outputs.
#Encapsulates backend-specific details:
#URL construction (/offer/chooseoffer, /request/cancel_request, /offer/update_offer_status)
#timeouts and error handling
#parsing the {"Status", "Result", "PickupDropoffInfo"} envelope into OfferSnapshot
#It should not contain filtering, ranking or selection rules.

from dotenv import load_dotenv
import logging
import os
from typing import Any, Dict, List, Optional

import requests

from .models import Candidate, OfferSnapshot, TripEndpoints

# Example in .env:
# BACKEND_BASE_URL=http://192.168.1.10:4000
load_dotenv()
BACKEND_BASE_URL = os.getenv("BACKEND_BASE_URL")

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Raised when the backend cannot be reached or rejects a call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BackendClient:
    """
    HTTP client for the offer-list, cancel-request and offer-status endpoints.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 10, session: Optional[requests.Session] = None):
        self.base_url = (base_url or BACKEND_BASE_URL or "").rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()

        if not self.base_url:
            raise ValueError("Backend base URL not set. Please set BACKEND_BASE_URL in the .env file.")

    #----------------
    # Internal helpers
    #----------------
    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, **kwargs) -> Dict[str, Any]:
        """
        Perform one call and return the decoded JSON envelope.
        Any transport error, non-2xx status, non-JSON body or Status=false
        becomes a BackendError.
        """
        try:
            response = self.session.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as exc:
            raise BackendError(f"{method} {path} failed: {exc}") from exc

        content_type = response.headers.get("content-type", "")
        data: Dict[str, Any] = {}
        if "application/json" in content_type:
            try:
                data = response.json()
            except ValueError as exc:
                raise BackendError(f"{method} {path} returned invalid JSON", response.status_code) from exc

        if not response.ok:
            message = data.get("Message") or data.get("Error") or response.reason
            raise BackendError(f"{method} {path} -> HTTP {response.status_code}: {message}", response.status_code)

        if "application/json" not in content_type:
            raise BackendError(f"{method} {path} returned non-JSON response ({content_type or 'no content-type'})",
                               response.status_code)

        if not isinstance(data, dict):
            raise BackendError(f"{method} {path} returned an unexpected payload", response.status_code)

        if data.get("Status") is False:
            message = data.get("Message") or data.get("Error") or "Unknown error"
            raise BackendError(f"{method} {path} rejected: {message}", response.status_code)

        return data

    #----------------
    # Public methods
    #----------------
    def fetch_offers(self, request_id: str) -> OfferSnapshot:
        """
        GET /offer/chooseoffer?request_id=...

        Returns:
            OfferSnapshot with the trip endpoints (if sent) and the pending offers.
            An empty candidate list means "no offers yet".
        """
        data = self._request("GET", "/offer/chooseoffer", params={"request_id": request_id})

        endpoints = None
        info = data.get("PickupDropoffInfo")
        if info:
            try:
                endpoints = TripEndpoints.from_backend(info)
            except (TypeError, ValueError) as exc:
                raise BackendError(f"Malformed PickupDropoffInfo: {exc}") from exc

        return OfferSnapshot(endpoints=endpoints, candidates=self._parse_candidates(data.get("Result")))

    @staticmethod
    def _parse_candidates(result: Any) -> List[Candidate]:
        # "" or a missing Result is how the backend says "no offers yet"
        if not result:
            return []
        if not isinstance(result, list):
            raise BackendError(f"Result must be a list, got {type(result).__name__}")

        candidates: List[Candidate] = []
        seen = set()
        for row in result:
            try:
                candidate = Candidate.from_backend(row)
            except (AttributeError, TypeError, ValueError) as exc:
                logger.warning(f"Skipping malformed offer row: {exc}")
                continue
            #one entry per driver; the first row wins
            if candidate.id in seen:
                continue
            seen.add(candidate.id)
            candidates.append(candidate)
        return candidates

    def cancel_request(self, request_id: str) -> None:
        """
        PUT /request/cancel_request

        Cancelling an already cancelled request is accepted by the backend.
        """
        self._request("PUT", "/request/cancel_request", json={"request_id": request_id})
        logger.info(f"Request {request_id} cancelled on the backend")

    def update_offer_status(self, request_id: str, driver_id: str, offered_price: Optional[float] = None) -> bool:
        """
        POST /offer/update_offer_status

        Accepts the offer of `driver_id` and rejects the other pending offers.
        """
        payload: Dict[str, Any] = {"request_id": request_id, "driver_id": driver_id}
        if offered_price is not None:
            payload["offered_price"] = offered_price
        self._request("POST", "/offer/update_offer_status", json=payload)
        return True
