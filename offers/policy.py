"""
Purpose: Central configuration for offer polling, geofencing and enrichment.
What it does:

Stores all tunable thresholds/caps for the choose-a-driver step:

POLL_INTERVAL_S = 5
ALLOWED_RADII_M = [1000, 5000, 10000, 20000, 30000]
ROUTING_TIMEOUT_S = 30

Rule: No logic here, just parameters so you can tune without rewriting code.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional, Tuple

from dotenv import load_dotenv

from .models import RadiusMeters


@dataclass(frozen=True)
class OfferPolicy:
    """
    Central configuration for offer discovery.
    """

    # --- Polling ---
    # Seconds between two offer-list fetches for the active request.
    poll_interval_s: float = 5.0

    # --- Geofencing ---
    # Radii the user can pick from, in meters.
    allowed_radii_m: Tuple[int, ...] = field(default_factory=lambda: tuple(r.value for r in RadiusMeters))
    default_radius_m: int = RadiusMeters.KM_5.value

    # --- Route enrichment ---
    # Deadline for the whole enrichment batch.
    routing_timeout_s: float = 30.0
    # Timeout of a single routing HTTP call.
    routing_request_timeout_s: float = 10.0
    # Upper bound on concurrent routing calls (third-party rate limits).
    max_concurrent_routes: int = 10

    def validate(self) -> None:
        """
        Basic sanity checks.
        """
        if self.poll_interval_s <= 0:
            raise ValueError("poll_interval_s must be > 0")

        if not self.allowed_radii_m:
            raise ValueError("allowed_radii_m must not be empty")

        if any(radius <= 0 for radius in self.allowed_radii_m):
            raise ValueError("allowed_radii_m must only contain positive radii")

        if self.default_radius_m not in self.allowed_radii_m:
            raise ValueError(f"default_radius_m {self.default_radius_m} is not one of {self.allowed_radii_m}")

        if self.routing_timeout_s <= 0 or self.routing_request_timeout_s <= 0:
            raise ValueError("routing timeouts must be > 0")

        if self.max_concurrent_routes <= 0:
            raise ValueError("max_concurrent_routes must be > 0")

    @classmethod
    def from_env(cls) -> OfferPolicy:
        """
        Policy with overrides from the environment / .env file.
        Unset variables keep the defaults.
        """
        load_dotenv()
        defaults = cls()

        radii = _env_radii("OFFER_ALLOWED_RADII_M")
        p = cls(
            poll_interval_s=_env_float("OFFER_POLL_INTERVAL_S", defaults.poll_interval_s),
            allowed_radii_m=radii if radii is not None else defaults.allowed_radii_m,
            default_radius_m=int(_env_float("OFFER_DEFAULT_RADIUS_M", defaults.default_radius_m)),
            routing_timeout_s=_env_float("OFFER_ROUTING_TIMEOUT_S", defaults.routing_timeout_s),
            routing_request_timeout_s=_env_float(
                "OFFER_ROUTING_REQUEST_TIMEOUT_S", defaults.routing_request_timeout_s
            ),
            max_concurrent_routes=int(
                _env_float("OFFER_MAX_CONCURRENT_ROUTES", defaults.max_concurrent_routes)
            ),
        )
        p.validate()
        return p


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got {raw!r}") from exc


def _env_radii(name: str) -> Optional[Tuple[int, ...]]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a comma separated list of meters, got {raw!r}") from exc


def default_offer_policy() -> OfferPolicy:
    """
    Convenience factory for the default policy.
    """
    p = OfferPolicy()
    p.validate()
    return p
