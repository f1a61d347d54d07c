"""Ranking, vouchers and fulfilment choice for the consumer marketplace."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable

from .engine import haversine

_SELF_PICKUP_MAX_KM = 5.0
_FLASH_SALE_DISCOUNT = 80.0
_UNSAFE_PENALTY = 10.0


@dataclass
class SurplusCandidate:
    id: str
    distance_km: float
    rating: float
    discount_percent: float
    temperature_safe: bool = True
    final_score: float = 0.0


class RecommendationEngine:
    """Weighted multi-factor ranking of surplus offers."""

    def rank_surplus(self, candidates: Iterable[SurplusCandidate]) -> list[SurplusCandidate]:
        """Score every candidate and return them best first."""
        candidates = list(candidates)
        for candidate in candidates:
            proximity = 1.0 / (candidate.distance_km + 1.0)
            score = (
                candidate.rating * 0.4
                + proximity * 10.0 * 0.3
                + (candidate.discount_percent / 100.0) * 5.0 * 0.3
            )
            if not candidate.temperature_safe:
                score -= _UNSAFE_PENALTY
            candidate.final_score = score
        return sorted(candidates, key=lambda c: c.final_score, reverse=True)

    def detect_flash_sale(self, candidates: Iterable[SurplusCandidate]) -> list[str]:
        """Return the ids of deeply discounted offers."""
        return [c.id for c in candidates if c.discount_percent >= _FLASH_SALE_DISCOUNT]


class VoucherService:
    """Promo code validation."""

    def validate_voucher(self, code: str, order_value: float) -> float | None:
        """Return the discount the code grants, or None if it does not apply."""
        if code == "PAHLAWANBARU" and order_value > 50000:
            return 15000.0
        if code == "ZEROWASTE":
            return order_value * 0.2
        return None


class FulfillmentOption(str, enum.Enum):
    COURIER = "courier"
    SELF_PICKUP = "self_pickup"


@dataclass
class FulfillmentStatus:
    method: FulfillmentOption
    tracking_id: str = ""
    verification_code: str = ""
    distance_to_store: float = 0.0

    def to_dict(self) -> dict[str, object]:
        data: dict[str, object] = {"method": self.method.value}
        if self.tracking_id:
            data["tracking_id"] = self.tracking_id
        if self.verification_code:
            data["verification_code"] = self.verification_code
        data["distance_to_store_meters"] = self.distance_to_store
        return data


class FulfillmentError(ValueError):
    """Raised when the requested fulfilment method is not possible."""


def orchestrate_fulfillment(
    method: FulfillmentOption | str,
    user_lat: float,
    user_lon: float,
    store_lat: float,
    store_lon: float,
) -> FulfillmentStatus:
    """Validate the fulfilment method; self pickup requires being within 5 km."""
    distance_km = haversine(user_lat, user_lon, store_lat, store_lon)

    if method == FulfillmentOption.SELF_PICKUP:
        if distance_km > _SELF_PICKUP_MAX_KM:
            raise FulfillmentError(
                f"distance too far for self-pickup: {distance_km:.2f} km"
            )
        return FulfillmentStatus(
            method=FulfillmentOption.SELF_PICKUP,
            verification_code="PAH-PICK-77",
            distance_to_store=distance_km * 1000,
        )

    return FulfillmentStatus(method=FulfillmentOption.COURIER, tracking_id="GK-123-RESCUE")