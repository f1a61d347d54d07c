"""Time-decay pricing and impact points for surplus food."""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime


def _round_half_away(value: float) -> float:
    magnitude = abs(value)
    whole = math.floor(magnitude)
    if magnitude - whole >= 0.5:
        whole += 1
    return math.copysign(whole, value)


@dataclass
class PricingEngine:
    """Exponential-decay pricing with a floor relative to the original price."""

    min_price_ratio: float = 0.1

    def calculate_price(
        self,
        original_price: float,
        posted_at: datetime,
        expiry_at: datetime,
        now: datetime | None = None,
    ) -> float:
        """Return the current price: original * e^(-2 * progress), floored."""
        if now is None:
            now = datetime.now(tz=posted_at.tzinfo)
        if now > expiry_at:
            return 0.0

        total = (expiry_at - posted_at).total_seconds()
        elapsed = (now - posted_at).total_seconds()
        if elapsed <= 0:
            return original_price

        progress = elapsed / total
        final_price = original_price * math.exp(-2.0 * progress)

        floor = original_price * self.min_price_ratio
        if final_price < floor:
            return floor
        return _round_half_away(final_price * 100) / 100

    def calculate_impact_points(
        self, quantity_kgs: float, saved_minutes_before_expiry: float
    ) -> int:
        """Return points for quantity rescued plus a bonus for rescuing early."""
        base = int(quantity_kgs * 10)
        bonus = int(saved_minutes_before_expiry / 10)
        return base + bonus