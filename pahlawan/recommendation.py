"""Personalised nudges towards nearby surplus."""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol

from .s2cell import CellID

NUDGE_CELL_LEVEL = 13
HIGH_DENSITY_TOKEN = "123456"
SERENDIPITY_THRESHOLD = 0.7


class _RandomSource(Protocol):
    def random(self) -> float: ...


@dataclass(frozen=True)
class Recommendation:
    surplus_id: str
    reason: str
    score: float
    distance_m: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "surplus_id": self.surplus_id,
            "reason": self.reason,
            "score": self.score,
            "distance_m": self.distance_m,
        }


class RecommendationService:
    """Suggests surplus based on time of day, location and a little chance."""

    def smart_nudges(
        self,
        user_id: str,
        lat: float,
        lon: float,
        now: datetime | None = None,
        rng: _RandomSource | None = None,
    ) -> list[Recommendation]:
        """Return recommendations for the user at this location and time."""
        cell = CellID.from_lat_lng(lat, lon).parent(NUDGE_CELL_LEVEL)
        hour = (now if now is not None else datetime.now()).hour
        source = rng if rng is not None else random

        recs: list[Recommendation] = []
        if 16 <= hour <= 19:
            recs.append(
                Recommendation(
                    surplus_id="surplus-bakery-123",
                    reason="It's tea time! 🍵 Your favorite bakery nearby has surplus.",
                    score=0.95,
                    distance_m=350,
                )
            )

        if cell.to_token() == HIGH_DENSITY_TOKEN:
            recs.append(
                Recommendation(
                    surplus_id="surplus-pizza-999",
                    reason="Hot Pizza just 500m away! 🍕",
                    score=0.88,
                    distance_m=500,
                )
            )

        if source.random() > SERENDIPITY_THRESHOLD:
            recs.append(
                Recommendation(
                    surplus_id="surplus-mystery-box",
                    reason="Try something new? 🎁 Mystery Box available.",
                    score=0.75,
                    distance_m=1200,
                )
            )
        return recs