"""Waste prediction and high-waste heatmap data."""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from typing import Any, Protocol

_PREEMPTIVE_THRESHOLD_KGS = 15.0


class _RandomSource(Protocol):
    def random(self) -> float: ...


def _round2(value: float) -> float:
    return math.floor(value * 100 + 0.5) / 100


@dataclass(frozen=True)
class PredictionResult:
    predicted_kgs: float
    confidence: float
    recommended_action: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "predicted_kgs": self.predicted_kgs,
            "confidence": self.confidence,
            "recommended_action": self.recommended_action,
        }


class AIEngine:
    """Simulated model that predicts food waste per provider."""

    def __init__(self, rng: _RandomSource | None = None) -> None:
        self._rng = rng if rng is not None else random.Random()

    def predict_waste(self, provider_id: str) -> PredictionResult:
        """Return a waste prediction between 5 and 20 kg for the provider."""
        predicted = 5.0 + self._rng.random() * 15.0
        confidence = 0.75 + self._rng.random() * 0.20

        action = "Normal Matching"
        if predicted > _PREEMPTIVE_THRESHOLD_KGS:
            action = "Pre-emptive Notification to NGOs"

        return PredictionResult(
            predicted_kgs=_round2(predicted),
            confidence=_round2(confidence),
            recommended_action=action,
        )

    def heatmap_data(self, region_id: int) -> list[dict[str, Any]]:
        """Return clusters of high-waste areas for the region."""
        return [
            {
                "lat": -6.21,
                "lon": 106.84,
                "intensity": 0.9,
                "reason": "High Density Restaurant Cluster",
            },
            {
                "lat": -6.22,
                "lon": 106.85,
                "intensity": 0.4,
                "reason": "Residential Backup",
            },
        ]