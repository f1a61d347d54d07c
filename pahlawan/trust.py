"""Trust scoring for platform users."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class ScoreFactors:
    total_pickups: int = 0
    ghosting_incidents: int = 0
    dispute_count: int = 0
    account_age_days: int = 0
    verified_identity: bool = False


class TrustService:
    """Computes a 0-850 trust score and the badge that goes with it."""

    def calculate_score(self, factors: ScoreFactors) -> int:
        """Return the trust score for the given history."""
        score = 300.0
        score += factors.total_pickups * 5.0
        if factors.verified_identity:
            score += 50.0
        score += min(factors.account_age_days * 0.5, 100.0)

        score -= factors.ghosting_incidents * 100.0
        score -= factors.dispute_count * 50.0

        if score < 0:
            return 0
        if score > 850:
            return 850
        return int(score)

    def trust_level(self, score: int) -> str:
        """Translate a score into its badge name."""
        if score >= 750:
            return "UNICORN_SAVIOR"
        if score >= 600:
            return "PAHLAWAN"
        if score >= 400:
            return "WARGA_BAIK"
        return "PELUANG_KEDUA"