"""Re-routing of surplus when the first matched NGO does not respond."""

from __future__ import annotations

import json
import logging
from typing import Iterable

from ..outbox import OutboxEvent
from .engine import NGO, MatchingEngine, Surplus

logger = logging.getLogger(__name__)

_DEFAULT_LAT = -6.2
_DEFAULT_LON = 106.8


class NoCandidatesError(LookupError):
    """Raised when no NGO is left to re-route a surplus to."""


class SurplusDirectory:
    """In-memory lookup of surplus posts and receiving NGOs."""

    def __init__(
        self,
        surpluses: dict[str, Surplus] | None = None,
        ngos: Iterable[NGO] | None = None,
    ) -> None:
        self._surpluses = dict(surpluses or {})
        self._ngos = (
            list(ngos) if ngos is not None else [NGO(id="ngo-next", lat=-6.21, lon=106.81)]
        )

    def get_surplus(self, surplus_id: str) -> Surplus:
        """Return the surplus with this id, or one at the default location."""
        known = self._surpluses.get(surplus_id)
        if known is not None:
            return known
        return Surplus(id=surplus_id, lat=_DEFAULT_LAT, lon=_DEFAULT_LON)

    def find_nearby_ngos(
        self, lat: float, lon: float, excluded: Iterable[str]
    ) -> list[NGO]:
        """Return the candidate NGOs that are not excluded."""
        excluded_ids = set(excluded)
        return [ngo for ngo in self._ngos if ngo.id not in excluded_ids]


class RematchWorker:
    """Handles rematch-required events by choosing the next best NGO."""

    def __init__(self, engine: MatchingEngine, directory: SurplusDirectory) -> None:
        self._engine = engine
        self._directory = directory

    async def handle_rematch_event(self, event: OutboxEvent) -> NGO:
        """Re-route the surplus named in the event and return the new NGO."""
        try:
            payload = json.loads(event.payload)
        except ValueError as exc:
            raise ValueError(f"failed to unmarshal rematch payload: {exc}") from exc
        if not isinstance(payload, dict):
            raise ValueError("failed to unmarshal rematch payload: not an object")

        surplus_id = payload.get("surplus_id") or ""
        excluded = payload.get("excluded_ngos") or []
        logger.info("Triggering rematch for surplus %s. Excluded: %s", surplus_id, excluded)

        surplus = self._directory.get_surplus(surplus_id)
        candidates = self._directory.find_nearby_ngos(surplus.lat, surplus.lon, excluded)
        if not candidates:
            raise NoCandidatesError(f"no more candidates for surplus {surplus_id}")

        next_ngo = await self._engine.match_ngo(surplus, candidates)
        logger.info("Re-routed surplus %s to NGO %s", surplus_id, next_ngo.id)
        return next_ngo