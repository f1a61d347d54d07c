"""Assignment of surplus food to the nearest receiving NGO.

Travel times come from an external router guarded by a circuit breaker; when
the router fails or the breaker is open, the great-circle distance is used.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import math
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Iterable, TypeVar

logger = logging.getLogger(__name__)

ROUTING_TIMEOUT = 0.2
MAX_WORKER_POOL_SIZE = 1000
EARTH_RADIUS_KM = 6371.0
EMERGENCY_NGO_ID = "EMERGENCY_DROP_POINT_RT_RW"

T = TypeVar("T")


@dataclass
class Surplus:
    """A food donation offer."""

    id: str
    provider_id: str = ""
    lat: float = 0.0
    lon: float = 0.0
    expiry_time: datetime | None = None
    quantity_kgs: float = 0.0


@dataclass
class NGO:
    """A receiving organisation."""

    id: str
    lat: float = 0.0
    lon: float = 0.0


class Router(ABC):
    """An external routing engine."""

    @abstractmethod
    async def get_travel_time(
        self, start_lat: float, start_lon: float, end_lat: float, end_lon: float
    ) -> timedelta:
        """Return the travel time between two points."""


def haversine(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Return the great-circle distance between two points in kilometres."""
    d_lat = math.radians(lat2 - lat1)
    d_lon = math.radians(lon2 - lon1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(lat1))
        * math.cos(math.radians(lat2))
        * math.sin(d_lon / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


class BreakerState(enum.Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(RuntimeError):
    """Raised when a call is refused because the circuit is open."""

    def __init__(self) -> None:
        super().__init__("circuit breaker open")


class CircuitBreaker:
    """Opens after ``threshold`` consecutive failures for ``timeout`` seconds."""

    def __init__(
        self,
        threshold: int = 3,
        timeout: float | timedelta = 10.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.threshold = threshold
        self.timeout = (
            timeout.total_seconds() if isinstance(timeout, timedelta) else float(timeout)
        )
        self._clock = clock
        self._lock = threading.Lock()
        self._state = BreakerState.CLOSED
        self._failures = 0
        self._last_fail_time = 0.0

    @property
    def state(self) -> BreakerState:
        return self._state

    @property
    def failures(self) -> int:
        return self._failures

    def _admit(self) -> None:
        with self._lock:
            if self._state is BreakerState.OPEN:
                if self._clock() - self._last_fail_time > self.timeout:
                    self._state = BreakerState.HALF_OPEN
                else:
                    raise CircuitOpenError()

    def _record_failure(self) -> None:
        with self._lock:
            self._failures += 1
            if self._failures >= self.threshold:
                self._state = BreakerState.OPEN
                self._last_fail_time = self._clock()

    def _record_success(self) -> None:
        with self._lock:
            self._failures = 0
            self._state = BreakerState.CLOSED

    def execute(self, func: Callable[[], T]) -> T:
        """Call ``func`` through the breaker and return its result."""
        self._admit()
        try:
            result = func()
        except Exception:
            self._record_failure()
            raise
        self._record_success()
        return result

    async def execute_async(self, func: Callable[[], Awaitable[T]]) -> T:
        """Await ``func()`` through the breaker and return its result."""
        self._admit()
        try:
            result = await func()
        except Exception:
            self._record_failure()
            raise
        self._record_success()
        return result


class MatchingEngine:
    """Chooses the closest NGO for a surplus post."""

    def __init__(
        self,
        router: Router,
        circuit_breaker: CircuitBreaker | None = None,
        routing_timeout: float = ROUTING_TIMEOUT,
        max_workers: int = MAX_WORKER_POOL_SIZE,
    ) -> None:
        self._router = router
        self.circuit_breaker = circuit_breaker or CircuitBreaker(3, 10.0)
        self._routing_timeout = routing_timeout
        self._workers = asyncio.Semaphore(max_workers)
        self.waste_prevented_tons = 0.0

    async def match_ngo(self, surplus: Surplus, candidates: Iterable[NGO]) -> NGO:
        """Return the candidate nearest to the surplus.

        With no candidates an emergency drop point at the surplus location is
        returned. Cancel or time out the awaiting task to abandon the match.
        """
        candidates = list(candidates)
        distances = await asyncio.gather(
            *(self._bounded_distance(surplus, ngo) for ngo in candidates)
        )

        best: NGO | None = None
        best_distance = math.inf
        for ngo, distance in zip(candidates, distances):
            if distance < best_distance:
                best, best_distance = ngo, distance

        if best is None:
            logger.warning("Primary matching failed; using emergency drop point")
            return NGO(id=EMERGENCY_NGO_ID, lat=surplus.lat, lon=surplus.lon)

        self.waste_prevented_tons += surplus.quantity_kgs / 1000.0
        return best

    async def _bounded_distance(self, surplus: Surplus, ngo: NGO) -> float:
        async with self._workers:
            return await self._distance(surplus.lat, surplus.lon, ngo.lat, ngo.lon)

    async def _distance(self, lat1: float, lon1: float, lat2: float, lon2: float) -> float:
        async def route() -> float:
            travel = await asyncio.wait_for(
                self._router.get_travel_time(lat1, lon1, lat2, lon2),
                self._routing_timeout,
            )
            return travel.total_seconds()

        try:
            return await self.circuit_breaker.execute_async(route)
        except Exception as exc:
            logger.debug("Routing unavailable (%s); using haversine distance", exc)
            return haversine(lat1, lon1, lat2, lon2)