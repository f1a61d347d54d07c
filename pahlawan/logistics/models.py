"""Delivery orders, batches and service levels."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from ..s2cell import CellID

CLUSTER_LEVEL = 13
CRITICAL_WINDOW = timedelta(minutes=15)


class DeliverySLA(str, enum.Enum):
    """How urgently an order must be delivered."""

    EXPRESS = "EXPRESS"
    STANDARD = "STANDARD"
    HEMAT = "HEMAT"
    CRITICAL = "CRITICAL"


@dataclass
class Order:
    """A delivery request."""

    id: str = ""
    user_id: str = ""
    provider_id: str = ""
    pickup_lat: float = 0.0
    pickup_lon: float = 0.0
    dropoff_lat: float = 0.0
    dropoff_lon: float = 0.0
    expiry_time: datetime | None = None
    quantity_kg: float = 0.0
    selected_sla: DeliverySLA = DeliverySLA.STANDARD
    current_sla: DeliverySLA | None = None
    status: str = ""
    batch_id: str | None = None
    created_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.current_sla is None:
            self.current_sla = self.selected_sla

    def s2_cell_id(self) -> CellID:
        """Return the level-13 cell of the pickup point, used for clustering."""
        return CellID.from_lat_lng(self.pickup_lat, self.pickup_lon).parent(CLUSTER_LEVEL)

    def enforce_sla(self, now: datetime | None = None) -> None:
        """Upgrade to CRITICAL when less than 15 minutes remain before expiry."""
        if self.expiry_time is None:
            self.current_sla = DeliverySLA.CRITICAL
            return
        if now is None:
            now = datetime.now(tz=self.expiry_time.tzinfo)
        if self.expiry_time - now < CRITICAL_WINDOW:
            self.current_sla = DeliverySLA.CRITICAL
        else:
            self.current_sla = self.selected_sla


@dataclass
class RoutePoint:
    order_id: str
    type: str
    lat: float
    lon: float
    eta: datetime | None = None


@dataclass
class Batch:
    """Orders grouped for one courier."""

    id: str
    courier_id: str = ""
    orders: list[Order] = field(default_factory=list)
    route: list[RoutePoint] = field(default_factory=list)
    score: float = 0.0