"""Stock updates from restaurant point-of-sale systems."""

from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Protocol

from .outbox import EventType, OutboxEvent

logger = logging.getLogger(__name__)

LOW_STOCK_THRESHOLD = 5
FLASH_DISCOUNT = 0.70
FLASH_EXPIRY = timedelta(hours=3)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _EventStore(Protocol):
    def save(self, event: OutboxEvent, conn: object = None) -> None: ...


@dataclass
class POSWebhookPayload:
    """A stock update sent by a point-of-sale system."""

    provider_id: str
    sku: str
    item_name: str
    current_stock: int
    original_price: float = 0.0


class InventoryService:
    """Turns low stock into automatic flash-sale surplus posts."""

    def __init__(
        self, outbox_repo: _EventStore, clock: Callable[[], datetime] = _utcnow
    ) -> None:
        self._outbox = outbox_repo
        self._clock = clock

    def process_stock_update(self, payload: POSWebhookPayload) -> OutboxEvent | None:
        """Emit an auto-create-surplus event when 0 < stock < 5.

        Returns the stored event, or None when stock is not low.
        """
        if not 0 < payload.current_stock < LOW_STOCK_THRESHOLD:
            return None

        logger.info(
            "Flash sale condition met for %s (stock %d)",
            payload.item_name,
            payload.current_stock,
        )
        body = {
            "action": "auto_create_surplus",
            "provider_id": payload.provider_id,
            "item_name": payload.item_name,
            "quantity_qty": payload.current_stock,
            "discount": FLASH_DISCOUNT,
            "expiry": (self._clock() + FLASH_EXPIRY).isoformat(),
        }
        event = OutboxEvent(
            id=str(uuid.uuid4()),
            aggregate_id=payload.provider_id,
            event_type=EventType.SURPLUS_POSTED,
            payload=json.dumps(body, sort_keys=True, separators=(",", ":")).encode(),
        )
        self._outbox.save(event)
        return event