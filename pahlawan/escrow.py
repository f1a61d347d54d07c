"""Escrow of order payments as an append-only event log, plus the payment gateway."""

from __future__ import annotations

import enum
import logging
import threading
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, Iterable, Mapping

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EscrowEventType(str, enum.Enum):
    """Facts recorded in the escrow ledger."""

    PAYMENT_COLLECTED = "PaymentCollected"
    COURIER_ASSIGNED = "CourierAssigned"
    FOOD_PICKED_UP = "FoodPickedUp"
    FOOD_DELIVERED = "FoodDelivered"
    FUNDS_RELEASED = "FundsReleased"
    ORDER_CANCELLED = "OrderCancelled"
    DISPUTE_RAISED = "DisputeRaise"


@dataclass(frozen=True)
class EscrowEvent:
    """An immutable fact in the financial ledger."""

    id: str
    order_id: str
    type: EscrowEventType
    timestamp: datetime
    amount: float = 0.0
    payload: str = ""


@dataclass
class EscrowState:
    """The state of one order's escrow, rebuilt from its events."""

    order_id: str = ""
    total_locked: float = 0.0
    status: str = "PENDING"
    last_updated: datetime | None = None


class EscrowError(RuntimeError):
    """Raised when an escrow operation is not allowed in the current state."""


_CORE_STATUSES: dict[EscrowEventType, str] = {
    EscrowEventType.PAYMENT_COLLECTED: "LOCKED",
    EscrowEventType.FOOD_DELIVERED: "CONFIRMED_PENDING_RELEASE",
    EscrowEventType.FUNDS_RELEASED: "CLOSED",
    EscrowEventType.DISPUTE_RAISED: "DISPUTED",
}

_LEDGER_STATUSES: dict[EscrowEventType, str] = {
    **_CORE_STATUSES,
    EscrowEventType.COURIER_ASSIGNED: "PICKUP_IN_PROGRESS",
    EscrowEventType.FOOD_PICKED_UP: "DELIVERY_IN_PROGRESS",
}


def _fold(
    events: Iterable[EscrowEvent],
    statuses: Mapping[EscrowEventType, str],
    order_id: str = "",
) -> EscrowState:
    state = EscrowState(order_id=order_id)
    for event in events:
        status = statuses.get(event.type)
        if status is not None:
            state.status = status
            if event.type == EscrowEventType.PAYMENT_COLLECTED:
                state.total_locked = event.amount
            elif event.type == EscrowEventType.FUNDS_RELEASED:
                state.total_locked = 0.0
        state.last_updated = event.timestamp
    return state


def rehydrate_state(events: Iterable[EscrowEvent]) -> EscrowState:
    """Rebuild the escrow state by replaying events in order."""
    return _fold(events, _CORE_STATUSES)


class EscrowLedger:
    """In-memory append-only escrow ledger for orders."""

    def __init__(self, clock: Clock = _utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._events: list[EscrowEvent] = []

    @property
    def events(self) -> tuple[EscrowEvent, ...]:
        with self._lock:
            return tuple(self._events)

    def _append(
        self, order_id: str, event_type: EscrowEventType, amount: float = 0.0
    ) -> EscrowEvent:
        event = EscrowEvent(
            id=str(uuid.uuid4()),
            order_id=order_id,
            type=event_type,
            timestamp=self._clock(),
            amount=amount,
        )
        self._events.append(event)
        return event

    def secure_payment(self, order_id: str, amount: float) -> EscrowEvent:
        """Lock the payment for an order in escrow."""
        with self._lock:
            return self._append(order_id, EscrowEventType.PAYMENT_COLLECTED, amount)

    def food_delivered(self, order_id: str) -> EscrowEvent:
        """Record that the order's food was delivered."""
        with self._lock:
            return self._append(order_id, EscrowEventType.FOOD_DELIVERED)

    def release_funds(self, order_id: str) -> EscrowEvent:
        """Release the locked funds once delivery has been confirmed."""
        with self._lock:
            state = self._state(order_id)
            if state.status != "CONFIRMED_PENDING_RELEASE":
                raise EscrowError(f"cannot release funds: state is {state.status}")
            return self._append(order_id, EscrowEventType.FUNDS_RELEASED)

    def state(self, order_id: str) -> EscrowState:
        """Return the current escrow state of the order."""
        with self._lock:
            return self._state(order_id)

    def _state(self, order_id: str) -> EscrowState:
        relevant = (e for e in self._events if e.order_id == order_id)
        return _fold(relevant, _LEDGER_STATUSES, order_id)


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    amount: float
    status: str
    timestamp: datetime


class PaymentGateway:
    """Holds buyers' money until delivery, then pays or refunds it."""

    def __init__(self, clock: Clock = _utcnow) -> None:
        self._clock = clock

    def lock_funds(self, user_id: str, amount: float) -> PaymentRecord:
        """Hold the user's money in escrow."""
        logger.info("Holding Rp%.2f from user %s in escrow", amount, user_id)
        return PaymentRecord(
            id=str(uuid.uuid4()), amount=amount, status="held", timestamp=self._clock()
        )

    def release_funds(self, payment_id: str, provider_id: str) -> None:
        """Pay the provider after verified delivery."""
        logger.info(
            "Delivery verified; releasing funds to provider %s (payment %s)",
            provider_id,
            payment_id,
        )

    def refund_funds(self, payment_id: str, user_id: str) -> None:
        """Return the money to the user after a dispute or stale claim."""
        logger.info(
            "Dispute approved; refunding funds to user %s (payment %s)", user_id, payment_id
        )