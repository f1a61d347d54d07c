"""Push notifications to NGOs and users."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from itertools import islice
from typing import Callable, Iterable, Iterator, Sequence

logger = logging.getLogger(__name__)

BATCH_SIZE = 100
MAX_CONCURRENT_BATCHES = 50
OFFLINE_DEVICE_ID = "ngo-offline-mock"

PushSender = Callable[[str, str], None]


class DeliveryError(RuntimeError):
    """Raised when a push notification cannot reach its recipient."""


def _default_push(recipient: str, message: str) -> None:
    if recipient == OFFLINE_DEVICE_ID:
        raise DeliveryError("device unreachable")


def _chunks(items: Iterable[str], size: int) -> Iterator[list[str]]:
    iterator = iter(items)
    while chunk := list(islice(iterator, size)):
        yield chunk


class NotificationService:
    """Sends push notifications; undeliverable surplus alerts are dead-lettered."""

    def __init__(self, push: PushSender | None = None) -> None:
        self._push = push or _default_push
        self.dead_letters: list[tuple[str, str]] = []

    def dispatch(self, surplus_id: str, ngo_id: str) -> bool:
        """Alert the NGO about a surplus.

        Returns True when delivered; otherwise the surplus is recorded for
        re-routing and False is returned.
        """
        try:
            self._push(ngo_id, f"New surplus available: {surplus_id}")
        except DeliveryError:
            logger.warning("Failed to reach NGO %s; triggering DLQ strategy", ngo_id)
            self._handle_delivery_failure(surplus_id, ngo_id)
            return False
        return True

    def notify_batch(self, user_ids: Sequence[str], title: str, message: str) -> int:
        """Notify users in batches of 100, at most 50 batches at once.

        Individual delivery failures are ignored. Returns how many users were
        reached.
        """
        text = f"{title}: {message}"

        def push_batch(users: list[str]) -> int:
            delivered = 0
            for user_id in users:
                try:
                    self._push(user_id, text)
                except DeliveryError:
                    continue
                delivered += 1
            return delivered

        with ThreadPoolExecutor(max_workers=MAX_CONCURRENT_BATCHES) as pool:
            return sum(pool.map(push_batch, _chunks(user_ids, BATCH_SIZE)))

    def _handle_delivery_failure(self, surplus_id: str, ngo_id: str) -> None:
        logger.warning(
            "Surplus %s must be re-routed. Original NGO %s unreachable.", surplus_id, ngo_id
        )
        self.dead_letters.append((surplus_id, ngo_id))