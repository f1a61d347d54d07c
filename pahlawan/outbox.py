"""Transactional outbox: domain events stored with the data, published later."""

from __future__ import annotations

import enum
import json
import logging
import sqlite3
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)

_INSERT_SQL = """
    INSERT INTO outbox_events
        (id, aggregate_id, event_type, payload, created_at, published, trace_id)
    VALUES (?, ?, ?, ?, ?, ?, ?)
"""

_SELECT_UNPUBLISHED_SQL = """
    SELECT id, aggregate_id, event_type, payload, created_at, trace_id
    FROM outbox_events
    WHERE published = 0
    ORDER BY created_at ASC
    LIMIT ?
"""

_MARK_PUBLISHED_SQL = """
    UPDATE outbox_events
    SET published = 1, published_at = ?
    WHERE id = ?
"""


class EventType(str, enum.Enum):
    """Kinds of domain events."""

    SURPLUS_POSTED = "surplus.posted"
    SURPLUS_CLAIMED = "surplus.claimed"
    SURPLUS_EXPIRED = "surplus.expired"
    REMATCH_REQUIRED = "surplus.rematch_required"
    FOOD_DELIVERED = "delivery.completed"
    FUNDS_RELEASED = "escrow.funds_released"


def _parse_event_type(value: str) -> EventType | str:
    try:
        return EventType(value)
    except ValueError:
        return value


def _event_type_value(value: EventType | str) -> str:
    return value.value if isinstance(value, EventType) else str(value)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _format_time(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _parse_time(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


def _json_time(value: datetime) -> str:
    text = _format_time(value)
    return text[:-6] + "Z" if text.endswith("+00:00") else text


@dataclass
class OutboxEvent:
    """An event waiting in the outbox; ``payload`` holds raw JSON bytes."""

    id: str
    aggregate_id: str
    event_type: EventType | str
    payload: bytes = b""
    created_at: datetime = field(default_factory=_utcnow)
    published: bool = False
    published_at: datetime | None = None
    trace_id: str = ""

    def to_json(self) -> str:
        """Serialise the event, embedding the payload as JSON."""
        data: dict[str, Any] = {
            "id": self.id,
            "aggregate_id": self.aggregate_id,
            "event_type": _event_type_value(self.event_type),
            "payload": json.loads(self.payload) if self.payload else None,
            "created_at": _json_time(self.created_at),
            "published": self.published,
        }
        if self.published_at is not None:
            data["published_at"] = _json_time(self.published_at)
        data["trace_id"] = self.trace_id
        return json.dumps(data)

    @classmethod
    def from_json(cls, data: str | bytes) -> OutboxEvent:
        """Parse an event produced by :meth:`to_json`."""
        raw = json.loads(data)
        if not isinstance(raw, dict):
            raise ValueError("outbox event must be a JSON object")
        payload = raw.get("payload")
        published_at = raw.get("published_at")
        created_at = raw.get("created_at")
        return cls(
            id=raw.get("id", ""),
            aggregate_id=raw.get("aggregate_id", ""),
            event_type=_parse_event_type(raw.get("event_type", "")),
            payload=(
                json.dumps(payload, separators=(",", ":")).encode()
                if payload is not None
                else b""
            ),
            created_at=_parse_time(created_at) if created_at else _utcnow(),
            published=bool(raw.get("published", False)),
            published_at=_parse_time(published_at) if published_at else None,
            trace_id=raw.get("trace_id", ""),
        )


class MessagePublisher(ABC):
    """A message broker that outbox events are published to."""

    @abstractmethod
    def publish(self, event: OutboxEvent) -> None:
        """Publish one event; raise on failure."""


def create_schema(conn: sqlite3.Connection) -> None:
    """Create the outbox table if it does not exist."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS outbox_events (
            id TEXT PRIMARY KEY,
            aggregate_id TEXT NOT NULL,
            event_type TEXT NOT NULL,
            payload BLOB,
            created_at TEXT NOT NULL,
            published INTEGER NOT NULL DEFAULT 0,
            published_at TEXT,
            trace_id TEXT
        )
        """
    )
    conn.commit()


def _insert(conn: sqlite3.Connection, event: OutboxEvent) -> None:
    conn.execute(
        _INSERT_SQL,
        (
            event.id,
            event.aggregate_id,
            _event_type_value(event.event_type),
            event.payload,
            _format_time(event.created_at),
            int(event.published),
            event.trace_id,
        ),
    )


def _row_to_event(row: tuple[Any, ...]) -> OutboxEvent:
    event_id, aggregate_id, event_type, payload, created_at, trace_id = row
    if isinstance(payload, str):
        payload = payload.encode()
    return OutboxEvent(
        id=event_id,
        aggregate_id=aggregate_id,
        event_type=_parse_event_type(event_type),
        payload=bytes(payload) if payload is not None else b"",
        created_at=_parse_time(created_at),
        trace_id=trace_id or "",
    )


class OutboxService:
    """Writes events inside business transactions and relays them to a broker."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def publish_with_transaction(
        self, conn: sqlite3.Connection, event: OutboxEvent
    ) -> OutboxEvent:
        """Insert the event within the caller's open transaction.

        The event is stamped with a trace id (unless it has one) and the current
        time; the caller commits or rolls back. Returns the stored event.
        """
        stored = replace(
            event,
            trace_id=event.trace_id or uuid.uuid4().hex,
            created_at=_utcnow(),
            published=False,
        )
        _insert(conn, stored)
        return stored

    def poll_and_publish(self, publisher: MessagePublisher, batch_size: int) -> int:
        """Publish up to ``batch_size`` of the oldest pending events.

        Events whose publication fails stay pending. Returns how many were
        published.
        """
        rows = self._db.execute(_SELECT_UNPUBLISHED_SQL, (batch_size,)).fetchall()
        published = 0
        for event in map(_row_to_event, rows):
            try:
                publisher.publish(event)
            except Exception as exc:
                logger.error("Failed to publish outbox event %s: %s", event.id, exc)
                continue
            try:
                self._db.execute(_MARK_PUBLISHED_SQL, (_format_time(_utcnow()), event.id))
            except sqlite3.Error as exc:
                logger.error("Failed to mark outbox event %s published: %s", event.id, exc)
                continue
            published += 1
        self._db.commit()
        return published


class OutboxRepository:
    """Stores outbox events, optionally inside a caller's transaction."""

    def __init__(self, db: sqlite3.Connection) -> None:
        self._db = db

    def save(self, event: OutboxEvent, conn: sqlite3.Connection | None = None) -> None:
        """Insert the event as given.

        With ``conn`` the insert joins that connection's transaction and is left
        uncommitted; otherwise it is committed on the repository's connection.
        """
        if conn is not None:
            _insert(conn, event)
            return
        _insert(self._db, event)
        self._db.commit()