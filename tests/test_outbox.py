import json
import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from pahlawan.outbox import (
    EventType,
    MessagePublisher,
    OutboxEvent,
    OutboxRepository,
    OutboxService,
    create_schema,
)

BASE = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def db():
    conn = sqlite3.connect(":memory:")
    create_schema(conn)
    yield conn
    conn.close()


class RecordingPublisher(MessagePublisher):
    def __init__(self, fail_ids=()):
        self.fail_ids = set(fail_ids)
        self.published = []

    def publish(self, event):
        if event.id in self.fail_ids:
            raise RuntimeError("broker down")
        self.published.append(event)


def make_event(index, when=BASE):
    return OutboxEvent(
        id=f"evt-{index}",
        aggregate_id="surplus-1",
        event_type=EventType.SURPLUS_POSTED,
        payload=b'{"n":%d}' % index,
        created_at=when,
    )


def published_flag(db, event_id):
    return db.execute(
        "SELECT published, published_at FROM outbox_events WHERE id = ?", (event_id,)
    ).fetchone()


@pytest.mark.parametrize(
    "event_type, wire",
    [
        (EventType.SURPLUS_POSTED, "surplus.posted"),
        (EventType.REMATCH_REQUIRED, "surplus.rematch_required"),
        (EventType.FOOD_DELIVERED, "delivery.completed"),
        (EventType.FUNDS_RELEASED, "escrow.funds_released"),
    ],
)
def test_event_type_wire_values(event_type, wire):
    event = make_event(1)
    event.event_type = event_type
    encoded = event.to_json()
    assert json.loads(encoded)["event_type"] == wire
    assert OutboxEvent.from_json(encoded).event_type == event_type


def test_to_json_embeds_payload_and_omits_published_at():
    data = json.loads(make_event(1).to_json())
    assert data["event_type"] == "surplus.posted"
    assert data["payload"] == {"n": 1}
    assert data["published"] is False
    assert "published_at" not in data


def test_json_round_trip():
    event = make_event(7, BASE + timedelta(microseconds=250))
    event.trace_id = "trace-abc"
    assert OutboxEvent.from_json(event.to_json()) == event


def test_round_trip_with_published_at():
    event = make_event(2)
    event.published = True
    event.published_at = BASE + timedelta(minutes=1)
    restored = OutboxEvent.from_json(event.to_json().encode())
    assert restored.published_at == event.published_at
    assert restored.published is True


def test_from_json_keeps_unknown_event_type():
    event = make_event(3)
    event.event_type = "custom.type"
    assert OutboxEvent.from_json(event.to_json()).event_type == "custom.type"


def test_from_json_rejects_non_object():
    with pytest.raises(ValueError):
        OutboxEvent.from_json("[1, 2]")


def test_poll_publishes_oldest_first_up_to_batch_size(db):
    repo = OutboxRepository(db)
    for index in (2, 1, 0):
        repo.save(make_event(index, BASE + timedelta(seconds=index)))
    publisher = RecordingPublisher()

    count = OutboxService(db).poll_and_publish(publisher, 2)

    assert count == 2
    assert [e.id for e in publisher.published] == ["evt-0", "evt-1"]
    assert published_flag(db, "evt-0")[0] == 1
    assert published_flag(db, "evt-2") == (0, None)


def test_published_events_are_not_sent_again(db):
    repo = OutboxRepository(db)
    repo.save(make_event(0))
    service = OutboxService(db)
    first = RecordingPublisher()
    second = RecordingPublisher()

    service.poll_and_publish(first, 10)
    count = service.poll_and_publish(second, 10)

    assert len(first.published) == 1
    assert count == 0
    assert second.published == []


def test_failed_publication_stays_pending(db):
    repo = OutboxRepository(db)
    repo.save(make_event(0, BASE))
    repo.save(make_event(1, BASE + timedelta(seconds=1)))
    publisher = RecordingPublisher(fail_ids={"evt-0"})

    count = OutboxService(db).poll_and_publish(publisher, 10)

    assert count == 1
    assert [e.id for e in publisher.published] == ["evt-1"]
    assert published_flag(db, "evt-0") == (0, None)


def test_polled_event_keeps_payload_and_type(db):
    OutboxRepository(db).save(make_event(5))
    publisher = RecordingPublisher()
    OutboxService(db).poll_and_publish(publisher, 1)
    event = publisher.published[0]
    assert event.payload == b'{"n":5}'
    assert event.event_type is EventType.SURPLUS_POSTED
    assert event.created_at == BASE


def test_publish_with_transaction_stamps_event(db):
    service = OutboxService(db)
    original = make_event(1)
    with db:
        stored = service.publish_with_transaction(db, original)
    assert len(stored.trace_id) == 32
    assert stored.created_at >= original.created_at
    assert original.trace_id == ""
    count = db.execute("SELECT COUNT(*) FROM outbox_events").fetchone()[0]
    assert count == 1


def test_publish_with_transaction_keeps_existing_trace_id(db):
    event = make_event(1)
    event.trace_id = "trace-given"
    stored = OutboxService(db).publish_with_transaction(db, event)
    db.commit()
    assert stored.trace_id == "trace-given"


def test_publish_with_transaction_rolls_back(db):
    OutboxService(db).publish_with_transaction(db, make_event(1))
    db.rollback()
    assert db.execute("SELECT COUNT(*) FROM outbox_events").fetchone()[0] == 0


def test_repository_save_in_caller_transaction_can_roll_back(db):
    OutboxRepository(db).save(make_event(1), conn=db)
    db.rollback()
    assert db.execute("SELECT COUNT(*) FROM outbox_events").fetchone()[0] == 0


def test_repository_save_duplicate_id_fails(db):
    repo = OutboxRepository(db)
    repo.save(make_event(1))
    with pytest.raises(sqlite3.IntegrityError):
        repo.save(make_event(1))