import sqlite3
from datetime import datetime, timedelta, timezone

import pytest

from pahlawan.domain import SurplusItem
from pahlawan.surplus import SqlSurplusRepository, SurplusService

EXPIRY = datetime(2024, 1, 1, 20, 0, tzinfo=timezone.utc)
JAKARTA = (-6.2088, 106.8456)
BANDUNG = (-6.9175, 107.6191)


@pytest.fixture
def repo():
    conn = sqlite3.connect(":memory:")
    repository = SqlSurplusRepository(conn)
    repository.create_schema()
    yield repository
    conn.close()


def item(item_id, location=JAKARTA, status="available"):
    return SurplusItem(
        id=item_id,
        provider_id="provider-1",
        food_type="Roti",
        quantity_kgs=4.0,
        status=status,
        expiry_time=EXPIRY,
        latitude=location[0],
        longitude=location[1],
    )


def test_store_and_get_round_trip(repo):
    stored = item("s-1")
    repo.store(stored)
    assert repo.get_by_id("s-1") == stored


def test_get_missing_raises(repo):
    with pytest.raises(LookupError):
        repo.get_by_id("missing")


def test_fetch_filters_by_radius_nearest_first(repo):
    repo.store(item("far", BANDUNG))
    repo.store(item("near2", (JAKARTA[0] + 0.01, JAKARTA[1])))
    repo.store(item("near1", JAKARTA))
    found = repo.fetch(JAKARTA[0], JAKARTA[1], 5000)
    assert [i.id for i in found] == ["near1", "near2"]


def test_update_changes_row(repo):
    repo.store(item("s-1"))
    changed = item("s-1", status="expired")
    changed.expiry_time = EXPIRY + timedelta(hours=1)
    repo.update(changed)
    assert repo.get_by_id("s-1") == changed


def test_update_missing_raises(repo):
    with pytest.raises(LookupError):
        repo.update(item("missing"))


def test_post_surplus_marks_available(repo):
    svc = SurplusService(repo)
    svc.post_surplus(item("s-1", status=""))
    assert repo.get_by_id("s-1").status == "available"


def test_marketplace_uses_five_km(repo):
    svc = SurplusService(repo)
    svc.post_surplus(item("near", JAKARTA))
    svc.post_surplus(item("far", BANDUNG))
    assert [i.id for i in svc.marketplace(*JAKARTA)] == ["near"]


def test_claim_once_only(repo):
    svc = SurplusService(repo)
    svc.post_surplus(item("s-1"))
    assert svc.claim("s-1", "ngo-1").status == "claimed"
    assert repo.get_by_id("s-1").status == "claimed"
    with pytest.raises(ValueError):
        svc.claim("s-1", "ngo-2")


def test_analyze_freshness(repo):
    report = SurplusService(repo).analyze_freshness(b"\x89PNG")
    assert report.health_score == "Grade A"
    assert report.advice == "Sangat bergizi!"