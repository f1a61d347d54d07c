from datetime import datetime

import pytest

from pahlawan.recommendation import RecommendationService

JAKARTA = (-6.2088, 106.8456)


class FixedRandom:
    def __init__(self, value):
        self.value = value

    def random(self):
        return self.value


def nudges(hour, chance):
    return RecommendationService().smart_nudges(
        "user-1", *JAKARTA, now=datetime(2024, 1, 1, hour, 0), rng=FixedRandom(chance)
    )


@pytest.mark.parametrize("hour", [16, 17, 19])
def test_tea_time_suggests_bakery(hour):
    assert [r.surplus_id for r in nudges(hour, 0.0)] == ["surplus-bakery-123"]


@pytest.mark.parametrize("hour", [10, 15, 20])
def test_outside_tea_time_nothing_without_luck(hour):
    assert nudges(hour, 0.5) == []


def test_lucky_draw_adds_mystery_box():
    recs = nudges(10, 0.9)
    assert [r.surplus_id for r in recs] == ["surplus-mystery-box"]
    assert recs[0].distance_m == 1200


def test_threshold_is_exclusive():
    assert nudges(10, 0.7) == []


def test_tea_time_and_luck_combine_in_order():
    recs = nudges(18, 0.95)
    assert [r.surplus_id for r in recs] == ["surplus-bakery-123", "surplus-mystery-box"]
    assert recs[0].to_dict()["score"] == 0.95