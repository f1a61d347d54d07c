import pytest

from pahlawan.matching.super_app import (
    FulfillmentError,
    FulfillmentOption,
    RecommendationEngine,
    SurplusCandidate,
    VoucherService,
    orchestrate_fulfillment,
)


def _candidates():
    return [
        SurplusCandidate("far-cheap", 8.0, 3.5, 60.0, True),
        SurplusCandidate("near-good", 0.5, 4.8, 50.0, True),
        SurplusCandidate("unsafe", 0.2, 5.0, 90.0, False),
        SurplusCandidate("mid", 2.0, 4.0, 30.0, True),
    ]


def test_rank_surplus_sorted_descending():
    ranked = RecommendationEngine().rank_surplus(_candidates())
    scores = [c.final_score for c in ranked]
    assert scores == sorted(scores, reverse=True)
    assert {c.id for c in ranked} == {c.id for c in _candidates()}


def test_rank_surplus_unsafe_last():
    ranked = RecommendationEngine().rank_surplus(_candidates())
    assert ranked[-1].id == "unsafe"
    assert ranked[0].id == "near-good"


def test_unsafe_penalty_is_ten_points():
    engine = RecommendationEngine()
    safe = engine.rank_surplus([SurplusCandidate("a", 1.0, 4.0, 50.0, True)])[0]
    unsafe = engine.rank_surplus([SurplusCandidate("a", 1.0, 4.0, 50.0, False)])[0]
    assert safe.final_score - unsafe.final_score == pytest.approx(10.0)


def test_closer_candidate_scores_higher():
    engine = RecommendationEngine()
    ranked = engine.rank_surplus(
        [
            SurplusCandidate("far", 10.0, 4.0, 50.0),
            SurplusCandidate("near", 0.1, 4.0, 50.0),
        ]
    )
    assert [c.id for c in ranked] == ["near", "far"]


def test_detect_flash_sale_threshold():
    candidates = [
        SurplusCandidate("exact", 1.0, 4.0, 80.0),
        SurplusCandidate("below", 1.0, 4.0, 79.9),
        SurplusCandidate("deep", 1.0, 4.0, 95.0),
    ]
    assert RecommendationEngine().detect_flash_sale(candidates) == ["exact", "deep"]


def test_detect_flash_sale_empty():
    assert RecommendationEngine().detect_flash_sale([]) == []


def test_voucher_new_user_requires_minimum_order():
    vouchers = VoucherService()
    assert vouchers.validate_voucher("PAHLAWANBARU", 60000) == 15000
    assert vouchers.validate_voucher("PAHLAWANBARU", 50000) is None


def test_voucher_zero_waste_is_percentage():
    assert VoucherService().validate_voucher("ZEROWASTE", 100.0) == pytest.approx(20.0)


def test_voucher_unknown_code():
    assert VoucherService().validate_voucher("UNKNOWN", 100000) is None


def test_self_pickup_nearby():
    status = orchestrate_fulfillment(
        FulfillmentOption.SELF_PICKUP, -6.2088, 106.8456, -6.2100, 106.8460
    )
    assert status.method is FulfillmentOption.SELF_PICKUP
    assert status.verification_code == "PAH-PICK-77"
    assert 0 < status.distance_to_store < 5000
    assert status.tracking_id == ""


def test_self_pickup_too_far():
    with pytest.raises(FulfillmentError, match="distance too far for self-pickup"):
        orchestrate_fulfillment(
            FulfillmentOption.SELF_PICKUP, -6.2088, 106.8456, -6.9175, 107.6191
        )


def test_courier_fulfillment_ignores_distance():
    status = orchestrate_fulfillment("courier", -6.2088, 106.8456, -6.9175, 107.6191)
    assert status.method is FulfillmentOption.COURIER
    assert status.tracking_id == "GK-123-RESCUE"
    assert status.to_dict()["method"] == "courier"