import pytest

from pahlawan.trust import ScoreFactors, TrustService


@pytest.fixture
def service():
    return TrustService()


def test_base_score(service):
    assert service.calculate_score(ScoreFactors()) == 300


def test_verified_identity_bonus(service):
    plain = service.calculate_score(ScoreFactors(total_pickups=10))
    verified = service.calculate_score(ScoreFactors(total_pickups=10, verified_identity=True))
    assert verified - plain == 50


def test_account_age_bonus_is_capped(service):
    capped = service.calculate_score(ScoreFactors(account_age_days=200))
    older = service.calculate_score(ScoreFactors(account_age_days=10000))
    assert capped == older
    assert capped - service.calculate_score(ScoreFactors()) == 100


def test_score_truncates(service):
    assert service.calculate_score(ScoreFactors(account_age_days=3)) == 301


def test_dispute_penalty(service):
    base = service.calculate_score(ScoreFactors(total_pickups=20))
    disputed = service.calculate_score(ScoreFactors(total_pickups=20, dispute_count=1))
    assert base - disputed == 50


def test_score_floor_and_ceiling(service):
    assert service.calculate_score(ScoreFactors(ghosting_incidents=10)) == 0
    assert service.calculate_score(ScoreFactors(total_pickups=1000, verified_identity=True)) == 850


@pytest.mark.parametrize(
    "score, level",
    [
        (850, "UNICORN_SAVIOR"),
        (750, "UNICORN_SAVIOR"),
        (749, "PAHLAWAN"),
        (600, "PAHLAWAN"),
        (599, "WARGA_BAIK"),
        (400, "WARGA_BAIK"),
        (399, "PELUANG_KEDUA"),
        (0, "PELUANG_KEDUA"),
    ],
)
def test_trust_levels(service, score, level):
    assert service.trust_level(score) == level