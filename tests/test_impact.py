from datetime import datetime, timezone

from pahlawan.impact import DEFAULT_SHARE_BASE_URL, ImpactService

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def service():
    return ImpactService(clock=lambda: NOW)


def test_user_impact_figures():
    impact = service().user_impact("user-1")
    assert impact.user_id == "user-1"
    assert impact.total_saved_kgs == 42.5
    assert impact.co2_prevented == impact.total_saved_kgs * 2.5
    assert impact.last_update == NOW
    assert impact.badges[0] == "Earth_Hero_2026"


def test_leaderboard_for_region():
    board = service().national_leaderboard("Jawa Barat")
    assert board.region == "Jawa Barat"
    assert board.top_city == "Bandung (The Greenest City)"
    assert [r.user_id for r in board.rankings] == ["User_A", "User_B", "User_C"]


def test_leaderboard_sorted_by_karma():
    karma = [r.karma_points for r in service().national_leaderboard("x").rankings]
    assert karma == sorted(karma, reverse=True)


def test_share_card_url_default_base():
    url = service().share_card_url("claim-9")
    assert url == f"{DEFAULT_SHARE_BASE_URL}/card-claim-9.jpg"


def test_share_card_url_custom_base_strips_slash():
    svc = ImpactService(share_base_url="https://cdn.example.com/cards/")
    assert svc.share_card_url("c1") == "https://cdn.example.com/cards/card-c1.jpg"