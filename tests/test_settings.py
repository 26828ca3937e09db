from __future__ import annotations

import pytest

from rewards_bot.config.settings import Settings

BASE_ENV = {
    "BOT_TOKEN": "123:abc",
    "BOT_USERNAME": "coffee_rewards_bot",
    "SCORE_SECRET": "s3cret",
}


def test_defaults():
    s = Settings.load(dict(BASE_ENV))

    assert s.timezone == "Europe/Kyiv"
    assert s.spin_radius_meters == 100.0
    assert s.redeem_cost_points == 100
    assert s.redeem_code_ttl_minutes == 15
    assert s.arcade_daily_points_cap == 25
    assert s.root_admin_ids == ()
    assert s.owner_chat_id is None
    assert s.is_dev is False


@pytest.mark.parametrize("missing", ["BOT_TOKEN", "BOT_USERNAME", "SCORE_SECRET"])
def test_required_values_fail_fast(missing):
    env = dict(BASE_ENV)
    env[missing] = "  "

    with pytest.raises(RuntimeError, match=missing):
        Settings.load(env)


def test_id_lists_and_overrides():
    env = dict(
        BASE_ENV,
        ROOT_ADMIN_IDS="[111, 222 333]",
        GEO_BYPASS_IDS="444",
        OWNER_CHAT_ID="-100500",
        SPIN_RADIUS_METERS="150.5",
        TTT_WIN_POINTS="3",
        TTT_MAX_WINS_PER_DAY="4",
        ENVIRONMENT="development",
    )
    s = Settings.load(env)

    assert s.root_admin_ids == (111, 222, 333)
    assert s.geo_bypass_ids == (444,)
    assert s.owner_chat_id == -100500
    assert s.spin_radius_meters == 150.5
    assert s.ttt_win_points == 3
    assert s.ttt_max_wins_per_day == 4
    assert s.ttt_daily_points_cap == 12
    assert s.is_dev is True


def test_invalid_integer_is_reported():
    with pytest.raises(RuntimeError, match="REDEEM_COST_POINTS"):
        Settings.load(dict(BASE_ENV, REDEEM_COST_POINTS="lots"))
