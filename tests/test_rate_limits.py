from limits import parse

import admin_rewards
import user_stats


def _per_hour(limit_string):
    item = parse(limit_string)
    return item.amount * 3600 / item.get_expiry()


def test_profile_stats_allow_more_than_blanket_hourly_limit():
    assert _per_hour(user_stats.STATS_RATE_LIMIT) > 50


def test_admin_routes_allow_more_than_blanket_hourly_limit():
    assert _per_hour(admin_rewards.ADMIN_RATE_LIMIT) > 50
