"""Day/week bucket keys and bucket retention."""
from datetime import datetime, timedelta, timezone

import pytest

from coupon_quota.logic import day_bucket_key, prune_buckets, week_bucket_key, week_start
from coupon_quota.models import UserUsage
from tests.helpers import at


def test_day_key_is_utc_date():
    assert day_bucket_key(at("2023-01-01T00:00")) == "2023-01-01"
    assert day_bucket_key(at("2023-01-01T23:59:59")) == "2023-01-01"


def test_day_key_converts_aware_times_to_utc():
    eastern = timezone(timedelta(hours=-5))
    assert day_bucket_key(datetime(2023, 1, 1, 21, 0, tzinfo=eastern)) == "2023-01-02"


def test_naive_time_is_treated_as_utc():
    assert day_bucket_key(datetime(2023, 1, 1, 23, 0)) == "2023-01-01"


@pytest.mark.parametrize(
    "iso, key",
    [
        ("2023-01-01T12:00", "2022-W52"),  # Sunday, still the last ISO week of 2022
        ("2023-01-02T12:00", "2023-W01"),
        ("2023-01-08T12:00", "2023-W01"),
        ("2023-01-09T00:00", "2023-W02"),
        ("2020-12-31T12:00", "2020-W53"),
        ("2024-01-01T00:00", "2024-W01"),
        ("2024-12-30T00:00", "2025-W01"),
    ],
)
def test_week_key_uses_iso_week_year(iso, key):
    assert week_bucket_key(at(iso)) == key


def test_week_one_of_different_years_do_not_collide():
    assert week_bucket_key(at("2023-01-04T00:00")) != week_bucket_key(at("2024-01-03T00:00"))


def test_week_start_is_monday():
    assert week_start("2022-W52").isoformat() == "2022-12-26"
    assert week_start("2023-W01").isoformat() == "2023-01-02"


def test_prune_drops_only_stale_buckets():
    usage = UserUsage(
        total=4,
        dayBuckets={"2023-01-02": 1, "2023-02-20": 1, "2023-03-06": 2},
        weekBuckets={"2023-W01": 1, "2023-W08": 1, "2023-W10": 2},
    )
    removed = prune_buckets(usage, at("2023-03-06T09:00"), retention_weeks=2)

    assert removed == 2
    assert usage.dayBuckets == {"2023-02-20": 1, "2023-03-06": 2}
    assert usage.weekBuckets == {"2023-W08": 1, "2023-W10": 2}
    assert usage.total == 4


def test_prune_keeps_current_buckets_with_shortest_retention():
    usage = UserUsage(total=1, dayBuckets={"2023-03-12": 1}, weekBuckets={"2023-W10": 1})
    assert prune_buckets(usage, at("2023-03-12T23:00"), retention_weeks=1) == 0
    assert usage.dayBuckets == {"2023-03-12": 1}
    assert usage.weekBuckets == {"2023-W10": 1}
