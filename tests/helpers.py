from datetime import datetime, timezone

from coupon_quota.config import Settings


def make_settings(**overrides) -> Settings:
    values = dict(
        global_total_limit=10,
        user_total_limit=3,
        user_daily_limit=1,
        user_weekly_limit=2,
        bucket_retention_weeks=None,
    )
    values.update(overrides)
    return Settings(_env_file=None, **values)


def at(iso: str) -> datetime:
    """UTC instant from an ISO string, e.g. ``at("2023-01-02T10:00")``."""
    return datetime.fromisoformat(iso).replace(tzinfo=timezone.utc)
