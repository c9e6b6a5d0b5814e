import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional

from .models import (
    Coupon,
    CouponStatus,
    EvaluationResult,
    Outcome,
    RepeatCountType,
    StatusCategory,
    UserUsage,
)
from .storage import CouponRegistry

log = logging.getLogger(__name__)


MESSAGES: Dict[Outcome, str] = {
    Outcome.NOT_FOUND: "Coupon not found",
    Outcome.GLOBAL_LIMIT_REACHED: "Coupon usage limit has been reached",
    Outcome.USER_TOTAL_LIMIT_REACHED: "User has reached the total usage limit for this coupon",
    Outcome.USER_DAILY_LIMIT_REACHED: "User has reached the daily usage limit for this coupon",
    Outcome.USER_WEEKLY_LIMIT_REACHED: "User has reached the weekly usage limit for this coupon",
    Outcome.VALID: "Coupon is valid",
}


def make_result(outcome: Outcome) -> EvaluationResult:
    if outcome is Outcome.VALID:
        category = StatusCategory.OK
    elif outcome is Outcome.NOT_FOUND:
        category = StatusCategory.NOT_FOUND
    else:
        category = StatusCategory.REJECTED
    return EvaluationResult(outcome=outcome, message=MESSAGES[outcome], statusCategory=category)


# ---------------------------
# Time buckets
# ---------------------------

def utc_date(now: datetime) -> date:
    # naive datetimes are taken to be UTC already
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date()


def day_bucket_key(now: datetime) -> str:
    return utc_date(now).isoformat()


def week_bucket_key(now: datetime) -> str:
    """ISO-8601 week key, e.g. ``2022-W52``.

    The ISO week-year is part of the key, so week 1 of different years never
    share a bucket. Around new year the week-year may differ from the
    calendar year (2023-01-01 falls in 2022-W52).
    """
    year, week, _ = utc_date(now).isocalendar()
    return f"{year}-W{week:02d}"


def week_start(key: str) -> date:
    year, week = key.split("-W")
    return date.fromisocalendar(int(year), int(week), 1)


def prune_buckets(usage: UserUsage, now: datetime, retention_weeks: int) -> int:
    """Drop buckets older than ``retention_weeks`` ISO weeks before the week of ``now``.

    The current day and week buckets are always kept. ``total`` is untouched.
    Returns the number of buckets removed.
    """
    today = utc_date(now)
    cutoff = today - timedelta(days=today.weekday()) - timedelta(weeks=retention_weeks)

    stale_days = [key for key in usage.dayBuckets if date.fromisoformat(key) < cutoff]
    stale_weeks = [key for key in usage.weekBuckets if week_start(key) < cutoff]
    for key in stale_days:
        del usage.dayBuckets[key]
    for key in stale_weeks:
        del usage.weekBuckets[key]
    return len(stale_days) + len(stale_weeks)


# ---------------------------
# Evaluation
# ---------------------------

def check_coupon(coupon: Coupon, user_id: Optional[str], now: datetime) -> Outcome:
    """Run the limit checks in precedence order; the first failure wins."""
    rule = coupon.rule_for(RepeatCountType.GLOBAL_TOTAL)
    if rule is not None and rule.limit is not None and coupon.usageCount >= rule.limit:
        return Outcome.GLOBAL_LIMIT_REACHED

    if not user_id:
        return Outcome.VALID

    usage = coupon.userUsage.get(user_id)
    if usage is None:
        usage = UserUsage()

    rule = coupon.rule_for(RepeatCountType.USER_TOTAL)
    if rule is not None and rule.limit is not None and usage.total >= rule.limit:
        return Outcome.USER_TOTAL_LIMIT_REACHED

    rule = coupon.rule_for(RepeatCountType.USER_DAILY)
    if rule is not None and rule.limit is not None:
        if usage.dayBuckets.get(day_bucket_key(now), 0) >= rule.limit:
            return Outcome.USER_DAILY_LIMIT_REACHED

    rule = coupon.rule_for(RepeatCountType.USER_WEEKLY)
    if rule is not None and rule.limit is not None:
        if usage.weekBuckets.get(week_bucket_key(now), 0) >= rule.limit:
            return Outcome.USER_WEEKLY_LIMIT_REACHED

    return Outcome.VALID


def evaluate(
    registry: CouponRegistry,
    code: str,
    user_id: Optional[str],
    now: datetime,
) -> EvaluationResult:
    """Decide whether ``code`` may be redeemed at ``now``. Never mutates state."""
    coupon = registry.lookup(code)
    if coupon is None:
        return make_result(Outcome.NOT_FOUND)
    return make_result(check_coupon(coupon, user_id, now))


def record_usage(coupon: Coupon, user_id: Optional[str], now: datetime) -> None:
    coupon.usageCount += 1
    if not user_id:
        return

    usage = coupon.userUsage.get(user_id)
    if usage is None:
        usage = coupon.userUsage[user_id] = UserUsage()
    usage.total += 1

    day = day_bucket_key(now)
    usage.dayBuckets[day] = usage.dayBuckets.get(day, 0) + 1

    week = week_bucket_key(now)
    usage.weekBuckets[week] = usage.weekBuckets.get(week, 0) + 1


def apply_coupon(
    registry: CouponRegistry,
    code: str,
    user_id: Optional[str],
    now: datetime,
    retention_weeks: Optional[int] = None,
) -> EvaluationResult:
    """Evaluate and, when valid, record one redemption.

    Both steps run under the coupon's lock, so two concurrent redemptions
    can never both take the last remaining slot.
    """
    coupon = registry.lookup(code)
    if coupon is None:
        log.info("Redemption of unknown coupon %s rejected", code)
        return make_result(Outcome.NOT_FOUND)

    with coupon.lock:
        outcome = check_coupon(coupon, user_id, now)
        if outcome is not Outcome.VALID:
            log.info("Redemption of %s by %s rejected: %s", code, user_id, outcome.value)
            return make_result(outcome)

        record_usage(coupon, user_id, now)
        if retention_weeks is not None and user_id:
            removed = prune_buckets(coupon.userUsage[user_id], now, retention_weeks)
            if removed:
                log.debug("Pruned %d stale buckets for %s/%s", removed, code, user_id)

        log.info("Coupon %s redeemed by %s (global usage %d)", code, user_id, coupon.usageCount)
        if log.isEnabledFor(logging.DEBUG):
            log.debug("Coupon status: %s", coupon_status(coupon).model_dump_json())

    return make_result(Outcome.VALID)


def redeem(
    registry: CouponRegistry,
    code: str,
    user_id: Optional[str],
    now: datetime,
    retention_weeks: Optional[int] = None,
) -> bool:
    return apply_coupon(registry, code, user_id, now, retention_weeks).is_valid


def coupon_status(coupon: Coupon) -> CouponStatus:
    return CouponStatus(
        code=coupon.code,
        limitRules=[rule.model_copy() for rule in coupon.limitRules],
        usageCount=coupon.usageCount,
        userUsage={user_id: usage.model_copy(deep=True) for user_id, usage in coupon.userUsage.items()},
    )
