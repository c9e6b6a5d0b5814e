from .logic import apply_coupon, evaluate, redeem
from .models import Coupon, EvaluationResult, LimitRule, Outcome, RepeatCountType, UserUsage
from .storage import CouponRegistry, DuplicateCouponError

__all__ = [
    "Coupon",
    "CouponRegistry",
    "DuplicateCouponError",
    "EvaluationResult",
    "LimitRule",
    "Outcome",
    "RepeatCountType",
    "UserUsage",
    "apply_coupon",
    "evaluate",
    "redeem",
]
