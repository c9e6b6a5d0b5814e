import threading
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, PrivateAttr, field_validator


class RepeatCountType(str, Enum):
    GLOBAL_TOTAL = "global_total"
    USER_TOTAL = "user_total"
    USER_DAILY = "user_daily"
    USER_WEEKLY = "user_weekly"


# precedence order of the checks
SCOPES: List[RepeatCountType] = [
    RepeatCountType.GLOBAL_TOTAL,
    RepeatCountType.USER_TOTAL,
    RepeatCountType.USER_DAILY,
    RepeatCountType.USER_WEEKLY,
]


class LimitRule(BaseModel):
    countType: RepeatCountType
    limit: Optional[int] = Field(default=None, ge=0)  # None -> unbounded


class UserUsage(BaseModel):
    total: int = 0
    dayBuckets: Dict[str, int] = Field(default_factory=dict)   # "YYYY-MM-DD" -> count
    weekBuckets: Dict[str, int] = Field(default_factory=dict)  # "YYYY-Www" -> count


class Coupon(BaseModel):
    code: str
    limitRules: List[LimitRule] = Field(default_factory=list)
    usageCount: int = 0
    userUsage: Dict[str, UserUsage] = Field(default_factory=dict)

    _lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    @property
    def lock(self) -> threading.Lock:
        return self._lock

    def rule_for(self, count_type: RepeatCountType) -> Optional[LimitRule]:
        for rule in self.limitRules:
            if rule.countType == count_type:
                return rule
        return None


class Outcome(str, Enum):
    NOT_FOUND = "NOT_FOUND"
    GLOBAL_LIMIT_REACHED = "GLOBAL_LIMIT_REACHED"
    USER_TOTAL_LIMIT_REACHED = "USER_TOTAL_LIMIT_REACHED"
    USER_DAILY_LIMIT_REACHED = "USER_DAILY_LIMIT_REACHED"
    USER_WEEKLY_LIMIT_REACHED = "USER_WEEKLY_LIMIT_REACHED"
    VALID = "VALID"


class StatusCategory(str, Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    REJECTED = "rejected"


class EvaluationResult(BaseModel):
    outcome: Outcome
    message: str
    statusCategory: StatusCategory

    @property
    def is_valid(self) -> bool:
        return self.outcome is Outcome.VALID


# ---------------------------
# HTTP schemas
# ---------------------------

class CreateCouponRequest(BaseModel):
    code: str = Field(min_length=1)

    @field_validator("code")
    @classmethod
    def code_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("code must not be blank")
        return v


class MessageResponse(BaseModel):
    message: str


class VerifyResponse(BaseModel):
    isValid: bool
    outcome: Outcome
    message: str


class CouponStatus(BaseModel):
    code: str
    limitRules: List[LimitRule]
    usageCount: int
    userUsage: Dict[str, UserUsage]
