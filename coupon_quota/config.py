"""Service configuration.

Quota limits are read from the environment (or a ``.env`` file). A limit that
is unset or blank means no rule is configured for that scope, and coupons
created while it is unset never check it.
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import LimitRule, RepeatCountType


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    global_total_limit: Optional[int] = Field(default=None, ge=0)
    user_total_limit: Optional[int] = Field(default=None, ge=0)
    user_daily_limit: Optional[int] = Field(default=None, ge=0)
    user_weekly_limit: Optional[int] = Field(default=None, ge=0)
    # prune day/week buckets older than this many ISO weeks; None keeps everything
    bucket_retention_weeks: Optional[int] = Field(default=None, ge=1)

    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000

    @field_validator(
        "global_total_limit",
        "user_total_limit",
        "user_daily_limit",
        "user_weekly_limit",
        "bucket_retention_weeks",
        mode="before",
    )
    @classmethod
    def blank_as_unset(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


@lru_cache
def get_settings() -> Settings:
    return Settings()


def limit_rules(settings: Settings) -> List[LimitRule]:
    """Snapshot the configured limits, one rule per scope in precedence order."""
    return [
        LimitRule(countType=RepeatCountType.GLOBAL_TOTAL, limit=settings.global_total_limit),
        LimitRule(countType=RepeatCountType.USER_TOTAL, limit=settings.user_total_limit),
        LimitRule(countType=RepeatCountType.USER_DAILY, limit=settings.user_daily_limit),
        LimitRule(countType=RepeatCountType.USER_WEEKLY, limit=settings.user_weekly_limit),
    ]
