import logging
import threading
from typing import Dict, List, Optional

from .config import Settings, get_settings, limit_rules
from .models import Coupon, LimitRule

log = logging.getLogger(__name__)


class DuplicateCouponError(ValueError):
    def __init__(self, code: str):
        super().__init__(f"Coupon code '{code}' already exists")
        self.code = code


class CouponRegistry:
    """In-memory store of coupons keyed by their (case-sensitive) code.

    Creation is serialized by a registry lock; lookups are plain dict reads
    and may run concurrently. Per-coupon counter updates are guarded by each
    coupon's own lock (see ``logic.apply_coupon``).
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings
        self._lock = threading.Lock()
        # code -> Coupon
        self._coupons: Dict[str, Coupon] = {}

    @property
    def settings(self) -> Settings:
        return self._settings if self._settings is not None else get_settings()

    def create_coupon(self, code: str, rules: Optional[List[LimitRule]] = None) -> Coupon:
        """Store a new coupon with zero counters.

        Without explicit ``rules`` the currently configured limits are
        snapshotted; later configuration changes do not affect the coupon.
        """
        if not code or not code.strip():
            raise ValueError("Coupon code must not be blank")
        if rules is None:
            rules = limit_rules(self.settings)
        rules = [rule.model_copy() for rule in rules]
        if len({rule.countType for rule in rules}) != len(rules):
            raise ValueError("Limit rule scopes must be unique")

        with self._lock:
            if code in self._coupons:
                log.warning("Duplicate coupon code rejected: %s", code)
                raise DuplicateCouponError(code)
            coupon = Coupon(code=code, limitRules=rules)
            self._coupons[code] = coupon

        log.info(
            "Coupon %s created with limits %s",
            code,
            {rule.countType.value: rule.limit for rule in rules},
        )
        return coupon

    def lookup(self, code: str) -> Optional[Coupon]:
        return self._coupons.get(code)

    def list_coupons(self) -> List[Coupon]:
        return list(self._coupons.values())

    def __contains__(self, code: str) -> bool:
        return code in self._coupons

    def __len__(self) -> int:
        return len(self._coupons)
