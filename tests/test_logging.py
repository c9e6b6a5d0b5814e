"""Logging setup and redemption log records."""
import logging

from coupon_quota.logging import setup_logging
from coupon_quota.logic import redeem
from tests.helpers import at


def test_setup_logging_sets_levels():
    root = logging.getLogger()
    saved = (root.level, root.handlers[:])
    try:
        setup_logging(level="debug")
        assert logging.getLogger("coupon_quota").level == logging.DEBUG
        assert logging.getLogger("uvicorn.access").level == logging.DEBUG
    finally:
        root.handlers[:] = saved[1]
        root.setLevel(saved[0])
        logging.getLogger("coupon_quota").setLevel(logging.NOTSET)
        for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
            logging.getLogger(name).setLevel(logging.NOTSET)


def test_redemptions_are_logged(registry, caplog):
    registry.create_coupon("TEST123")
    with caplog.at_level(logging.DEBUG, logger="coupon_quota"):
        redeem(registry, "TEST123", "user1", at("2023-01-02T10:00"))
        redeem(registry, "TEST123", "user1", at("2023-01-02T11:00"))

    messages = [r.getMessage() for r in caplog.records]
    assert any("redeemed by user1" in m for m in messages)
    assert any("USER_DAILY_LIMIT_REACHED" in m for m in messages)
    assert any(m.startswith("Coupon status:") for m in messages)
