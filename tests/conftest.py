"""Pytest fixtures: settings with known limits, a fresh registry, a test client with a fixed clock."""
import pytest
from fastapi.testclient import TestClient

from coupon_quota.main import create_app, get_clock
from coupon_quota.storage import CouponRegistry
from tests.helpers import at, make_settings


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def registry(settings):
    return CouponRegistry(settings)


class FrozenClock:
    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FrozenClock(at("2023-01-02T12:00"))


@pytest.fixture
def app(settings, registry, clock):
    app = create_app(settings=settings, registry=registry)
    app.dependency_overrides[get_clock] = clock
    return app


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
