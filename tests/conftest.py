import pytest

from fleetplan.config import settings
from fleetplan.services.ratelimit import rate_limiter


@pytest.fixture(autouse=True)
def reset_rate_limiter():
    rate_limiter.reset()
    yield
    rate_limiter.reset()


@pytest.fixture(autouse=True)
def no_call_delay(monkeypatch):
    monkeypatch.setattr(settings, "oracle_call_delay_seconds", 0.0)
