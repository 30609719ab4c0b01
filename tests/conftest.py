# tests/conftest.py
import pytest

from tests.helpers import FakeClock
from webhook_hub.store import RequestStore


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(clock):
    return RequestStore(ttl=60, sweep_interval=30, clock=clock)
