"""pytest configuration for traffic remote tests."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
import pytest_asyncio

from traffic_remote.config import RemoteConfig
from traffic_remote.controller import ActivationController


# Configure asyncio mode for pytest-asyncio
def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as async"
    )


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    # Long liveness tick so tests drive check_liveness() themselves
    return RemoteConfig(
        beacon_interval=3.0,
        liveness_timeout=10.0,
        liveness_check_interval=10.0,
    )


@pytest.fixture
def make_controller(config, clock):
    """Build controllers whose socket setup is mocked; datagrams are fed by hand."""

    def _make(cfg: RemoteConfig | None = None, **kwargs) -> ActivationController:
        ctl = ActivationController(cfg or config, clock=clock, **kwargs)
        ctl.listener.start = AsyncMock()
        ctl.listener.stop = AsyncMock()
        ctl.beacon.start = AsyncMock()
        ctl.beacon.stop = AsyncMock()
        return ctl

    return _make


@pytest_asyncio.fixture
async def controller(make_controller):
    ctl = make_controller()
    yield ctl
    await ctl.deactivate()
