import os

# Keep the developer's environment out of Settings() in tests.
for _name in list(os.environ):
    if _name.startswith(("NAV_", "ROUTING_")):
        del os.environ[_name]

import pytest
import simpy

from navigation.models import Route
from navigation.position_source import PushPositionStream
from nav_logging import LogContext
from settings import NavigationSettings
from tests.factories import START_TIME, make_route


@pytest.fixture(autouse=True)
def clear_log_context():
    """Each test starts without leftover session log fields."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def route() -> Route:
    """11-point eastbound route with instructions [0,4], [4,8], [8,10]."""
    return make_route()


@pytest.fixture
def ten_point_route() -> Route:
    return make_route(count=10, bounds=((0, 3), (3, 6), (6, 9)))


@pytest.fixture
def env() -> simpy.Environment:
    return simpy.Environment()


@pytest.fixture
def nav_settings() -> NavigationSettings:
    return NavigationSettings()


@pytest.fixture
def stream() -> PushPositionStream:
    return PushPositionStream()


@pytest.fixture
def fixed_clock():
    """Wall clock frozen at START_TIME."""
    return lambda: START_TIME
