"""
Pytest configuration and shared fixtures for Stalesweep tests.

Provides common setup used across unit tests: fake clocks, a fake
directory client and sample device datasets.
"""
import pytest
from unittest.mock import Mock

from stalesweep.models import CleanupPolicy
from stalesweep.progress import ProgressTracker
from tests.fixtures.mock_data import (
    BASE_TIME,
    FakeDirectoryClient,
    create_mock_device,
    create_mock_devices,
)


class FakeTimer:
    """Monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def tick(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def fake_timer():
    return FakeTimer()


@pytest.fixture
def tracker(fake_timer):
    """ProgressTracker driven by the fake timer."""
    return ProgressTracker(clock=fake_timer)


@pytest.fixture
def fixed_now():
    return lambda: BASE_TIME


@pytest.fixture
def policy():
    return CleanupPolicy()


@pytest.fixture
def mock_ui():
    ui = Mock()
    ui.confirm_delete.return_value = True
    return ui


@pytest.fixture
def sample_device():
    return create_mock_device()


@pytest.fixture
def make_client():
    """Factory for FakeDirectoryClient with ``count`` generated devices."""

    def _make(count: int = 0, **kwargs) -> FakeDirectoryClient:
        return FakeDirectoryClient(create_mock_devices(count), **kwargs)

    return _make


def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: marks tests as unit tests (fast, isolated)"
    )
    config.addinivalue_line(
        "markers", "api: marks tests that mock directory API interactions"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers based on test location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
