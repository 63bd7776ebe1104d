"""Fixtures for widelog unit tests."""

from __future__ import annotations

import pytest

from widelog.backends.memory import InMemoryBackend
from widelog.config import load_settings
from widelog.logger import WideLogger
from widelog.sampling import SamplingPolicy

from tests.utils.widelog import RecordingBackend, reset_widelog_state


def pytest_collection_modifyitems(config, items):  # pragma: no cover - Pytest hook
    """Tag every test in this directory with the `widelog` marker."""

    for item in items:
        item.add_marker(pytest.mark.widelog)


@pytest.fixture(autouse=True)
def _reset_widelog_state():
    """Reset widelog globals (default logger, settings, metrics) around each test."""

    reset_widelog_state()
    yield
    reset_widelog_state()


@pytest.fixture
def widelog_settings():
    """Deterministic settings wired to the in-memory backend."""

    return load_settings(
        {
            "WIDELOG_SERVICE_NAME": "widelog-unit-tests",
            "WIDELOG_ENV": "test",
            "WIDELOG_BACKEND": "memory",
            "WIDELOG_SAMPLE_RATE": "1",
        }
    )


@pytest.fixture
def recording_backend():
    return RecordingBackend()


@pytest.fixture
def memory_backend():
    return InMemoryBackend()


@pytest.fixture
def wide_logger(recording_backend):
    """Logger that keeps every event."""

    return WideLogger(recording_backend, SamplingPolicy(rate=1.0))
