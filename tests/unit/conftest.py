"""Common lightweight fixtures shared across unit test suites."""

from __future__ import annotations

import random
from typing import Generator

import pytest


@pytest.fixture(autouse=True)
def deterministic_random_seed() -> Generator[None, None, None]:
    """Keep Python's RNG deterministic so flaky tests surface quickly."""

    state = random.getstate()
    random.seed(1337)
    yield
    random.setstate(state)


@pytest.fixture
def baseline_app_config() -> dict[str, object]:
    """Baseline configuration applied to Flask apps in unit tests."""

    return {
        "TESTING": True,
        "SERVER_NAME": "widelog.local",
        "PREFERRED_URL_SCHEME": "http",
    }
