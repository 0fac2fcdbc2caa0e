import os
from datetime import datetime, timedelta, timezone

import pytest

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from src.api.main import app  # noqa: E402
from src.api.repositories import InMemoryRepository, get_repository  # noqa: E402


class FakeClock:
    """Deterministic clock: every call returns the current value, then advances by `step`."""

    def __init__(self, start=datetime(2025, 1, 15, 10, 30, tzinfo=timezone.utc), step=timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self):
        value = self.now
        self.now = self.now + self.step
        return value


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def repo():
    """Fresh in-memory store behind the API for every test."""
    repository = InMemoryRepository()
    app.dependency_overrides[get_repository] = lambda: repository
    yield repository
    app.dependency_overrides.clear()
