"""Shared fixtures for the session-state-lock test suite."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from session_state_lock.keys import KeyDeriver
from session_state_lock.store.memory import InMemoryStoreClient


class FakeClock:
    """Settable UTC wall clock for lock ages."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class FakeMonotonic:
    """Settable monotonic clock for store TTLs."""

    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def monotonic() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture()
def store(monotonic: FakeMonotonic) -> InMemoryStoreClient:
    return InMemoryStoreClient(clock=monotonic)


@pytest.fixture()
def deriver() -> KeyDeriver:
    return KeyDeriver("test", "sessions", "app")
