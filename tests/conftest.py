"""Shared fixtures."""

import random

import pytest

from fakes import FailingPersistence, FakeClock
from mentora.memory.cache import TTLCache
from mentora.memory.store import TieredMemoryStore
from mentora.responses.fallback import FallbackSelector


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def persistence() -> FailingPersistence:
    return FailingPersistence()


@pytest.fixture
def cache(clock: FakeClock) -> TTLCache:
    return TTLCache(default_ttl=300, clock=clock.monotonic)


@pytest.fixture
def store(persistence: FailingPersistence, cache: TTLCache, clock: FakeClock) -> TieredMemoryStore:
    return TieredMemoryStore(persistence, cache, clock=clock)


@pytest.fixture
def fallback() -> FallbackSelector:
    return FallbackSelector(random_source=random.Random(42))


