"""Tests for the in-process TTL cache."""

import uuid

from growthpilot.utils.cache import TTLCache


class _Clock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def test_get_returns_value_until_ttl():
    clock = _Clock()
    cache = TTLCache(ttl_seconds=60, clock=clock)
    cache.set(("u1", "all"), 42)

    clock.now = 59.9
    assert cache.get(("u1", "all")) == 42
    clock.now = 60
    assert cache.get(("u1", "all")) is None
    assert len(cache) == 0


def test_zero_ttl_never_serves():
    cache = TTLCache(ttl_seconds=0, clock=_Clock())
    cache.set(("u1", "all"), 1)
    assert cache.get(("u1", "all")) is None


def test_invalidate_user_only_drops_that_user():
    user, other = uuid.uuid4(), uuid.uuid4()
    cache = TTLCache(clock=_Clock())
    cache.set((str(user), "all"), 1)
    cache.set((str(user), "client-a"), 2)
    cache.set((str(other), "all"), 3)

    assert cache.invalidate_user(user) == 2
    assert cache.get((str(user), "all")) is None
    assert cache.get((str(other), "all")) == 3


def test_full_cache_drops_expired_then_oldest():
    clock = _Clock()
    cache = TTLCache(ttl_seconds=10, max_entries=2, clock=clock)
    cache.set(("a",), 1)
    clock.now = 5
    cache.set(("b",), 2)
    clock.now = 11
    cache.set(("c",), 3)

    assert cache.get(("a",)) is None
    assert cache.get(("b",)) == 2

    cache.set(("d",), 4)
    assert cache.get(("b",)) is None
    assert cache.get(("c",)) == 3
    assert cache.get(("d",)) == 4


def test_clear():
    cache = TTLCache(clock=_Clock())
    cache.set(("a",), 1)
    cache.clear()
    assert len(cache) == 0
