"""
Tests unitarios para StatisticsCache.
"""
from app.shared.utils.statistics_cache import StatisticsCache


class FakeMonotonic:
    def __init__(self):
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value


def test_get_returns_value_until_ttl_expires():
    clock = FakeMonotonic()
    cache = StatisticsCache(ttl_seconds=60, clock=clock)
    cache.set(1, {"total": 3})

    clock.value += 60
    assert cache.get(1) == {"total": 3}

    clock.value += 1
    assert cache.get(1) is None
    assert len(cache) == 0


def test_invalidate_removes_only_the_given_key():
    cache = StatisticsCache(ttl_seconds=60, clock=FakeMonotonic())
    cache.set(1, "a")
    cache.set(2, "b")

    assert cache.invalidate(1) is True
    assert cache.invalidate(1) is False
    assert cache.get(1) is None
    assert cache.get(2) == "b"


def test_cleanup_removes_expired_entries():
    clock = FakeMonotonic()
    cache = StatisticsCache(ttl_seconds=10, clock=clock)
    cache.set("old", 1)
    clock.value += 20
    cache.set("fresh", 2)

    assert cache.cleanup() == 1
    assert cache.get("fresh") == 2
    assert len(cache) == 1


def test_should_refresh_after_newer_sync():
    cache = StatisticsCache(ttl_seconds=60, clock=FakeMonotonic())

    assert cache.should_refresh(7) is True

    cache.set(7, {"total": 1}, last_sync_timestamp=100.0)
    assert cache.should_refresh(7) is False
    assert cache.should_refresh(7, last_sync_timestamp=100.0) is False
    assert cache.should_refresh(7, last_sync_timestamp=150.0) is True


def test_clear_empties_the_cache():
    cache = StatisticsCache(ttl_seconds=60, clock=FakeMonotonic())
    cache.set(1, 1)
    cache.set(2, 2)

    cache.clear()

    assert len(cache) == 0
