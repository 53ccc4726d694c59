try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from royalty_analytics.utils.cache import TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache: TTLCache[str] = TTLCache(ttl_seconds=10, clock=clock)

    cache.set("acct", "acct_123")
    clock.now += 9.9
    assert cache.get("acct") == "acct_123"

    clock.now += 0.1
    assert cache.get("acct") is None
    assert len(cache) == 0


def test_per_entry_ttl_overrides_default():
    clock = FakeClock()
    cache: TTLCache[int] = TTLCache(ttl_seconds=60, clock=clock)

    cache.set("short", 1, ttl=1)
    cache.set("long", 2)
    clock.now += 2

    assert cache.get("short") is None
    assert cache.get("long") == 2


def test_capacity_evicts_least_recently_used():
    cache: TTLCache[int] = TTLCache(capacity=2, clock=FakeClock())

    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.get("a") == 1
    cache.set("c", 3)

    assert cache.get("b") is None
    assert cache.get("a") == 1
    assert cache.get("c") == 3
    assert len(cache) == 2


def test_expired_entries_are_pruned_before_eviction():
    clock = FakeClock()
    cache: TTLCache[int] = TTLCache(capacity=2, ttl_seconds=5, clock=clock)

    cache.set("old", 1, ttl=1)
    cache.set("keep", 2)
    clock.now += 2
    cache.set("new", 3)

    assert cache.get("keep") == 2
    assert cache.get("new") == 3


@pytest.mark.parametrize("kwargs", [{"capacity": 0}, {"ttl_seconds": 0}, {"ttl_seconds": -1}])
def test_invalid_configuration_is_rejected(kwargs):
    with pytest.raises(ValueError):
        TTLCache(**kwargs)
