import time

import pytest

from app.core.cache import CacheSweeper, TTLCache


@pytest.fixture
def cache(clock):
    return TTLCache(default_ttl=600, timer=clock)


def test_get_returns_fresh_value(cache):
    cache.set("k", ["Haifa"])
    assert cache.get("k") == ["Haifa"]
    assert cache.has("k")


def test_missing_key_returns_default(cache):
    assert cache.get("nope") is None
    assert cache.get("nope", "fallback") == "fallback"
    assert not cache.has("nope")


def test_entry_alive_at_exact_ttl_and_gone_after(cache, clock):
    cache.set("k", 1)
    clock.advance(600)
    assert cache.get("k") == 1
    clock.advance(0.001)
    assert cache.get("k") is None


def test_expired_read_evicts_entry(cache, clock):
    cache.set("k", 1)
    clock.advance(601)
    assert cache.has("k") is False
    assert len(cache) == 0


def test_per_entry_ttl(cache, clock):
    cache.set("short", 1, ttl=10)
    cache.set("long", 2, ttl=6 * 3600)
    clock.advance(11)
    assert cache.get("short") is None
    assert cache.get("long") == 2


def test_set_overwrites_and_restarts_clock(cache, clock):
    cache.set("k", "old")
    clock.advance(500)
    cache.set("k", "new")
    clock.advance(500)
    assert cache.get("k") == "new"


def test_falsy_values_are_cached(cache):
    cache.set("none", None)
    cache.set("empty", [])
    missing = object()
    assert cache.get("none", missing) is None
    assert cache.get("empty", missing) == []


def test_delete_and_clear(cache):
    cache.set("a", 1)
    cache.set("b", 2)
    assert cache.delete("a") is True
    assert cache.delete("a") is False
    cache.clear()
    assert len(cache) == 0


def test_cleanup_removes_only_expired(cache, clock):
    cache.set("old", 1, ttl=10)
    cache.set("older", 2, ttl=5)
    cache.set("fresh", 3)
    clock.advance(20)
    assert cache.cleanup() == 2
    assert cache.stats().keys == ["fresh"]


def test_touch_extends_life(cache, clock):
    cache.set("k", 1, ttl=10)
    clock.advance(8)
    assert cache.touch("k", ttl=30) is True
    clock.advance(25)
    assert cache.get("k") == 1
    assert cache.touch("missing") is False


def test_stats(cache):
    cache.set("a", 1)
    cache.set("b", 2)
    stats = cache.stats()
    assert stats.size == 2
    assert sorted(stats.keys) == ["a", "b"]


def test_maxsize_bounds_memory(clock):
    cache = TTLCache(default_ttl=600, maxsize=3, timer=clock)
    for i in range(5):
        cache.set(f"k{i}", i)
    assert len(cache) == 3
    assert cache.get("k4") == 4


def test_sweeper_evicts_in_background():
    cache = TTLCache(default_ttl=0.01)
    cache.set("k", 1)
    sweeper = CacheSweeper(cache, interval=0.01)
    sweeper.start()
    try:
        deadline = time.monotonic() + 2
        while len(cache) and time.monotonic() < deadline:
            time.sleep(0.01)
    finally:
        sweeper.stop()
    assert len(cache) == 0
    assert not sweeper.running


def test_sweeper_start_is_idempotent_and_stop_is_safe(cache):
    sweeper = CacheSweeper(cache, interval=60)
    sweeper.stop()
    sweeper.start()
    sweeper.start()
    assert sweeper.running
    sweeper.stop()
    assert not sweeper.running


def test_sweeper_rejects_bad_interval(cache):
    with pytest.raises(ValueError):
        CacheSweeper(cache, interval=0)
