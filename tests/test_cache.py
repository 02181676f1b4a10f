import threading
import time

import pytest

from esg_portal.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_hit_within_ttl_skips_fetcher():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    calls = []

    def fetch():
        calls.append(1)
        return {"companies": len(calls)}

    assert cache.cached_fetch("companies", 300, fetch) == {"companies": 1}
    clock.now += 299
    assert cache.cached_fetch("companies", 300, fetch) == {"companies": 1}
    assert len(calls) == 1
    assert cache._locks == {}


def test_expiry_forces_refetch():
    clock = FakeClock()
    cache = TTLCache(clock=clock)
    values = iter([1, 2])
    assert cache.cached_fetch("scores:1", 180, lambda: next(values)) == 1
    clock.now += 180
    assert cache.cached_fetch("scores:1", 180, lambda: next(values)) == 2


def test_fetch_errors_are_not_cached():
    cache = TTLCache()

    def boom():
        raise RuntimeError("down")

    with pytest.raises(RuntimeError):
        cache.cached_fetch("k", 60, boom)
    assert "k" not in cache
    assert cache.cached_fetch("k", 60, lambda: "ok") == "ok"
    assert cache._locks == {}


def test_invalidation():
    cache = TTLCache()
    for key in ("metrics:1:2026-Q1", "metrics:1:2026-Q2", "metrics:2:2026-Q1", "features"):
        cache.set(key, key, 60)

    cache.invalidate("features")
    assert "features" not in cache
    cache.invalidate_prefix("metrics:1:")
    assert "metrics:1:2026-Q1" not in cache
    assert "metrics:2:2026-Q1" in cache
    cache.clear()
    assert cache.get("metrics:2:2026-Q1") is None


def test_concurrent_callers_share_one_fetch():
    cache = TTLCache()
    calls = []
    started = threading.Event()

    def slow_fetch():
        calls.append(1)
        started.set()
        time.sleep(0.1)
        return "value"

    results = []
    threads = [threading.Thread(target=lambda: results.append(cache.cached_fetch("k", 60, slow_fetch)))
               for _ in range(5)]
    threads[0].start()
    started.wait(1)
    for t in threads[1:]:
        t.start()
    for t in threads:
        t.join()

    assert results == ["value"] * 5
    assert len(calls) == 1
    assert cache._locks == {}


def test_key_locks_do_not_accumulate():
    cache = TTLCache()
    for n in range(50):
        cache.cached_fetch(f"metrics:{n}:2026-Q1", 60, lambda: n)
    cache.invalidate_prefix("metrics:")
    assert cache._locks == {}
