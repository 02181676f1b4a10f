"""Time-based memoisation for API reads."""

import logging
import threading
import time
from contextlib import contextmanager

logger = logging.getLogger(__name__)

# Seconds, by entity volatility
COMPANIES_TTL = 5 * 60
SCORES_TTL = 3 * 60
METRICS_TTL = 2 * 60
FEATURES_TTL = 10 * 60
USER_TTL = 5 * 60


class TTLCache:
    """Key -> value store whose entries expire after a per-call TTL.

    Concurrent `cached_fetch` calls for the same key share one fetch: the
    first caller runs the fetcher while the others wait on the key's lock and
    then read the stored value.
    """

    def __init__(self, clock=time.monotonic):
        self._clock = clock
        self._entries = {}  # {key: {"value": ..., "ts": float, "ttl": float}}
        self._locks = {}  # {key: [lock, callers]} for keys with a fetch in flight
        self._guard = threading.Lock()

    @contextmanager
    def _key_lock(self, key):
        with self._guard:
            slot = self._locks.setdefault(key, [threading.Lock(), 0])
            slot[1] += 1
        try:
            with slot[0]:
                yield
        finally:
            with self._guard:
                slot[1] -= 1
                if not slot[1]:
                    del self._locks[key]

    def _fresh(self, key):
        entry = self._entries.get(key)
        if entry and self._clock() - entry["ts"] < entry["ttl"]:
            return entry
        return None

    def get(self, key, default=None):
        entry = self._fresh(key)
        return entry["value"] if entry else default

    def set(self, key, value, ttl):
        self._entries[key] = {"value": value, "ts": self._clock(), "ttl": ttl}

    def cached_fetch(self, key, ttl, fetcher):
        entry = self._fresh(key)
        if entry:
            return entry["value"]

        with self._key_lock(key):
            # another caller may have filled it while we waited
            entry = self._fresh(key)
            if entry:
                return entry["value"]
            logger.debug(f"Cache miss for {key}")
            value = fetcher()
            self.set(key, value, ttl)
            return value

    def invalidate(self, key):
        self._entries.pop(key, None)

    def invalidate_prefix(self, prefix):
        for key in [k for k in self._entries if k.startswith(prefix)]:
            del self._entries[key]

    def clear(self):
        self._entries.clear()

    def __contains__(self, key):
        return self._fresh(key) is not None
