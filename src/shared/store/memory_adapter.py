"""In-process ephemeral store for development and testing.

Mirrors the Redis adapter's semantics (per-key expiry, tag sets, sorted
request windows) inside a single process. One lock guards all state, which
makes every composite operation atomic with respect to other threads.

The clock is injectable so tests can move time forward without sleeping.
"""

import threading
import time
from collections.abc import Callable, Sequence

from shared.store.port import EphemeralStore, WindowResult


class MemoryStore(EphemeralStore):
    """Dictionary-backed store with lazy expiry."""

    name = "memory"

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._lock = threading.RLock()
        self._values: dict[str, tuple[str, float]] = {}
        self._sets: dict[str, tuple[set[str], float | None]] = {}
        self._windows: dict[str, tuple[list[tuple[int, str]], float]] = {}

    # -------------------------------------------------------------------
    # Expiry helpers (callers hold the lock)
    # -------------------------------------------------------------------
    def _live_value(self, key: str) -> str | None:
        entry = self._values.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if expires_at <= self._clock():
            del self._values[key]
            return None
        return value

    def _live_set(self, key: str) -> set[str] | None:
        entry = self._sets.get(key)
        if entry is None:
            return None
        members, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            del self._sets[key]
            return None
        return members

    def _remove(self, key: str) -> bool:
        existed = self._live_value(key) is not None or self._live_set(key) is not None
        self._values.pop(key, None)
        self._sets.pop(key, None)
        self._windows.pop(key, None)
        return existed

    # -------------------------------------------------------------------
    # EphemeralStore
    # -------------------------------------------------------------------
    def get(self, key: str) -> str | None:
        with self._lock:
            return self._live_value(key)

    def set(
        self,
        key: str,
        value: str,
        ttl: int,
        tag_keys: Sequence[str] = (),
        tag_ttl: int | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        with self._lock:
            if only_if_absent and self._live_value(key) is not None:
                return False

            now = self._clock()
            self._values[key] = (value, now + ttl)

            tag_expiry = now + (tag_ttl if tag_ttl is not None else ttl)
            for tag_key in tag_keys:
                members = self._live_set(tag_key)
                if members is None:
                    self._sets[tag_key] = ({key}, tag_expiry)
                    continue
                members.add(key)
                current = self._sets[tag_key][1]
                if current is not None and current < tag_expiry:
                    self._sets[tag_key] = (members, tag_expiry)
            return True

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._remove(key)

    def invalidate_tag(self, tag_key: str) -> int:
        with self._lock:
            members = self._live_set(tag_key) or set()
            for member in members:
                self._remove(member)
            self._sets.pop(tag_key, None)
            return len(members)

    def slide_window(self, key: str, now_ms: int, window_ms: int, limit: int, member: str) -> WindowResult:
        with self._lock:
            entry = self._windows.get(key)
            if entry is None or entry[1] <= self._clock():
                stamps = []
            else:
                stamps = [(score, m) for score, m in entry[0] if score >= now_ms - window_ms]

            count = len(stamps)
            admitted = count < limit
            if admitted:
                stamps.append((now_ms, member))

            self._windows[key] = (stamps, self._clock() + window_ms / 1000)
            return WindowResult(admitted=admitted, count=count)

    def flush(self, prefix: str) -> int:
        with self._lock:
            keys = [k for k in {*self._values, *self._sets, *self._windows} if k.startswith(prefix)]
            for key in keys:
                self._values.pop(key, None)
                self._sets.pop(key, None)
                self._windows.pop(key, None)
            return len(keys)

    def ping(self) -> bool:
        return True

    # -------------------------------------------------------------------
    # Introspection (tests, health checks)
    # -------------------------------------------------------------------
    def members(self, tag_key: str) -> "set[str]":
        """Return a copy of the live members of a tag set."""
        with self._lock:
            return set(self._live_set(tag_key) or ())

    def ttl(self, key: str) -> float | None:
        """Seconds until the key or tag expires, or None if it does not exist."""
        with self._lock:
            if self._live_value(key) is not None:
                return self._values[key][1] - self._clock()
            if self._live_set(key) is not None:
                expires_at = self._sets[key][1]
                return None if expires_at is None else expires_at - self._clock()
            return None
