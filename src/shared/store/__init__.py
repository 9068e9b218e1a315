"""Ephemeral store factory.

One store (and one connection pool) per process, shared by the cache, the
checkout session store and every rate limiter profile. The backend is chosen
with the CACHE_BACKEND environment variable:

- ``redis``: RedisStore at REDIS_URL
- ``memory``: MemoryStore (single process; the default for development)
- ``disabled``: NullStore (no caching, limiter fails open)
"""

import os

import structlog

from shared.store.port import EphemeralStore

logger = structlog.get_logger(__name__)

_current_store: EphemeralStore | None = None


def get_store() -> EphemeralStore:
    """Return the process-wide ephemeral store (singleton)."""
    global _current_store
    if _current_store is None:
        backend = os.environ.get("CACHE_BACKEND", "memory")
        if backend == "redis":
            from shared.store.redis_adapter import RedisStore

            _current_store = RedisStore.from_url(os.environ.get("REDIS_URL", "redis://localhost:6379/0"))
        elif backend == "memory":
            from shared.store.memory_adapter import MemoryStore

            _current_store = MemoryStore()
        elif backend == "disabled":
            from shared.store.null_adapter import NullStore

            logger.warning("Ephemeral store disabled: caching off, rate limiting fails open")
            _current_store = NullStore()
        else:
            raise ValueError(f"Unknown cache backend: {backend}")
    return _current_store


def set_store(store: EphemeralStore) -> None:
    """Override the active store (useful for tests)."""
    global _current_store
    _current_store = store


def reset_store() -> None:
    """Reset to the configured default."""
    global _current_store
    _current_store = None
