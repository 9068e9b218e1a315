"""Tag-indexed cache over the shared ephemeral store.

Values are JSON-serialized and stored with a TTL. Each entry may carry tags;
a tag names the set of keys it covers so that a whole family of entries
(every cached view of one cart, every checkout session) can be dropped with a
single ``invalidate_by_tag`` call.

The cache is an optimization, not a source of truth: store failures are
logged and reported as a miss (reads) or ``False`` (writes), never raised.
Callers that repurpose the cache as a source of truth (the checkout session
store) must check the return values themselves.
"""

import functools
import json
import os
from collections.abc import Callable, Iterable
from typing import Any

import structlog

from shared.errors import StorageUnavailable
from shared.store import get_store
from shared.store.port import EphemeralStore

logger = structlog.get_logger(__name__)

DEFAULT_TTL = 3600  # 1 hour
TAG_TTL_MARGIN = 300  # tag index outlives its members by 5 minutes


class TagCache:
    """Key/value cache with per-entry expiry and bulk invalidation by tag."""

    def __init__(
        self,
        store: EphemeralStore,
        prefix: str = "storefront:",
        default_ttl: int = DEFAULT_TTL,
        tag_margin: int = TAG_TTL_MARGIN,
    ) -> None:
        self.store = store
        self.prefix = prefix
        self.default_ttl = default_ttl
        self.tag_margin = tag_margin

    @property
    def enabled(self) -> bool:
        return self.store.enabled

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    def _tag_key(self, tag: str) -> str:
        return f"{self.prefix}tag:{tag}"

    # -------------------------------------------------------------------
    # Core operations
    # -------------------------------------------------------------------
    def get(self, key: str, strict: bool = False) -> Any | None:
        """Return the cached value or None.

        With ``strict`` a store failure raises ``StorageUnavailable`` instead of
        reading as a miss.
        """
        try:
            raw = self.store.get(self._key(key))
        except StorageUnavailable as exc:
            if strict:
                raise
            logger.error("Cache get error", key=key, error=str(exc.cause or exc))
            return None

        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.error("Cache payload is not valid JSON, dropping entry", key=key)
            self.delete(key)
            return None

    def set(
        self,
        key: str,
        value: Any,
        ttl: int | None = None,
        tags: Iterable[str] = (),
        only_if_absent: bool = False,
        strict: bool = False,
    ) -> bool:
        """Store ``value``. Returns False when nothing was written.

        With ``only_if_absent`` a live entry under ``key`` is left untouched and
        the call returns False. With ``strict`` store failures and unserializable
        values raise instead of returning False.
        """
        ttl = ttl or self.default_ttl
        try:
            payload = json.dumps(value)
        except (TypeError, ValueError) as exc:
            if strict:
                raise
            logger.error("Cache value is not serializable", key=key, error=str(exc))
            return False

        try:
            return self.store.set(
                self._key(key),
                payload,
                ttl,
                tag_keys=[self._tag_key(tag) for tag in tags],
                tag_ttl=ttl + self.tag_margin,
                only_if_absent=only_if_absent,
            )
        except StorageUnavailable as exc:
            if strict:
                raise
            logger.error("Cache set error", key=key, error=str(exc.cause or exc))
            return False

    def delete(self, key: str, strict: bool = False) -> bool:
        """Remove an entry. Returns True if it existed."""
        try:
            return self.store.delete(self._key(key))
        except StorageUnavailable as exc:
            if strict:
                raise
            logger.error("Cache delete error", key=key, error=str(exc.cause or exc))
            return False

    def invalidate_by_tag(self, tag: str) -> int:
        try:
            count = self.store.invalidate_tag(self._tag_key(tag))
        except StorageUnavailable as exc:
            logger.error("Cache invalidation error", tag=tag, error=str(exc.cause or exc))
            return 0

        if count:
            logger.debug("Cache tag invalidated", tag=tag, keys=count)
        return count

    def flush(self) -> bool:
        try:
            removed = self.store.flush(self.prefix)
        except StorageUnavailable as exc:
            logger.error("Cache flush error", error=str(exc.cause or exc))
            return False
        logger.info("Cache flushed", prefix=self.prefix, keys=removed)
        return True

    def stats(self) -> dict:
        return {
            "backend": self.store.name,
            "enabled": self.enabled,
            "connected": self.store.ping() if self.enabled else False,
        }

    # -------------------------------------------------------------------
    # Read-through helpers
    # -------------------------------------------------------------------
    def get_or_set(
        self,
        key: str,
        factory: Callable[[], Any],
        ttl: int | None = None,
        tags: Iterable[str] = (),
    ) -> Any:
        cached = self.get(key)
        if cached is not None:
            return cached

        value = factory()
        self.set(key, value, ttl=ttl, tags=tags)
        return value


def cached(key: Callable[..., str], ttl: int | None = None, tags: Iterable[str] | Callable[..., Iterable[str]] = ()):
    """Read-through cache decorator.

    ``key`` (and ``tags`` when callable) receive the decorated function's
    arguments. The process-wide cache is looked up at call time so tests can
    swap it with ``set_cache``.
    """

    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            entry_tags = tags(*args, **kwargs) if callable(tags) else tags
            return get_cache().get_or_set(
                key(*args, **kwargs),
                lambda: func(*args, **kwargs),
                ttl=ttl,
                tags=entry_tags,
            )

        return wrapper

    return decorator


# ---------------------------------------------------------------------------
# Process-wide instance
# ---------------------------------------------------------------------------
_current_cache: TagCache | None = None


def get_cache() -> TagCache:
    """Return the process-wide cache (singleton) over the shared store."""
    global _current_cache
    if _current_cache is None:
        _current_cache = TagCache(get_store(), prefix=os.environ.get("CACHE_PREFIX", "storefront:"))
    return _current_cache


def set_cache(cache: TagCache) -> None:
    """Override the active cache (useful for tests)."""
    global _current_cache
    _current_cache = cache


def reset_cache() -> None:
    """Reset to the configured default."""
    global _current_cache
    _current_cache = None
