"""Ephemeral store port (abstract interface).

The cache, the checkout session store and the rate limiter all sit on one
shared key/value store with per-key expiry. Every composite operation below
must be executed by adapters as a single atomic batch: a concurrent writer
either observes the whole effect or none of it.

Adapters signal backend failures by raising ``StorageUnavailable``; deciding
whether that failure is fatal is left to the caller.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class WindowResult:
    """Outcome of one sliding-window admission attempt."""

    admitted: bool
    count: int  # requests already in the window before this one


class EphemeralStore(ABC):
    """Abstract ephemeral store interface."""

    name: str = "abstract"
    enabled: bool = True

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored payload or None when missing or expired."""
        ...

    @abstractmethod
    def set(
        self,
        key: str,
        value: str,
        ttl: int,
        tag_keys: Sequence[str] = (),
        tag_ttl: int | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        """Store ``value`` for ``ttl`` seconds and index it under every tag key.

        A tag's own expiry is extended to at least ``tag_ttl`` seconds but never
        shortened, so an index always outlives the members it covers.

        With ``only_if_absent`` nothing is written (value or tags) when the key
        already holds a live value. Returns True when the value was written.
        """
        ...

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Remove a key. Returns True if it existed."""
        ...

    @abstractmethod
    def invalidate_tag(self, tag_key: str) -> int:
        """Delete every key indexed by the tag, then the tag. Returns the member count."""
        ...

    @abstractmethod
    def slide_window(self, key: str, now_ms: int, window_ms: int, limit: int, member: str) -> WindowResult:
        """Prune entries older than the window, count, and append ``member`` if under ``limit``.

        The window key expires after ``window_ms`` of inactivity.
        """
        ...

    @abstractmethod
    def flush(self, prefix: str) -> int:
        """Delete every key starting with ``prefix``. Returns the number removed."""
        ...

    @abstractmethod
    def ping(self) -> bool:
        """Return True when the backend answers."""
        ...
