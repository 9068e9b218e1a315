"""Disabled ephemeral store.

Used when no shared store is configured. Reads always miss, writes report
success and the rate window admits everything, so the rest of the system
keeps working (just without caching or admission control).
"""

from collections.abc import Sequence

from shared.store.port import EphemeralStore, WindowResult


class NullStore(EphemeralStore):
    name = "disabled"
    enabled = False

    def get(self, key: str) -> str | None:
        return None

    def set(
        self,
        key: str,
        value: str,
        ttl: int,
        tag_keys: Sequence[str] = (),
        tag_ttl: int | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        return True

    def delete(self, key: str) -> bool:
        return False

    def invalidate_tag(self, tag_key: str) -> int:
        return 0

    def slide_window(self, key: str, now_ms: int, window_ms: int, limit: int, member: str) -> WindowResult:
        return WindowResult(admitted=True, count=0)

    def flush(self, prefix: str) -> int:
        return 0

    def ping(self) -> bool:
        return False
