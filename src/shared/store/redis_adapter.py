"""Redis ephemeral store adapter.

Composite operations run as Lua scripts so Redis executes each one
atomically: a ``set`` racing an ``invalidate_tag`` lands entirely before or
entirely after the sweep, and two requests racing for the last slot of a
rate window cannot both be admitted.

Scripts are registered once per client; redis-py caches their SHA and falls
back to EVAL transparently after a server restart.
"""

from collections.abc import Sequence

import redis
import structlog

from shared.errors import StorageUnavailable
from shared.store.port import EphemeralStore, WindowResult

logger = structlog.get_logger(__name__)

# KEYS[1] = entry key, KEYS[2..n] = tag keys
# ARGV[1] = payload, ARGV[2] = entry ttl (s), ARGV[3] = tag ttl (s), ARGV[4] = "1" for NX
_SET_WITH_TAGS = """
if ARGV[4] == '1' then
  if not redis.call('SET', KEYS[1], ARGV[1], 'EX', ARGV[2], 'NX') then
    return 0
  end
else
  redis.call('SET', KEYS[1], ARGV[1], 'EX', ARGV[2])
end
local tag_ttl = tonumber(ARGV[3])
for i = 2, #KEYS do
  redis.call('SADD', KEYS[i], KEYS[1])
  if redis.call('TTL', KEYS[i]) < tag_ttl then
    redis.call('EXPIRE', KEYS[i], tag_ttl)
  end
end
return 1
"""

# KEYS[1] = tag key
_INVALIDATE_TAG = """
local members = redis.call('SMEMBERS', KEYS[1])
for _, key in ipairs(members) do
  redis.call('DEL', key)
end
redis.call('DEL', KEYS[1])
return #members
"""

# KEYS[1] = window key
# ARGV[1] = now (ms), ARGV[2] = window (ms), ARGV[3] = limit, ARGV[4] = member
_SLIDE_WINDOW = """
local now = tonumber(ARGV[1])
local window = tonumber(ARGV[2])
redis.call('ZREMRANGEBYSCORE', KEYS[1], '-inf', '(' .. tostring(now - window))
local count = redis.call('ZCARD', KEYS[1])
local admitted = 0
if count < tonumber(ARGV[3]) then
  redis.call('ZADD', KEYS[1], now, ARGV[4])
  admitted = 1
end
redis.call('PEXPIRE', KEYS[1], window)
return {admitted, count}
"""


class RedisStore(EphemeralStore):
    """Ephemeral store backed by a shared Redis server."""

    name = "redis"

    def __init__(self, client: redis.Redis) -> None:
        self._client = client
        self._set_with_tags = client.register_script(_SET_WITH_TAGS)
        self._invalidate_tag = client.register_script(_INVALIDATE_TAG)
        self._slide_window = client.register_script(_SLIDE_WINDOW)

    @classmethod
    def from_url(cls, url: str) -> "RedisStore":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=5,
            socket_connect_timeout=10,
            socket_keepalive=True,
            health_check_interval=30,
            retry_on_timeout=True,
        )
        logger.info("Redis store configured", url=url.split("@")[-1])
        return cls(client)

    def get(self, key: str) -> str | None:
        try:
            return self._client.get(key)
        except redis.RedisError as exc:
            raise StorageUnavailable(cause=exc) from exc

    def set(
        self,
        key: str,
        value: str,
        ttl: int,
        tag_keys: Sequence[str] = (),
        tag_ttl: int | None = None,
        only_if_absent: bool = False,
    ) -> bool:
        try:
            if not tag_keys:
                return bool(self._client.set(key, value, ex=ttl, nx=only_if_absent))
            written = self._set_with_tags(
                keys=[key, *tag_keys],
                args=[value, ttl, tag_ttl if tag_ttl is not None else ttl, "1" if only_if_absent else "0"],
            )
        except redis.RedisError as exc:
            raise StorageUnavailable(cause=exc) from exc
        return bool(int(written))

    def delete(self, key: str) -> bool:
        try:
            return self._client.delete(key) > 0
        except redis.RedisError as exc:
            raise StorageUnavailable(cause=exc) from exc

    def invalidate_tag(self, tag_key: str) -> int:
        try:
            return int(self._invalidate_tag(keys=[tag_key]))
        except redis.RedisError as exc:
            raise StorageUnavailable(cause=exc) from exc

    def slide_window(self, key: str, now_ms: int, window_ms: int, limit: int, member: str) -> WindowResult:
        try:
            admitted, count = self._slide_window(keys=[key], args=[now_ms, window_ms, limit, member])
        except redis.RedisError as exc:
            raise StorageUnavailable(cause=exc) from exc
        return WindowResult(admitted=bool(int(admitted)), count=int(count))

    def flush(self, prefix: str) -> int:
        try:
            keys = list(self._client.scan_iter(match=f"{prefix}*", count=500))
            if not keys:
                return 0
            return self._client.delete(*keys)
        except redis.RedisError as exc:
            raise StorageUnavailable(cause=exc) from exc

    def ping(self) -> bool:
        try:
            return bool(self._client.ping())
        except redis.RedisError:
            return False
