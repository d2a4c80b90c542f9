"""Redis-backed fixed-window counter store.

Counters live under ``{prefix}{key}`` with a TTL equal to the window, so the
window start is owned by Redis and shared by every worker. Increments run in
a Lua script: checking for the key and incrementing it must be one atomic
step, otherwise a concurrent expiry could recreate a counter without a TTL.
"""

from __future__ import annotations

import logging
import math

from redis import Redis

from webrate.adapters.store.base import AbstractCounterStore, IncrResult
from webrate.core.errors import NoSuchKeyError

logger = logging.getLogger(__name__)

# Returns nil for an unknown key, otherwise {count, pttl_ms}.
_INCR_SCRIPT = """
if redis.call('EXISTS', KEYS[1]) == 0 then
    return false
end
local count = redis.call('INCR', KEYS[1])
local pttl = redis.call('PTTL', KEYS[1])
return {count, pttl}
"""


class RedisCounterStore(AbstractCounterStore):
    """Counter store sharing window state across processes through Redis.

    Connection and command errors (``redis.RedisError``) propagate unchanged;
    the engine reports them as store failures.
    """

    def __init__(self, client: Redis, *, prefix: str = "webrate:") -> None:
        self._client = client
        self._prefix = prefix
        self._incr_script = client.register_script(_INCR_SCRIPT)

    @classmethod
    def from_url(cls, url: str, *, prefix: str = "webrate:") -> "RedisCounterStore":
        """Create a store with a client built from a ``redis://`` URL."""
        return cls(Redis.from_url(url), prefix=prefix)

    def _redis_key(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def incr(self, key: str, window_seconds: int) -> IncrResult:
        reply = self._incr_script(keys=[self._redis_key(key)])
        if reply is None:
            raise NoSuchKeyError(key)

        count, pttl_ms = int(reply[0]), int(reply[1])
        # PTTL is -1 when the key has no expiry; treat it as an elapsed window.
        seconds_remaining = math.ceil(pttl_ms / 1000) if pttl_ms > 0 else 0
        return IncrResult(count=count, seconds_remaining=seconds_remaining)

    def reset(self, key: str, window_seconds: int) -> None:
        self._client.set(self._redis_key(key), 1, ex=window_seconds)
        logger.debug("store.reset", extra={"store": "redis", "window_s": window_seconds})
