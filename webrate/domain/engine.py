"""Fixed-window rate decision engine.

The engine turns what the counter store reports into an allow/deny decision:

1. ``incr`` the key.
2. A failure other than a missing key propagates unchanged; no decision.
3. A missing key, or a window with no seconds left, starts a fresh window
   through ``reset`` (whose failure also propagates) and the request is
   allowed as the first of that window.
4. Otherwise the request is allowed iff its count is within the quota.

Window expiry is decided by the store alone; the engine keeps no clock and
no per-key state, so one instance can serve any number of concurrent
requests.
"""

from __future__ import annotations

import logging

from webrate.adapters.store.base import AbstractCounterStore
from webrate.core.errors import NoSuchKeyError
from webrate.core.hashing import hash_key
from webrate.domain.quota import Quota

logger = logging.getLogger(__name__)


class RateDecisionEngine:
    """Decides whether one more request fits in a key's current window."""

    def __init__(self, quota: Quota, store: AbstractCounterStore) -> None:
        self._quota = quota
        self._store = store

    @property
    def quota(self) -> Quota:
        return self._quota

    @property
    def store(self) -> AbstractCounterStore:
        return self._store

    def _start_window(self, key: str) -> bool:
        window = self._quota.window_seconds
        try:
            self._store.reset(key, window)
        except Exception:
            logger.warning(
                "rate_limit.reset_failed",
                extra={"key_hash": hash_key(key), "window_s": window},
            )
            raise
        return True

    def check(self, key: str) -> bool:
        """Count one request against ``key`` and decide whether it is allowed.

        This call blocks for as long as the store does. Callers running on an
        event loop should dispatch it to a worker thread.

        Args:
            key: Rate key produced by a key policy.

        Returns:
            True if the request is allowed, False if it exceeds the quota.

        Raises:
            Exception: Whatever the store raised from ``incr`` (other than
                NoSuchKeyError) or from ``reset``, unchanged.
        """
        max_requests, window = self._quota.as_tuple()

        try:
            result = self._store.incr(key, window)
        except NoSuchKeyError:
            return self._start_window(key)
        except Exception:
            logger.warning(
                "rate_limit.store_error",
                extra={"key_hash": hash_key(key), "window_s": window},
            )
            raise

        if result.seconds_remaining <= 0:
            return self._start_window(key)

        return result.count <= max_requests
