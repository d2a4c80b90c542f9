"""In-memory fixed-window counter store.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: uses a lock around shared state.
- Expired windows are swept on reset, at most once per window length.
- Optionally bounded: the least recently used key is evicted past max_keys.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable

from webrate.adapters.store.base import AbstractCounterStore, IncrResult
from webrate.core.errors import NoSuchKeyError

logger = logging.getLogger(__name__)


@dataclass
class _WindowState:
    window_start: float
    count: int


class InMemoryCounterStore(AbstractCounterStore):
    """Counter store keeping window state in a process-local dict.

    Expired windows are reported with ``seconds_remaining <= 0`` until the
    engine resets them or a later reset sweeps them away. Swept keys and
    keys evicted by the ``max_keys`` bound are reported as unknown.

    Important:
        This store is per-process only. If the API runs with multiple workers
        (e.g., multiple Uvicorn/Gunicorn workers), each worker will enforce its
        own independent limits.
    """

    def __init__(
        self,
        *,
        max_keys: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the in-memory store.

        Args:
            max_keys: Maximum number of tracked keys (None for unlimited).
            clock: Time source returning seconds.

        Raises:
            ValueError: If max_keys is invalid.
        """
        if max_keys is not None and max_keys < 1:
            raise ValueError("max_keys must be >= 1")

        self._max_keys = max_keys
        self._clock = clock
        self._lock = threading.RLock()
        self._state_by_key: OrderedDict[str, _WindowState] = OrderedDict()
        self._evictions = 0
        self._last_sweep: float | None = None

    def __len__(self) -> int:
        with self._lock:
            return len(self._state_by_key)

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"InMemoryCounterStore(max_keys={self._max_keys}, "
            f"size={len(self._state_by_key)}, evictions={self._evictions})"
        )

    @property
    def evictions(self) -> int:
        """Number of keys dropped by the ``max_keys`` bound."""
        return self._evictions

    def _remaining(self, state: _WindowState, window_seconds: int, now: float) -> int:
        # Round up so a window with any time left is still reported as active.
        return math.ceil(state.window_start + window_seconds - now)

    def _evict_if_needed(self) -> None:
        if self._max_keys is None:
            return
        while len(self._state_by_key) > self._max_keys:
            self._state_by_key.popitem(last=False)
            self._evictions += 1
            logger.debug("store.evict", extra={"size": len(self._state_by_key)})

    def _purge_locked(self, window_seconds: int, now: float) -> int:
        expired = [
            key
            for key, state in self._state_by_key.items()
            if self._remaining(state, window_seconds, now) <= 0
        ]
        for key in expired:
            del self._state_by_key[key]
        self._last_sweep = now

        if expired:
            logger.debug("store.purge", extra={"purged": len(expired)})
        return len(expired)

    def incr(self, key: str, window_seconds: int) -> IncrResult:
        now = self._clock()
        with self._lock:
            state = self._state_by_key.get(key)
            if state is None:
                raise NoSuchKeyError(key)

            state.count += 1
            self._state_by_key.move_to_end(key)
            return IncrResult(
                count=state.count,
                seconds_remaining=self._remaining(state, window_seconds, now),
            )

    def reset(self, key: str, window_seconds: int) -> None:
        now = self._clock()
        with self._lock:
            # Sweep at most once per window.
            if self._last_sweep is None:
                self._last_sweep = now
            elif now - self._last_sweep >= window_seconds:
                self._purge_locked(window_seconds, now)

            self._state_by_key[key] = _WindowState(window_start=now, count=1)
            self._state_by_key.move_to_end(key)
            self._evict_if_needed()

    def purge_expired(self, window_seconds: int) -> int:
        """Drop every key whose window has elapsed.

        ``reset`` already does this once per window; call it directly to
        release memory sooner, e.g. from a periodic task.

        Args:
            window_seconds: Window length used by the engine.

        Returns:
            Number of keys removed.
        """
        now = self._clock()
        with self._lock:
            return self._purge_locked(window_seconds, now)
