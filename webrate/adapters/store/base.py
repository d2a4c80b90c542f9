"""Counter store interface.

The decision engine depends on this abstraction (not a concrete backend) so
in-memory, Redis or other shared stores stay interchangeable. Stores own the
per-key window state and every atomicity guarantee; the engine never does a
read-modify-write of its own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class IncrResult:
    """Result of an increment.

    Attributes:
        count: Request count in the active window, including this request.
        seconds_remaining: Seconds left in the active window. Zero or less
            means the window has elapsed.
    """

    count: int
    seconds_remaining: int


class AbstractCounterStore(ABC):
    """Interface for fixed-window counter stores.

    Implementations must make ``incr`` and ``reset`` atomic and linearizable
    per key: concurrent increments of one key each observe a distinct count.
    Both calls may block (e.g. on network I/O).
    """

    @abstractmethod
    def incr(self, key: str, window_seconds: int) -> IncrResult:
        """Atomically increment the counter for ``key``.

        Args:
            key: Rate key produced by a key policy.
            window_seconds: Window length, for stores that need it to compute
                the remaining time.

        Returns:
            IncrResult with the new count and remaining window seconds.

        Raises:
            NoSuchKeyError: If the key was never seen or has been purged.
        """
        raise NotImplementedError

    @abstractmethod
    def reset(self, key: str, window_seconds: int) -> None:
        """Atomically start a fresh window for ``key`` with a count of 1."""
        raise NotImplementedError
