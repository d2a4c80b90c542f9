"""Request quota: how many requests are allowed per fixed window."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta

MIN_REQUESTS = 1
MIN_WINDOW_SECONDS = 1


def _to_whole_seconds(window: int | float | timedelta) -> int:
    """Convert a window to whole seconds, truncating any fraction."""
    if isinstance(window, timedelta):
        window = window.total_seconds()
    return int(window)


@dataclass(frozen=True, init=False)
class Quota:
    """Immutable (max_requests, window_seconds) pair.

    Values below the floor are clamped up at construction: fewer than one
    request becomes one, a window shorter than one second becomes one
    second. Fractions of seconds are truncated, so a 1.9s window behaves as
    a 1s window.

    Attributes:
        max_requests: Requests allowed per window (>= 1).
        window_seconds: Window length in whole seconds (>= 1).
    """

    max_requests: int
    window_seconds: int

    def __init__(self, max_requests: int, window: int | float | timedelta) -> None:
        object.__setattr__(self, "max_requests", max(MIN_REQUESTS, int(max_requests)))
        object.__setattr__(
            self, "window_seconds", max(MIN_WINDOW_SECONDS, _to_whole_seconds(window))
        )

    @property
    def window(self) -> timedelta:
        return timedelta(seconds=self.window_seconds)

    def as_tuple(self) -> tuple[int, int]:
        return self.max_requests, self.window_seconds
