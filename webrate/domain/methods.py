"""HTTP method allow-list deciding which requests are rate limited at all."""

from __future__ import annotations

from typing import Iterable


class MethodFilter:
    """Static set of HTTP methods subject to limiting.

    Matching is an exact, case-sensitive comparison: "post" does not match
    "POST". An empty set matches nothing, which bypasses limiting for every
    request; callers must populate it for limiting to take effect.
    """

    def __init__(self, methods: Iterable[str] = ()) -> None:
        self._methods = frozenset(methods)

    @classmethod
    def from_csv(cls, methods: str | None) -> "MethodFilter":
        """Build a filter from a comma-separated string such as ``"GET, POST"``.

        Examples:
            >>> MethodFilter.from_csv("GET, POST").methods == {"GET", "POST"}
            True
            >>> MethodFilter.from_csv("").methods
            frozenset()
        """
        if not methods:
            return cls()
        return cls(m.strip() for m in methods.split(",") if m.strip())

    @property
    def methods(self) -> frozenset[str]:
        return self._methods

    def matches(self, method: str) -> bool:
        return method in self._methods

    def __repr__(self) -> str:
        return f"MethodFilter({sorted(self._methods)!r})"
