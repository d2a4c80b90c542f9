"""Limiter facade composing method filter, key policy and decision engine."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable

from webrate.adapters.store.base import AbstractCounterStore
from webrate.core.hashing import hash_key
from webrate.domain.engine import RateDecisionEngine
from webrate.domain.methods import MethodFilter
from webrate.domain.quota import Quota
from webrate.domain.vary import ByClientAddress, KeyDeriver, RequestInfo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Decision:
    """Outcome of a limiter check.

    Attributes:
        allowed: Whether the request may proceed. Meaningless when ``error``
            is set (it is then False).
        error: The store failure that prevented a decision, if any.
    """

    allowed: bool
    error: Exception | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None


class Limiter:
    """Per-request rate limiting decision.

    Only requests whose method is in ``methods`` are counted; everything else
    is allowed without touching the store. Limited requests are grouped by
    ``key_deriver`` and counted against ``quota`` in ``store``.

    Example:
        >>> from webrate.adapters.store import InMemoryCounterStore
        >>> limiter = Limiter(
        ...     Quota(5, 1),
        ...     methods=["POST"],
        ...     key_deriver=ByClientAddress(),
        ...     store=InMemoryCounterStore(),
        ... )
        >>> limiter.check(RequestInfo(method="POST", remote_addr="1.2.3.4:80"))
        True
    """

    def __init__(
        self,
        quota: Quota,
        methods: MethodFilter | Iterable[str],
        store: AbstractCounterStore,
        key_deriver: KeyDeriver | None = None,
    ) -> None:
        if not isinstance(methods, MethodFilter):
            methods = MethodFilter(methods)
        self._methods = methods
        self._key_deriver = key_deriver or ByClientAddress()
        self._engine = RateDecisionEngine(quota, store)

        if not self._methods.methods:
            logger.warning("rate_limit.no_methods", extra={"reason": "empty_method_set"})

    @classmethod
    def create(
        cls,
        *,
        requests_per_window: int,
        window: int | float | timedelta,
        methods: Iterable[str],
        store: AbstractCounterStore,
        key_deriver: KeyDeriver | None = None,
    ) -> "Limiter":
        """Build a limiter from plain configuration values."""
        return cls(
            Quota(requests_per_window, window),
            methods=methods,
            store=store,
            key_deriver=key_deriver,
        )

    @property
    def quota(self) -> Quota:
        return self._engine.quota

    @property
    def methods(self) -> MethodFilter:
        return self._methods

    @property
    def key_deriver(self) -> KeyDeriver:
        return self._key_deriver

    def is_limited(self, method: str) -> bool:
        return self._methods.matches(method)

    def check(self, request: RequestInfo) -> bool:
        """Return whether ``request`` is allowed.

        Blocks on the store for limited methods.

        Raises:
            Exception: Store failures, unchanged.
        """
        if not self.is_limited(request.method):
            return True

        return self._check_key(request.method, self._key_deriver.derive_key(request))

    def _check_key(self, method: str, key: str) -> bool:
        allowed = self._engine.check(key)
        if not allowed:
            logger.info(
                "rate_limit.denied",
                extra={
                    "key_hash": hash_key(key),
                    "method": method,
                    "limit": self.quota.max_requests,
                    "window_s": self.quota.window_seconds,
                },
            )
        return allowed

    def decide(self, request: RequestInfo) -> Decision:
        """Like ``check`` but reports store failures in ``Decision.error``.

        The caller chooses whether a failed decision fails open or closed.
        """
        if not self.is_limited(request.method):
            return Decision(allowed=True)

        key = self._key_deriver.derive_key(request)
        try:
            allowed = self._check_key(request.method, key)
        except Exception as exc:  # noqa: BLE001 - surfaced through Decision.error
            return Decision(allowed=False, error=exc)
        return Decision(allowed=allowed)
