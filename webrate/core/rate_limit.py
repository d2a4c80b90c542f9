"""Limiter construction from settings.

Design goals:
- Minimal coupling: the HTTP layer asks for a limiter, not a store.
- Swap-friendly: the counter store (memory or Redis) is chosen by settings.
- One instance per configuration so counters survive across requests.
"""

from __future__ import annotations

import logging

from webrate.adapters.store.base import AbstractCounterStore
from webrate.adapters.store.in_memory import InMemoryCounterStore
from webrate.adapters.store.redis_store import RedisCounterStore
from webrate.core.config import RateLimitSettings, settings
from webrate.core.errors import ValidationAppError
from webrate.domain.limiter import Limiter
from webrate.domain.methods import MethodFilter
from webrate.domain.quota import Quota
from webrate.domain.vary import build_key_deriver

logger = logging.getLogger(__name__)


_limiter: Limiter | None = None
_limiter_config: RateLimitSettings | None = None


def build_store(cfg: RateLimitSettings) -> AbstractCounterStore:
    """Create the counter store selected by ``cfg.store``.

    Raises:
        ValidationAppError: If the store name is unknown.
    """

    backend = cfg.store.lower()
    if backend == "memory":
        return InMemoryCounterStore(max_keys=cfg.max_keys)
    if backend == "redis":
        return RedisCounterStore.from_url(cfg.redis_url, prefix=cfg.redis_prefix)

    raise ValidationAppError(
        code="unknown_store",
        message=f"Unknown rate limit store {cfg.store!r}",
        details={"hint": "Use 'memory' or 'redis'", "store": cfg.store},
    )


def build_limiter(
    cfg: RateLimitSettings, store: AbstractCounterStore | None = None
) -> Limiter:
    """Build a Limiter from settings.

    Args:
        cfg: Rate limit settings.
        store: Optional store overriding ``cfg.store``.

    Returns:
        Configured limiter.

    Raises:
        ValidationAppError: If the key policy or store is unknown.
    """

    try:
        key_deriver = build_key_deriver(
            cfg.key_policy,
            header_name=cfg.header_name,
            strip_header_port=cfg.strip_header_port,
        )
    except ValueError as exc:
        raise ValidationAppError(
            code="unknown_key_policy",
            message=str(exc),
            details={"hint": "Use 'ip' or 'path_ip'"},
        ) from exc

    quota = Quota(cfg.requests, cfg.window_seconds)
    limiter = Limiter(
        quota,
        methods=MethodFilter.from_csv(cfg.methods),
        store=store or build_store(cfg),
        key_deriver=key_deriver,
    )

    extra: dict = {
        "limit": quota.max_requests,
        "window_s": quota.window_seconds,
        "methods": sorted(limiter.methods.methods),
        "key_policy": cfg.key_policy,
        "store": cfg.store,
    }
    if cfg.store.lower() == "redis":
        extra["redis_url"] = cfg.redis_url
    logger.info("rate_limit.configured", extra=extra)
    return limiter


def get_limiter() -> Limiter:
    """Return a process-wide limiter built from global settings.

    The instance is cached in-module to preserve in-memory counters across
    requests. If configuration changes (primarily in tests), it is rebuilt.
    """

    global _limiter, _limiter_config

    cfg = settings.rate_limit
    if _limiter is None or _limiter_config != cfg:
        _limiter = build_limiter(cfg)
        _limiter_config = cfg.model_copy()

    return _limiter
