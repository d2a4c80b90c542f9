"""Rate limiting dependency for FastAPI routes.

This module wires the limiter into the HTTP layer:

    limit = RateLimitDependency()

    @app.post("/items", dependencies=[Depends(limit)])
    def create_item(): ...

Denied requests go through an injected denied handler, which defaults to
raising RateLimitExceededAppError (mapped to 429 by the registered exception
handlers). Store failures fail closed with a 503 unless ``fail_open`` is set.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Awaitable, Callable

from fastapi import Request
from starlette.concurrency import run_in_threadpool

from webrate.core.config import settings
from webrate.core.errors import RateLimitExceededAppError, StoreUnavailableAppError
from webrate.core.rate_limit import get_limiter
from webrate.domain.limiter import Limiter
from webrate.domain.vary import RequestInfo

logger = logging.getLogger(__name__)

DeniedHandler = Callable[[Request, RequestInfo], "Awaitable[Any] | Any"]


def default_denied_handler(request: Request, info: RequestInfo) -> None:
    """Reject the request with RateLimitExceededAppError."""
    raise RateLimitExceededAppError(
        code="rate_limit_exceeded",
        message="Rate limit exceeded. Try again later.",
    )


class RateLimitDependency:
    """FastAPI dependency enforcing a limiter on the routes that use it.

    Args:
        limiter: Limiter to enforce; defaults to the settings-built limiter.
        denied_handler: Called for denied requests. It must raise (e.g. an
            HTTPException); if it returns, the default 429 error is raised.
        fail_open: Admit requests when the store fails. Defaults to
            ``settings.rate_limit.fail_open``.
    """

    def __init__(
        self,
        limiter: Limiter | None = None,
        *,
        denied_handler: DeniedHandler = default_denied_handler,
        fail_open: bool | None = None,
    ) -> None:
        self._limiter = limiter
        self._denied_handler = denied_handler
        self._fail_open = fail_open

    @property
    def limiter(self) -> Limiter:
        return self._limiter or get_limiter()

    @property
    def fail_open(self) -> bool:
        if self._fail_open is None:
            return settings.rate_limit.fail_open
        return self._fail_open

    async def __call__(self, request: Request) -> None:
        if self._limiter is None and not settings.rate_limit.enabled:
            return

        info = RequestInfo.from_starlette(request)
        # Store calls may block on network I/O; keep them off the event loop.
        decision = await run_in_threadpool(self.limiter.decide, info)

        if decision.failed:
            self._handle_store_failure(request, decision.error)
            return

        if decision.allowed:
            return

        result = self._denied_handler(request, info)
        if inspect.isawaitable(result):
            await result
        default_denied_handler(request, info)

    def _handle_store_failure(self, request: Request, error: Exception | None) -> None:
        extra = {
            "error_type": type(error).__name__,
            "request_path": request.url.path,
            "request_method": request.method,
        }
        if self.fail_open:
            logger.warning("rate_limit.fail_open", extra=extra)
            return

        logger.error("rate_limit.fail_closed", extra=extra)
        raise StoreUnavailableAppError(
            code="store_unavailable",
            message="Rate limit store is unavailable. Try again later.",
            details={"error_type": type(error).__name__},
        ) from error
