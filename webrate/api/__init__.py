from __future__ import annotations

from webrate.api.dependencies import RateLimitDependency, default_denied_handler

__all__ = ["RateLimitDependency", "default_denied_handler"]
