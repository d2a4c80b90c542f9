"""Fixed-window HTTP request rate limiting."""

from webrate.domain.limiter import Decision, Limiter
from webrate.domain.methods import MethodFilter
from webrate.domain.quota import Quota
from webrate.domain.vary import (
    ByClientAddress,
    ByPathAndClientAddress,
    CustomKey,
    KeyDeriver,
    RequestInfo,
)

__all__ = [
    "ByClientAddress",
    "ByPathAndClientAddress",
    "CustomKey",
    "Decision",
    "KeyDeriver",
    "Limiter",
    "MethodFilter",
    "Quota",
    "RequestInfo",
]
