"""Counter store adapters.

This package provides a small abstraction layer so the limiter can start with
an in-memory store and move to Redis or another shared store without
changing the decision engine.
"""

from webrate.adapters.store.base import AbstractCounterStore, IncrResult
from webrate.adapters.store.in_memory import InMemoryCounterStore
from webrate.adapters.store.redis_store import RedisCounterStore

__all__ = [
    "AbstractCounterStore",
    "InMemoryCounterStore",
    "IncrResult",
    "RedisCounterStore",
]
