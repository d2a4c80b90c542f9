"""Key hashing shared by the domain and logging layers.

Kept free of settings imports so the decision logic can be used without
loading configuration.
"""

from __future__ import annotations

import hashlib


def hash_key(key: str) -> str:
    """Hash a rate key for logging without exposing client addresses."""
    return hashlib.sha256(key.encode()).hexdigest()[:16]
