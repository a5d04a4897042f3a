"""Replay protection stores for payhook.

This module provides:
- The IdempotencyStore contract (atomic record_if_absent)
- An in-memory store with lazy expiry and a background sweep
- A Redis store built on SET NX EX
"""

from payhook.security.idempotency import IdempotencyStore, InMemoryIdempotencyStore
from payhook.security.redis_store import RedisIdempotencyStore, RedisLike

__all__ = [
    "IdempotencyStore",
    "InMemoryIdempotencyStore",
    "RedisIdempotencyStore",
    "RedisLike",
]
