"""Redis-backed idempotency store.

Atomicity comes from Redis itself: SET key value NX EX ttl only succeeds
for the first writer, so two racing deliveries cannot both be recorded.

Any client with a redis-py style set(name, value, nx=True, ex=ttl) works.
asyncio clients are awaited directly; synchronous clients run in a worker
thread so the timeout bounds them too. The store never imports a Redis
library unless from_url() is used.

Example:
    store = RedisIdempotencyStore.from_url("redis://localhost:6379/0")
    config = PipelineConfig(paystack=..., idempotency_store=store)
"""

from __future__ import annotations

import asyncio
import inspect
from typing import Any, Protocol

import structlog

from payhook.webhooks.errors import (
    IdempotencyStoreTimeoutError,
    IdempotencyStoreUnavailableError,
)

logger = structlog.get_logger()

DEFAULT_PREFIX = "payhook:idempotency:"


def _is_async_client(client: Any) -> bool:
    """Whether the client is asyncio-based (redis.asyncio.Redis or similar)."""
    return inspect.iscoroutinefunction(client.set) or inspect.iscoroutinefunction(
        getattr(client, "execute_command", None)
    )


class RedisLike(Protocol):
    """Subset of the redis-py client used by the store."""

    def set(self, name: str, value: str, *, nx: bool = ..., ex: int | None = ...) -> Any: ...


class RedisIdempotencyStore:
    """Idempotency store delegating to Redis SET NX EX.

    Errors from the client are raised as IdempotencyStoreUnavailableError and
    timeouts as IdempotencyStoreTimeoutError. Neither is ever reported as a
    duplicate or as a new event.
    """

    def __init__(
        self,
        client: RedisLike,
        prefix: str = DEFAULT_PREFIX,
        timeout: float | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            client: Redis client (redis.Redis or redis.asyncio.Redis).
            prefix: Namespace prepended to every key.
            timeout: Seconds to wait for the client. None waits indefinitely.
        """
        self._client = client
        self.prefix = prefix
        self.timeout = timeout

    @classmethod
    def from_url(
        cls,
        url: str,
        prefix: str = DEFAULT_PREFIX,
        timeout: float | None = None,
        **client_kwargs: Any,
    ) -> RedisIdempotencyStore:
        """Create a store backed by a new redis.asyncio client.

        Requires the ``redis`` extra.
        """
        import redis.asyncio as aioredis

        return cls(aioredis.from_url(url, **client_kwargs), prefix=prefix, timeout=timeout)

    def key_for(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def _set(self, full_key: str, ttl_seconds: int) -> Any:
        if _is_async_client(self._client):
            return await self._client.set(full_key, "1", nx=True, ex=ttl_seconds)

        # A timed-out worker thread is abandoned, not interrupted
        result = await asyncio.to_thread(self._client.set, full_key, "1", nx=True, ex=ttl_seconds)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def record_if_absent(self, key: str, ttl_seconds: int) -> bool:
        """Atomically record key with a TTL.

        Args:
            key: Event identifier.
            ttl_seconds: Seconds the key stays recorded.

        Returns:
            True if the key was newly set, False if it already existed.

        Raises:
            IdempotencyStoreTimeoutError: The client did not answer in time.
            IdempotencyStoreUnavailableError: The client raised.
        """
        full_key = self.key_for(key)

        try:
            result = await asyncio.wait_for(self._set(full_key, int(ttl_seconds)), self.timeout)
        except TimeoutError as e:
            logger.error("Idempotency store timed out", key=full_key, timeout=self.timeout)
            raise IdempotencyStoreTimeoutError(
                f"Redis did not answer within {self.timeout}s"
            ) from e
        except Exception as e:
            logger.error("Idempotency store unavailable", key=full_key, error=str(e))
            raise IdempotencyStoreUnavailableError(f"Redis unavailable: {e}") from e

        # redis-py returns True when set and None when NX fails
        return result is not None and result is not False

    async def close(self) -> None:
        """Close the underlying client if it supports closing."""
        close = getattr(self._client, "aclose", None) or getattr(self._client, "close", None)
        if close is None:
            return
        result = close()
        if inspect.isawaitable(result):
            await result
