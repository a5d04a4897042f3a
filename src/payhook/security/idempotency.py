"""Idempotency stores for webhook replay protection.

A store exposes a single atomic operation, record_if_absent(), which returns
True only for the first caller to record a key within its TTL. A separate
check followed by a write would let two concurrent deliveries of the same
event both pass.

Example:
    store = InMemoryIdempotencyStore()

    if store.record_if_absent("paystack:302961", ttl_seconds=600):
        process(event)
    else:
        return 409  # Already seen

    store.close()
"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Awaitable, Callable
from time import monotonic
from typing import Protocol, runtime_checkable

import structlog

logger = structlog.get_logger()


@runtime_checkable
class IdempotencyStore(Protocol):
    """Backend contract for replay protection.

    Implementations may be synchronous or return an awaitable.
    """

    def record_if_absent(
        self, key: str, ttl_seconds: int
    ) -> bool | Awaitable[bool]: ...


def _sweep_loop(
    store_ref: weakref.ReferenceType[InMemoryIdempotencyStore],
    stop: threading.Event,
    interval: float,
) -> None:
    """Periodically drop expired entries until stopped or the store is collected."""
    while not stop.wait(interval):
        store = store_ref()
        if store is None:
            return
        store.sweep()
        del store


class InMemoryIdempotencyStore:
    """Process-local idempotency store with lazy expiry.

    Entries are key -> expiry on a monotonic clock. An entry whose expiry
    has passed is treated as absent by record_if_absent() whether or not the
    background sweep has removed it yet.

    Thread-safe: the check and the write happen under one lock.
    """

    def __init__(
        self,
        sweep_interval: float | None = 60.0,
        clock: Callable[[], float] = monotonic,
    ) -> None:
        """Initialize the store and start the background sweep.

        Args:
            sweep_interval: Seconds between sweeps of expired entries.
                None disables the sweep.
            clock: Monotonic time source, in seconds.
        """
        self._entries: dict[str, float] = {}
        self._lock = threading.Lock()
        self._clock = clock
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

        if sweep_interval:
            self._sweeper = threading.Thread(
                target=_sweep_loop,
                args=(weakref.ref(self), self._stop, sweep_interval),
                name="payhook-idempotency-sweep",
                daemon=True,
            )
            self._sweeper.start()

    def record_if_absent(self, key: str, ttl_seconds: int) -> bool:
        """Record key unless a live entry for it already exists.

        Args:
            key: Event identifier.
            ttl_seconds: Seconds the key stays recorded.

        Returns:
            True if this call recorded the key, False if it was already present.
        """
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")

        with self._lock:
            now = self._clock()
            expires_at = self._entries.get(key)
            if expires_at is not None and expires_at > now:
                return False
            self._entries[key] = now + ttl_seconds
            return True

    def sweep(self) -> int:
        """Remove expired entries.

        Returns:
            Number of entries removed.
        """
        with self._lock:
            now = self._clock()
            expired = [key for key, expires_at in self._entries.items() if expires_at <= now]
            for key in expired:
                del self._entries[key]

        if expired:
            logger.debug("Idempotency sweep completed", removed=len(expired))
        return len(expired)

    def close(self) -> None:
        """Stop the background sweep and clear all entries."""
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None and sweeper is not threading.current_thread():
            sweeper.join()
        self._sweeper = None

        with self._lock:
            self._entries.clear()

    @property
    def closed(self) -> bool:
        return self._stop.is_set()

    @property
    def sweeping(self) -> bool:
        """Whether the background sweep thread is running."""
        return self._sweeper is not None and self._sweeper.is_alive()

    def __len__(self) -> int:
        """Number of live (unexpired) entries."""
        with self._lock:
            now = self._clock()
            return sum(1 for expires_at in self._entries.values() if expires_at > now)

    def __enter__(self) -> InMemoryIdempotencyStore:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
