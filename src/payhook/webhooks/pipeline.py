"""Payhook Verification Pipeline.

Runs every inbound webhook through a fixed sequence of gates:

1. Detect the provider from the signature headers
2. Verify the signature and parse the body
3. Reject stale events (when max_age_seconds is configured)
4. Reject replays (when an idempotency store is configured)

The freshness gate always runs before the idempotency gate, and the event
id is recorded only once every other gate has passed. Recording first would
burn the id of a stale event and block a later, fresh delivery of it.

Usage:
    from payhook import PipelineConfig, ProviderConfig, verify

    config = PipelineConfig(
        paystack=ProviderConfig(secret="sk_live_..."),
        max_age_seconds=300,
        idempotency_store=InMemoryIdempotencyStore(),
    )

    result = await verify(request_body, request_headers, config)
    if not result.ok:
        return 400, result.code
"""

from __future__ import annotations

import asyncio
import inspect
import math
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import structlog

from payhook.core.config import PipelineConfig
from payhook.webhooks.errors import (
    IdempotencyStoreError,
    IdempotencyStoreTimeoutError,
    IdempotencyStoreUnavailableError,
    raise_for_result,
)
from payhook.webhooks.providers import WebhookProvider, detect_provider
from payhook.webhooks.verifier import (
    ErrorCode,
    HeaderValue,
    RawBody,
    VerificationFailure,
    VerificationResult,
)

logger = structlog.get_logger()


def parse_event_time(value: Any) -> float | None:
    """Convert a payload timestamp to epoch seconds.

    Accepts ISO-8601 strings (naive values are taken as UTC) and numeric
    epoch milliseconds. Anything else, including numbers too large for a
    float and NaN or Infinity, yields None.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            seconds = value / 1000
        except OverflowError:
            return None
        return seconds if math.isfinite(seconds) else None
    if not isinstance(value, str):
        return None

    try:
        parsed = datetime.fromisoformat(value.strip())
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.timestamp()


def check_freshness(
    provider: WebhookProvider,
    payload: Any,
    max_age_seconds: float,
    now: float | None = None,
) -> VerificationFailure | None:
    """Reject the event if its timestamp is older than max_age_seconds.

    Events without a usable timestamp pass.
    """
    event_time = parse_event_time(provider.event_timestamp(payload))
    if event_time is None:
        return None

    if now is None:
        now = time.time()

    age = now - event_time
    if age > max_age_seconds:
        logger.info(
            "Stale webhook rejected",
            provider=provider.name,
            age=round(age),
            max_age=max_age_seconds,
        )
        return VerificationFailure(
            code=ErrorCode.STALE_EVENT,
            message=f"Event is {round(age)}s old, exceeds max age of {max_age_seconds}s",
            provider=provider.name,
        )
    return None


async def _call_store(store: Any, event_id: str, ttl_seconds: int) -> Any:
    if inspect.iscoroutinefunction(store.record_if_absent):
        return await store.record_if_absent(event_id, ttl_seconds)

    result = await asyncio.to_thread(store.record_if_absent, event_id, ttl_seconds)
    if inspect.isawaitable(result):
        result = await result
    return result


async def record_event(
    store: Any,
    event_id: str,
    ttl_seconds: int,
    timeout: float | None,
) -> bool:
    """Call record_if_absent on a sync or async store.

    Synchronous stores run in a worker thread so the timeout also bounds
    them. A timed-out worker thread is abandoned, not interrupted.

    Raises:
        IdempotencyStoreTimeoutError: The store exceeded the timeout.
        IdempotencyStoreUnavailableError: The store raised.
    """
    try:
        result = await asyncio.wait_for(
            _call_store(store, event_id, ttl_seconds), timeout
        )
    except IdempotencyStoreError:
        raise
    except TimeoutError as e:
        logger.error("Idempotency store timed out", event_id=event_id, timeout=timeout)
        raise IdempotencyStoreTimeoutError(
            f"Idempotency store did not answer within {timeout}s"
        ) from e
    except Exception as e:
        logger.error("Idempotency store failed", event_id=event_id, error=str(e))
        raise IdempotencyStoreUnavailableError(f"Idempotency store failed: {e}") from e

    return bool(result)


async def verify(
    raw_body: RawBody,
    headers: Mapping[str, HeaderValue] | None,
    config: PipelineConfig,
) -> VerificationResult:
    """Verify a webhook and apply freshness and replay gates.

    Args:
        raw_body: Exact request body as received.
        headers: Request headers.
        config: Pipeline configuration.

    Returns:
        VerificationSuccess, or VerificationFailure with the first failing gate.

    Raises:
        IdempotencyStoreError: The idempotency store could not answer.
    """
    detected = detect_provider(headers, config)
    if isinstance(detected, VerificationFailure):
        logger.info("Webhook rejected", code=detected.code.value)
        return detected
    provider = detected

    result = provider.verify(raw_body, headers=headers, parse_json=config.parse_json)
    if not result.ok:
        logger.info("Webhook rejected", code=result.code.value, provider=provider.name)
        return result

    if config.max_age_seconds is not None:
        stale = check_freshness(provider, result.payload, config.max_age_seconds)
        if stale is not None:
            return stale

    store = config.idempotency_store
    if store is not None:
        event_id = provider.event_id(result.payload)
        if event_id is not None:
            recorded = await record_event(
                store, event_id, config.idempotency_ttl, config.store_timeout
            )
            if not recorded:
                logger.info("Replayed webhook rejected", provider=provider.name, event_id=event_id)
                return VerificationFailure(
                    code=ErrorCode.REPLAY_ATTACK,
                    message=f"Duplicate event ID detected: {event_id}",
                    provider=provider.name,
                )

    return result


async def verify_or_raise(
    raw_body: RawBody,
    headers: Mapping[str, HeaderValue] | None,
    config: PipelineConfig,
) -> Any:
    """Same as verify, but returns the payload or raises a PayhookError."""
    return raise_for_result(await verify(raw_body, headers, config))


class Payhook:
    """Verification pipeline bound to one configuration."""

    def __init__(self, config: PipelineConfig) -> None:
        self.config = config

    async def verify(
        self,
        raw_body: RawBody,
        headers: Mapping[str, HeaderValue] | None,
    ) -> VerificationResult:
        return await verify(raw_body, headers, self.config)

    async def verify_or_raise(
        self,
        raw_body: RawBody,
        headers: Mapping[str, HeaderValue] | None,
    ) -> Any:
        return await verify_or_raise(raw_body, headers, self.config)


def create_payhook(config: PipelineConfig) -> Payhook:
    """Create a pipeline bound to the given configuration."""
    return Payhook(config)
