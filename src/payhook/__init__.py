"""Payhook - verified, replay-safe payment webhooks.

Usage:
    from payhook import InMemoryIdempotencyStore, PipelineConfig, ProviderConfig, verify

    config = PipelineConfig(
        paystack=ProviderConfig(secret="sk_live_..."),
        flutterwave=ProviderConfig(secret="my-secret-hash"),
        idempotency_store=InMemoryIdempotencyStore(),
        max_age_seconds=300,
    )

    result = await verify(raw_body, headers, config)
"""

from payhook.core.config import PayhookSettings, PipelineConfig, ProviderConfig
from payhook.security import (
    IdempotencyStore,
    InMemoryIdempotencyStore,
    RedisIdempotencyStore,
)
from payhook.webhooks import (
    ErrorCode,
    IdempotencyStoreError,
    IdempotencyStoreTimeoutError,
    IdempotencyStoreUnavailableError,
    InvalidJsonError,
    InvalidSignatureError,
    MissingHeaderError,
    Payhook,
    PayhookError,
    ReplayAttackError,
    StaleEventError,
    UnknownProviderError,
    VerificationFailure,
    VerificationResult,
    VerificationSuccess,
    create_payhook,
    verify,
    verify_or_raise,
)

__version__ = "0.1.0"

__all__ = [
    "__version__",
    "verify",
    "verify_or_raise",
    "create_payhook",
    "Payhook",
    "PayhookSettings",
    "PipelineConfig",
    "ProviderConfig",
    "IdempotencyStore",
    "InMemoryIdempotencyStore",
    "RedisIdempotencyStore",
    "ErrorCode",
    "VerificationResult",
    "VerificationSuccess",
    "VerificationFailure",
    "PayhookError",
    "UnknownProviderError",
    "MissingHeaderError",
    "InvalidSignatureError",
    "InvalidJsonError",
    "StaleEventError",
    "ReplayAttackError",
    "IdempotencyStoreError",
    "IdempotencyStoreUnavailableError",
    "IdempotencyStoreTimeoutError",
]
