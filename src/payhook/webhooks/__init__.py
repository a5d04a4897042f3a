"""Payhook Webhook Verification Module.

Verifies payment provider webhooks with constant-time comparison and
protects handlers from stale and replayed events.

Supported Providers:
- Paystack: x-paystack-signature with HMAC-SHA512
- Flutterwave: verif-hash secret hash

Security Features:
- Constant-time signature comparison
- Freshness gate on the event timestamp
- Atomic replay detection through a pluggable idempotency store

Usage:
    from payhook.webhooks import PaystackWebhookProvider

    provider = PaystackWebhookProvider(secret="sk_live_...")
    result = provider.verify(request_body, headers=dict(request.headers))

    if result.ok:
        print("Webhook verified!")
    else:
        print(f"Verification failed: {result.code.value} {result.message}")
"""

from payhook.webhooks.errors import (
    IdempotencyStoreError,
    IdempotencyStoreTimeoutError,
    IdempotencyStoreUnavailableError,
    InvalidJsonError,
    InvalidSignatureError,
    MissingHeaderError,
    PayhookError,
    ReplayAttackError,
    StaleEventError,
    UnknownProviderError,
    raise_for_result,
)
from payhook.webhooks.pipeline import (
    Payhook,
    create_payhook,
    verify,
    verify_or_raise,
)
from payhook.webhooks.providers import (
    FLUTTERWAVE_SIGNATURE_HEADER,
    PAYSTACK_SIGNATURE_HEADER,
    WEBHOOK_PROVIDERS,
    FlutterwaveWebhookProvider,
    PaystackWebhookProvider,
    WebhookProvider,
    compute_paystack_signature,
    detect_provider,
    get_provider,
    verify_flutterwave_webhook,
    verify_flutterwave_webhook_or_raise,
    verify_paystack_webhook,
    verify_paystack_webhook_or_raise,
)
from payhook.webhooks.verifier import (
    ErrorCode,
    VerificationFailure,
    VerificationResult,
    VerificationSuccess,
    get_header,
    timing_safe_equal,
    timing_safe_equal_hex,
    timing_safe_equal_strings,
)

__all__ = [
    # Pipeline
    "verify",
    "verify_or_raise",
    "Payhook",
    "create_payhook",
    # Results
    "ErrorCode",
    "VerificationResult",
    "VerificationSuccess",
    "VerificationFailure",
    # Providers
    "WebhookProvider",
    "PaystackWebhookProvider",
    "FlutterwaveWebhookProvider",
    "PAYSTACK_SIGNATURE_HEADER",
    "FLUTTERWAVE_SIGNATURE_HEADER",
    "compute_paystack_signature",
    "verify_paystack_webhook",
    "verify_paystack_webhook_or_raise",
    "verify_flutterwave_webhook",
    "verify_flutterwave_webhook_or_raise",
    # Registry
    "WEBHOOK_PROVIDERS",
    "get_provider",
    "detect_provider",
    # Errors
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
    "raise_for_result",
    # Utilities
    "get_header",
    "timing_safe_equal",
    "timing_safe_equal_hex",
    "timing_safe_equal_strings",
]
