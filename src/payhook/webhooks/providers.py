"""Payhook Webhook Providers.

Provider-specific signature verification for payment providers.

Supported Providers:
- Paystack: x-paystack-signature with HMAC-SHA512 over the raw body
- Flutterwave: verif-hash carrying the secret hash configured in the dashboard

Flutterwave's verif-hash is a static shared secret, not a signature over
the body. A captured request can be replayed with any body, so freshness
and idempotency gating are the only replay defenses for that provider.

Usage:
    from payhook.webhooks.providers import PaystackWebhookProvider

    provider = PaystackWebhookProvider(secret="sk_live_...")
    result = provider.verify(request_body, headers=request_headers)

    if result.ok:
        handle(result.payload)
"""

from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar, Protocol

from payhook.webhooks.errors import raise_for_result
from payhook.webhooks.verifier import (
    FLUTTERWAVE,
    PAYSTACK,
    ErrorCode,
    HeaderValue,
    RawBody,
    VerificationFailure,
    VerificationResult,
    VerificationSuccess,
    get_header,
    timing_safe_equal_hex,
    timing_safe_equal_strings,
    to_bytes,
)

if TYPE_CHECKING:
    from payhook.core.config import PipelineConfig

PAYSTACK_SIGNATURE_HEADER = "x-paystack-signature"
FLUTTERWAVE_SIGNATURE_HEADER = "verif-hash"


class WebhookProvider(Protocol):
    """Contract shared by every provider."""

    name: ClassVar[str]
    signature_header: str

    def verify(
        self,
        raw_body: RawBody,
        *,
        signature: str | None = None,
        headers: Mapping[str, HeaderValue] | None = None,
        parse_json: bool = True,
    ) -> VerificationResult: ...

    def event_id(self, payload: Any) -> str | None: ...

    def event_timestamp(self, payload: Any) -> Any: ...


def _lookup(payload: Any, path: tuple[str, ...]) -> Any:
    value = payload
    for key in path:
        if not isinstance(value, dict):
            return None
        value = value.get(key)
    return value


def _first_present(payload: Any, paths: tuple[tuple[str, ...], ...]) -> Any:
    for path in paths:
        value = _lookup(payload, path)
        if value not in (None, ""):
            return value
    return None


def _resolve_signature(
    signature: str | None,
    headers: Mapping[str, HeaderValue] | None,
    header_name: str,
) -> str | None:
    if signature:
        return signature
    return get_header(headers, header_name) or None


def _materialize_payload(
    provider: str,
    body: bytes,
    parse_json: bool,
) -> VerificationResult:
    """Build the payload once the signature has been accepted."""
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError:
        return VerificationFailure(
            code=ErrorCode.INVALID_JSON,
            message="Payload is not valid UTF-8",
            provider=provider,
        )

    if not parse_json:
        return VerificationSuccess(provider=provider, payload=text)

    try:
        payload = json.loads(text)
    except ValueError:
        return VerificationFailure(
            code=ErrorCode.INVALID_JSON,
            message="Invalid JSON payload",
            provider=provider,
        )
    return VerificationSuccess(provider=provider, payload=payload)


def compute_paystack_signature(raw_body: RawBody, secret: str) -> str:
    """Compute the hex HMAC-SHA512 Paystack sends in x-paystack-signature.

    Args:
        raw_body: Exact request body.
        secret: Paystack secret key.

    Returns:
        Lowercase hex digest.
    """
    return hmac.new(
        secret.encode("utf-8"),
        to_bytes(raw_body),
        hashlib.sha512,
    ).hexdigest()


@dataclass
class PaystackWebhookProvider:
    """Paystack webhook signature verification.

    Paystack sends: x-paystack-signature: <hex HMAC-SHA512 of body>
    """

    name: ClassVar[str] = PAYSTACK

    id_fields: ClassVar[tuple[tuple[str, ...], ...]] = (("data", "id"),)
    timestamp_fields: ClassVar[tuple[tuple[str, ...], ...]] = (
        ("data", "created_at"),
        ("data", "paid_at"),
    )

    secret: str = field(repr=False)
    """Paystack secret key."""

    signature_header: str = PAYSTACK_SIGNATURE_HEADER
    """Header containing the signature."""

    def verify(
        self,
        raw_body: RawBody,
        *,
        signature: str | None = None,
        headers: Mapping[str, HeaderValue] | None = None,
        parse_json: bool = True,
    ) -> VerificationResult:
        """Verify a Paystack webhook and parse its body.

        Args:
            raw_body: Exact request body.
            signature: Signature already extracted by the caller.
            headers: Request headers, used when signature is not given.
            parse_json: Parse the body as JSON (default) or return raw text.

        Returns:
            VerificationSuccess with the payload, or VerificationFailure.
        """
        value = _resolve_signature(signature, headers, self.signature_header)
        if not value:
            return VerificationFailure(
                code=ErrorCode.MISSING_HEADER,
                message=f"Missing required header: {self.signature_header}",
                provider=self.name,
            )

        body = to_bytes(raw_body)
        expected = compute_paystack_signature(body, self.secret)

        if not timing_safe_equal_hex(expected, value):
            return VerificationFailure(
                code=ErrorCode.INVALID_SIGNATURE,
                message="Invalid Paystack webhook signature",
                provider=self.name,
            )

        return _materialize_payload(self.name, body, parse_json)

    def event_id(self, payload: Any) -> str | None:
        value = _first_present(payload, self.id_fields)
        return f"{self.name}:{value}" if value is not None else None

    def event_timestamp(self, payload: Any) -> Any:
        return _first_present(payload, self.timestamp_fields)


@dataclass
class FlutterwaveWebhookProvider:
    """Flutterwave webhook verification.

    Flutterwave sends: verif-hash: <secret hash from dashboard>

    The header is compared against the configured secret hash. No hash is
    computed over the body.
    """

    name: ClassVar[str] = FLUTTERWAVE

    id_fields: ClassVar[tuple[tuple[str, ...], ...]] = (("data", "id"),)
    timestamp_fields: ClassVar[tuple[tuple[str, ...], ...]] = (
        ("data", "created_at"),
        ("created_at",),
    )

    secret: str = field(repr=False)
    """Secret hash configured in the Flutterwave dashboard."""

    signature_header: str = FLUTTERWAVE_SIGNATURE_HEADER
    """Header containing the secret hash."""

    def verify(
        self,
        raw_body: RawBody,
        *,
        signature: str | None = None,
        headers: Mapping[str, HeaderValue] | None = None,
        parse_json: bool = True,
    ) -> VerificationResult:
        """Verify a Flutterwave webhook and parse its body.

        Args:
            raw_body: Exact request body.
            signature: verif-hash value already extracted by the caller.
            headers: Request headers, used when signature is not given.
            parse_json: Parse the body as JSON (default) or return raw text.

        Returns:
            VerificationSuccess with the payload, or VerificationFailure.
        """
        value = _resolve_signature(signature, headers, self.signature_header)
        if not value:
            return VerificationFailure(
                code=ErrorCode.MISSING_HEADER,
                message=f"Missing required header: {self.signature_header}",
                provider=self.name,
            )

        if not timing_safe_equal_strings(value, self.secret):
            return VerificationFailure(
                code=ErrorCode.INVALID_SIGNATURE,
                message="Invalid Flutterwave webhook signature",
                provider=self.name,
            )

        return _materialize_payload(self.name, to_bytes(raw_body), parse_json)

    def event_id(self, payload: Any) -> str | None:
        value = _first_present(payload, self.id_fields)
        return f"{self.name}:{value}" if value is not None else None

    def event_timestamp(self, payload: Any) -> Any:
        return _first_present(payload, self.timestamp_fields)


# Provider registry, in detection priority order
WEBHOOK_PROVIDERS: dict[str, type[PaystackWebhookProvider | FlutterwaveWebhookProvider]] = {
    PAYSTACK: PaystackWebhookProvider,
    FLUTTERWAVE: FlutterwaveWebhookProvider,
}


def get_provider(provider_name: str, **kwargs: Any) -> WebhookProvider:
    """Get a webhook provider by name.

    Args:
        provider_name: Name of the provider.
        **kwargs: Provider-specific configuration.

    Returns:
        Configured provider instance.

    Raises:
        ValueError: If provider is not found.
    """
    provider_class = WEBHOOK_PROVIDERS.get(provider_name.lower())
    if not provider_class:
        raise ValueError(f"Unknown webhook provider: {provider_name}")
    return provider_class(**kwargs)


def detect_provider(
    headers: Mapping[str, HeaderValue] | None,
    config: PipelineConfig,
) -> WebhookProvider | VerificationFailure:
    """Pick the provider whose signature header is present.

    Only providers with configured secrets are considered. A header for an
    unconfigured provider is treated the same as no header at all.

    Args:
        headers: Request headers.
        config: Pipeline configuration.

    Returns:
        The configured provider, or an UNKNOWN_PROVIDER failure.
    """
    for name, provider_class in WEBHOOK_PROVIDERS.items():
        provider_config = config.provider_config(name)
        if provider_config is None or not provider_config.secret:
            continue

        header_name = provider_config.signature_header or provider_class.signature_header
        if get_header(headers, header_name):
            return provider_class(
                secret=provider_config.secret,
                signature_header=header_name,
            )

    return VerificationFailure(
        code=ErrorCode.UNKNOWN_PROVIDER,
        message="Could not detect webhook provider from headers",
    )


def verify_paystack_webhook(
    raw_body: RawBody,
    secret: str,
    *,
    signature: str | None = None,
    headers: Mapping[str, HeaderValue] | None = None,
    parse_json: bool = True,
    signature_header: str = PAYSTACK_SIGNATURE_HEADER,
) -> VerificationResult:
    """Verify a Paystack webhook without building a provider first."""
    provider = PaystackWebhookProvider(secret=secret, signature_header=signature_header)
    return provider.verify(
        raw_body, signature=signature, headers=headers, parse_json=parse_json
    )


def verify_paystack_webhook_or_raise(
    raw_body: RawBody,
    secret: str,
    *,
    signature: str | None = None,
    headers: Mapping[str, HeaderValue] | None = None,
    parse_json: bool = True,
    signature_header: str = PAYSTACK_SIGNATURE_HEADER,
) -> Any:
    """Same as verify_paystack_webhook, but raises PayhookError subclasses."""
    return raise_for_result(
        verify_paystack_webhook(
            raw_body,
            secret,
            signature=signature,
            headers=headers,
            parse_json=parse_json,
            signature_header=signature_header,
        )
    )


def verify_flutterwave_webhook(
    raw_body: RawBody,
    secret_hash: str,
    *,
    signature: str | None = None,
    headers: Mapping[str, HeaderValue] | None = None,
    parse_json: bool = True,
    signature_header: str = FLUTTERWAVE_SIGNATURE_HEADER,
) -> VerificationResult:
    """Verify a Flutterwave webhook without building a provider first."""
    provider = FlutterwaveWebhookProvider(
        secret=secret_hash, signature_header=signature_header
    )
    return provider.verify(
        raw_body, signature=signature, headers=headers, parse_json=parse_json
    )


def verify_flutterwave_webhook_or_raise(
    raw_body: RawBody,
    secret_hash: str,
    *,
    signature: str | None = None,
    headers: Mapping[str, HeaderValue] | None = None,
    parse_json: bool = True,
    signature_header: str = FLUTTERWAVE_SIGNATURE_HEADER,
) -> Any:
    """Same as verify_flutterwave_webhook, but raises PayhookError subclasses."""
    return raise_for_result(
        verify_flutterwave_webhook(
            raw_body,
            secret_hash,
            signature=signature,
            headers=headers,
            parse_json=parse_json,
            signature_header=signature_header,
        )
    )
