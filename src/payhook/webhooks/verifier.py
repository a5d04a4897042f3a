"""Payhook Webhook Verification Primitives.

Provides the result types, error codes, and constant-time comparison
helpers shared by every provider.

Security Features:
- Constant-time comparison of signatures and secret hashes
- Decode failures map to a mismatch instead of raising
- Case-insensitive header lookup that tolerates repeated headers

Usage:
    from payhook.webhooks.verifier import timing_safe_equal_hex

    if timing_safe_equal_hex(expected, request.headers["x-paystack-signature"]):
        ...
"""

from __future__ import annotations

import hmac
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

PAYSTACK = "paystack"
FLUTTERWAVE = "flutterwave"

RawBody = bytes | bytearray | memoryview | str
HeaderValue = str | Sequence[str] | None


class ErrorCode(str, Enum):
    """Stable failure codes returned to callers."""

    UNKNOWN_PROVIDER = "UNKNOWN_PROVIDER"
    MISSING_HEADER = "MISSING_HEADER"
    INVALID_SIGNATURE = "INVALID_SIGNATURE"
    INVALID_JSON = "INVALID_JSON"
    STALE_EVENT = "STALE_EVENT"
    REPLAY_ATTACK = "REPLAY_ATTACK"


@dataclass
class VerificationSuccess:
    """A webhook that passed every configured check."""

    provider: str
    """Provider that signed the webhook."""

    payload: Any
    """Parsed JSON body, or the raw text when JSON parsing is disabled."""

    ok: bool = field(default=True, init=False)

    def __bool__(self) -> bool:
        return True


@dataclass
class VerificationFailure:
    """A webhook rejected by verification or by a gate."""

    code: ErrorCode
    """Stable failure code."""

    message: str
    """Human readable reason."""

    provider: str | None = None
    """Provider name, unset when detection itself failed."""

    ok: bool = field(default=False, init=False)

    def __bool__(self) -> bool:
        return False


VerificationResult = VerificationSuccess | VerificationFailure


def to_bytes(raw_body: RawBody) -> bytes:
    """Return the raw body as bytes without re-serializing it."""
    if isinstance(raw_body, str):
        return raw_body.encode("utf-8")
    if isinstance(raw_body, bytes):
        return raw_body
    return bytes(raw_body)


def get_header(headers: Mapping[str, HeaderValue] | None, name: str) -> str | None:
    """Case-insensitive header lookup.

    Frameworks differ on header casing, and some expose repeated headers
    as a list. The first element of a list is used.

    Args:
        headers: Request headers.
        name: Header name to look up.

    Returns:
        The header value, or None if absent.
    """
    if not headers:
        return None

    target = name.lower()
    for key, value in headers.items():
        if key.lower() != target:
            continue
        if isinstance(value, str):
            return value
        if isinstance(value, (list, tuple)):
            return value[0] if value else None
        return None
    return None


def timing_safe_equal(a: bytes, b: bytes) -> bool:
    """Compare two byte strings in constant time.

    Leaks only whether the lengths match, never the position of the
    first differing byte.

    Args:
        a: First value.
        b: Second value.

    Returns:
        True if both values are identical.
    """
    if len(a) != len(b):
        return False
    return hmac.compare_digest(a, b)


def timing_safe_equal_hex(a_hex: str, b_hex: str) -> bool:
    """Compare two hex-encoded digests in constant time.

    Invalid hex on either side is treated as a mismatch.
    """
    try:
        a = bytes.fromhex(a_hex)
        b = bytes.fromhex(b_hex)
    except (ValueError, TypeError):
        return False
    return timing_safe_equal(a, b)


def timing_safe_equal_strings(a: str, b: str) -> bool:
    """Compare two plain strings in constant time over their UTF-8 bytes."""
    try:
        a_bytes = a.encode("utf-8")
        b_bytes = b.encode("utf-8")
    except (UnicodeEncodeError, AttributeError):
        return False
    return timing_safe_equal(a_bytes, b_bytes)
