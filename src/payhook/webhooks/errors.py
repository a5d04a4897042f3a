"""Exceptions for the raising verification API.

Each failure code maps to exactly one exception type. Idempotency backend
failures use a separate hierarchy so that an outage is never mistaken for
a verdict about the webhook itself.
"""

from __future__ import annotations

from typing import Any

from payhook.webhooks.verifier import ErrorCode, VerificationResult


class PayhookError(Exception):
    """Base class for webhook rejections."""

    code: ErrorCode

    def __init__(self, message: str, provider: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.provider = provider


class UnknownProviderError(PayhookError):
    code = ErrorCode.UNKNOWN_PROVIDER


class MissingHeaderError(PayhookError):
    code = ErrorCode.MISSING_HEADER


class InvalidSignatureError(PayhookError):
    code = ErrorCode.INVALID_SIGNATURE


class InvalidJsonError(PayhookError):
    code = ErrorCode.INVALID_JSON


class StaleEventError(PayhookError):
    code = ErrorCode.STALE_EVENT


class ReplayAttackError(PayhookError):
    code = ErrorCode.REPLAY_ATTACK


class IdempotencyStoreError(Exception):
    """The idempotency backend could not give an answer."""


class IdempotencyStoreUnavailableError(IdempotencyStoreError):
    """The backend raised or could not be reached."""


class IdempotencyStoreTimeoutError(IdempotencyStoreError):
    """The backend did not answer within the configured timeout."""


ERRORS_BY_CODE: dict[ErrorCode, type[PayhookError]] = {
    ErrorCode.UNKNOWN_PROVIDER: UnknownProviderError,
    ErrorCode.MISSING_HEADER: MissingHeaderError,
    ErrorCode.INVALID_SIGNATURE: InvalidSignatureError,
    ErrorCode.INVALID_JSON: InvalidJsonError,
    ErrorCode.STALE_EVENT: StaleEventError,
    ErrorCode.REPLAY_ATTACK: ReplayAttackError,
}


def raise_for_result(result: VerificationResult) -> Any:
    """Return the payload of a success, or raise the error for a failure.

    Args:
        result: Outcome of a verification call.

    Returns:
        The verified payload.

    Raises:
        PayhookError: The subclass matching the failure code.
    """
    if result.ok:
        return result.payload
    raise ERRORS_BY_CODE[result.code](result.message, provider=result.provider)
