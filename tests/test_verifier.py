"""Tests for comparison helpers and result types."""

from __future__ import annotations

import hashlib
import hmac

from payhook.webhooks.verifier import (
    ErrorCode,
    VerificationFailure,
    VerificationSuccess,
    get_header,
    timing_safe_equal,
    timing_safe_equal_hex,
    timing_safe_equal_strings,
    to_bytes,
)


class TestTimingSafeEqual:
    """Tests for timing_safe_equal."""

    def test_equal_bytes(self):
        assert timing_safe_equal(b"abc", b"abc") is True

    def test_different_bytes(self):
        assert timing_safe_equal(b"abc", b"abd") is False

    def test_unequal_length(self):
        """Test unequal lengths return False without raising."""
        assert timing_safe_equal(b"abc", b"abcd") is False
        assert timing_safe_equal(b"", b"a") is False

    def test_empty_inputs(self):
        assert timing_safe_equal(b"", b"") is True


class TestTimingSafeEqualHex:
    """Tests for timing_safe_equal_hex."""

    def test_matching_digest(self):
        digest = hmac.new(b"key", b"body", hashlib.sha512).hexdigest()
        assert timing_safe_equal_hex(digest, digest) is True

    def test_case_insensitive_hex(self):
        """Test hex decoding makes upper and lower case equivalent."""
        digest = hmac.new(b"key", b"body", hashlib.sha512).hexdigest()
        assert timing_safe_equal_hex(digest, digest.upper()) is True

    def test_mismatched_digest(self):
        a = hmac.new(b"key", b"body", hashlib.sha512).hexdigest()
        b = hmac.new(b"key", b"other", hashlib.sha512).hexdigest()
        assert timing_safe_equal_hex(a, b) is False

    def test_non_hex_input_returns_false(self):
        """Test non-decodable hex never raises."""
        digest = hmac.new(b"key", b"body", hashlib.sha512).hexdigest()
        assert timing_safe_equal_hex(digest, "not-hex-at-all") is False
        assert timing_safe_equal_hex("zz", digest) is False

    def test_odd_length_hex_returns_false(self):
        assert timing_safe_equal_hex("abc", "abc") is False

    def test_unequal_length_returns_false(self):
        assert timing_safe_equal_hex("abcd", "abcdef") is False

    def test_non_string_input_returns_false(self):
        assert timing_safe_equal_hex(None, "abcd") is False  # type: ignore[arg-type]


class TestTimingSafeEqualStrings:
    """Tests for timing_safe_equal_strings."""

    def test_equal_strings(self):
        assert timing_safe_equal_strings("secret-hash", "secret-hash") is True

    def test_different_strings(self):
        assert timing_safe_equal_strings("secret-hash", "secret-hasx") is False

    def test_unequal_length(self):
        assert timing_safe_equal_strings("short", "much-longer") is False

    def test_unicode_strings(self):
        assert timing_safe_equal_strings("sécret", "sécret") is True
        assert timing_safe_equal_strings("sécret", "secret") is False

    def test_unencodable_string_returns_false(self):
        """Test lone surrogates are a mismatch rather than an error."""
        assert timing_safe_equal_strings("\ud800", "\ud800") is False


class TestGetHeader:
    """Tests for get_header."""

    def test_exact_case(self):
        assert get_header({"x-paystack-signature": "abc"}, "x-paystack-signature") == "abc"

    def test_case_insensitive(self):
        headers = {"X-Paystack-Signature": "abc"}
        assert get_header(headers, "x-paystack-signature") == "abc"
        assert get_header(headers, "X-PAYSTACK-SIGNATURE") == "abc"

    def test_repeated_header_uses_first(self):
        assert get_header({"verif-hash": ["first", "second"]}, "verif-hash") == "first"

    def test_empty_list(self):
        assert get_header({"verif-hash": []}, "verif-hash") is None

    def test_none_value(self):
        assert get_header({"verif-hash": None}, "verif-hash") is None

    def test_missing_header(self):
        assert get_header({"content-type": "application/json"}, "verif-hash") is None

    def test_no_headers(self):
        assert get_header(None, "verif-hash") is None
        assert get_header({}, "verif-hash") is None


class TestResults:
    """Tests for result types."""

    def test_success_is_truthy(self):
        result = VerificationSuccess(provider="paystack", payload={"event": "x"})
        assert result.ok is True
        assert bool(result) is True

    def test_failure_is_falsy(self):
        result = VerificationFailure(code=ErrorCode.INVALID_SIGNATURE, message="bad")
        assert result.ok is False
        assert bool(result) is False
        assert result.provider is None

    def test_error_codes_are_stable_strings(self):
        assert {code.value for code in ErrorCode} == {
            "UNKNOWN_PROVIDER",
            "MISSING_HEADER",
            "INVALID_SIGNATURE",
            "INVALID_JSON",
            "STALE_EVENT",
            "REPLAY_ATTACK",
        }
        assert ErrorCode.REPLAY_ATTACK == "REPLAY_ATTACK"


class TestToBytes:
    """Tests for to_bytes."""

    def test_bytes_passthrough(self):
        body = b'{"a": 1}'
        assert to_bytes(body) is body

    def test_str_encoded_as_utf8(self):
        assert to_bytes("é") == "é".encode()

    def test_bytearray_and_memoryview(self):
        assert to_bytes(bytearray(b"abc")) == b"abc"
        assert to_bytes(memoryview(b"abc")) == b"abc"
