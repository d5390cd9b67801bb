"""Tests for TOTP generation."""

import hashlib
import hmac as std_hmac
import logging
from unittest.mock import patch

import pytest
from cryptography.exceptions import UnsupportedAlgorithm

from secureauth.totp import (
    ERROR,
    INVALID,
    CodeStatus,
    HashFailureError,
    code_for_counter,
    compute_code,
    counter_bytes,
    current_counter,
    current_epoch,
    dynamic_truncate,
    format_code,
    generate_code,
    hmac_sha1,
    time_remaining,
)


SECRET = "GEZDGNBVGY3TQOJQGEZDGNBVGY3TQOJQ"  # Base32 encoded "12345678901234567890"
KEY = b"12345678901234567890"

# RFC 6238 test vectors (Appendix B, SHA1), last six digits of the 8-digit codes
RFC6238_TEST_VECTORS = [
    # (unix_time, expected_code)
    (59, "287082"),
    (1111111109, "081804"),
    (1111111111, "050471"),
    (1234567890, "005924"),
    (2000000000, "279037"),
    (20000000000, "353130"),
]

# RFC 4226 test vectors (Appendix D), reached here as the first second of window N
RFC4226_TEST_VECTORS = [
    # (counter, expected_code)
    (0, "755224"),
    (1, "287082"),
    (2, "359152"),
    (3, "969429"),
    (4, "338314"),
    (5, "254676"),
    (6, "287922"),
    (7, "162583"),
    (8, "399871"),
    (9, "520489"),
]


def test_rfc6238_test_vectors():
    """Test TOTP generation against RFC 6238 SHA1 test vectors."""
    for unix_time, expected_code in RFC6238_TEST_VECTORS:
        code = generate_code(SECRET, 30, now=unix_time)
        assert code == expected_code, f"T={unix_time}: expected {expected_code}, got {code}"


def test_rfc4226_counters_via_windows():
    """Each window's counter feeds HMAC exactly like an RFC 4226 counter."""
    for counter, expected_code in RFC4226_TEST_VECTORS:
        assert generate_code(SECRET, 30, now=counter * 30) == expected_code


def test_generate_code_is_deterministic():
    """Same secret and clock reading always give the same code."""
    codes = {generate_code(SECRET, 30, now=1234567890) for _ in range(5)}
    assert codes == {"005924"}


def test_counter_rollover_at_window_boundary():
    """The code changes when a window starts and holds for the whole window."""
    start = 1111111110  # 37037037 * 30

    before = generate_code(SECRET, 30, now=start - 1)
    first = generate_code(SECRET, 30, now=start)
    last = generate_code(SECRET, 30, now=start + 29)

    assert before == "081804"
    assert first == "050471"
    assert first != before
    assert first == last


def test_lowercase_and_spaced_secret():
    """Secrets are matched case-insensitively and whitespace is ignored."""
    spaced = "gezd gnbv gy3t qojq gezd gnbv gy3t qojq"
    assert generate_code(spaced, 30, now=59) == "287082"


def test_custom_window_length():
    """A 60-second window uses counter floor(T / 60)."""
    assert generate_code(SECRET, 60, now=59) == "755224"
    assert generate_code(SECRET, 60, now=60) == "287082"


def test_default_clock_is_system_time():
    """Without now, the system clock is read."""
    with patch("secureauth.totp.time.time", return_value=59.0):
        assert generate_code(SECRET) == "287082"
        assert time_remaining() == 1


@pytest.mark.parametrize("secret", ["", "====", "    ", "!!!-@@@", "1890"])
def test_empty_secret_returns_invalid(secret):
    """Secrets that decode to zero bytes give the INVALID sentinel."""
    assert generate_code(secret, 30, now=59) == INVALID

    result = compute_code(secret, 30, now=59)
    assert result.status is CodeStatus.EMPTY_KEY
    assert result.code is None
    assert not result.ok


def test_hash_failure_returns_error(caplog):
    """A failing HMAC primitive gives the ERROR sentinel instead of raising."""
    with patch(
        "secureauth.totp.hmac.HMAC",
        side_effect=UnsupportedAlgorithm("SHA1 is not available"),
    ):
        with caplog.at_level(logging.ERROR, logger="secureauth.totp"):
            assert generate_code(SECRET, 30, now=59) == ERROR
            result = compute_code(SECRET, 30, now=59)

    assert result.status is CodeStatus.HASH_FAILURE
    assert result.render() == ERROR
    assert "SHA1 is not available" in caplog.text


def test_hmac_sha1_wraps_backend_errors():
    """Backend errors surface as HashFailureError with the cause attached."""
    original = UnsupportedAlgorithm("SHA1 is not available")
    with patch("secureauth.totp.hmac.HMAC", side_effect=original):
        with pytest.raises(HashFailureError, match="HMAC-SHA1 failed") as excinfo:
            hmac_sha1(KEY, counter_bytes(1))
    assert excinfo.value.__cause__ is original


def test_hmac_sha1_matches_stdlib():
    """HMAC-SHA1 returns the standard 20-byte digest."""
    message = counter_bytes(1)
    digest = hmac_sha1(KEY, message)
    assert len(digest) == 20
    assert digest == std_hmac.new(KEY, message, hashlib.sha1).digest()


def test_compute_code_result_fields():
    """The tagged result carries the code, the period and the time left."""
    result = compute_code(SECRET, 30, now=59)
    assert result.status is CodeStatus.OK
    assert result.ok
    assert result.code == "287082"
    assert result.render() == "287082"
    assert result.period == 30
    assert result.time_left == 1


def test_counter_bytes_is_eight_byte_big_endian():
    """The counter always occupies the full 8-byte field."""
    assert counter_bytes(1) == b"\x00\x00\x00\x00\x00\x00\x00\x01"
    assert counter_bytes(2**32) == b"\x00\x00\x00\x01\x00\x00\x00\x00"
    assert counter_bytes(2**64 - 1) == b"\xff" * 8


@pytest.mark.parametrize("counter", [-1, 2**64])
def test_counter_bytes_out_of_range(counter):
    """Counters that do not fit in 64 unsigned bits are rejected."""
    with pytest.raises(ValueError, match="out of range"):
        counter_bytes(counter)


def test_counter_above_32_bits():
    """Counters past 2**32 use the high four bytes of the field."""
    counter = 2**32 + 5
    expected_digest = std_hmac.new(
        KEY, counter.to_bytes(8, byteorder="big"), hashlib.sha1
    ).digest()
    expected = format_code(dynamic_truncate(expected_digest))

    assert code_for_counter(KEY, counter) == expected
    assert generate_code(SECRET, 30, now=counter * 30) == expected


def test_dynamic_truncate_rfc4226_example():
    """RFC 4226 section 5.4 worked example."""
    digest = bytes.fromhex("1f8698690e02ca16618550ef7f19da8e945b555a")
    assert dynamic_truncate(digest) == 0x50EF7F19
    assert format_code(dynamic_truncate(digest)) == "872921"


def test_dynamic_truncate_masks_high_bit():
    """The most significant bit of the selected bytes is cleared."""
    digest = bytes([0xFF] * 19 + [0x00])
    assert dynamic_truncate(digest) == 0x7FFFFFFF


@pytest.mark.parametrize(
    "otp, expected",
    [(42, "000042"), (0, "000000"), (99999, "099999"), (123456, "123456"), (1234567, "234567")],
)
def test_format_code_zero_pads(otp, expected):
    """Codes are always exactly six digits."""
    assert format_code(otp) == expected


@pytest.mark.parametrize(
    "now, expected",
    [(30, 30), (0, 30), (31, 29), (59, 1), (60, 30), (1111111109, 1)],
)
def test_time_remaining(now, expected):
    """Remaining seconds lie in [1, window]; a fresh window reports the full length."""
    assert time_remaining(30, now=now) == expected


def test_time_rounds_half_up():
    """Clock readings round to the nearest second, halves upward."""
    assert current_epoch(30.4) == 30
    assert current_epoch(30.5) == 31
    assert current_epoch(59.5) == 60
    assert time_remaining(30, now=30.5) == 29
    assert current_counter(30, now=59.5) == 2
    assert generate_code(SECRET, 30, now=59.5) == "359152"


@pytest.mark.parametrize("window", [0, -30])
def test_non_positive_window_rejected(window):
    """A window length of zero or less is a caller error."""
    with pytest.raises(ValueError, match="must be positive"):
        generate_code(SECRET, window, now=59)
    with pytest.raises(ValueError, match="must be positive"):
        time_remaining(window, now=59)


@pytest.mark.parametrize(
    "failure",
    [RuntimeError("backend exploded"), MemoryError("no room for the key"), OSError("entropy")],
)
def test_any_hash_failure_returns_error(failure):
    """Whatever the HMAC primitive raises, generation reports ERROR."""
    with patch("secureauth.totp.hmac.HMAC", side_effect=failure):
        assert generate_code(SECRET, 30, now=59) == ERROR
        with pytest.raises(HashFailureError) as excinfo:
            hmac_sha1(KEY, counter_bytes(1))
    assert excinfo.value.__cause__ is failure


@pytest.mark.parametrize("secret", [SECRET, "", "===="])
def test_pre_epoch_clock_rejected_for_any_secret(secret):
    """A clock before 1970 is rejected before the secret is looked at."""
    with pytest.raises(ValueError, match="predates the Unix epoch"):
        compute_code(secret, 30, now=-100.0)
    with pytest.raises(ValueError, match="predates the Unix epoch"):
        generate_code(secret, 30, now=-1.0)
