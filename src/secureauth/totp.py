"""RFC 6238 TOTP (Time-based One-Time Password) implementation."""

import logging
import math
import time
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from cryptography.hazmat.primitives import hashes, hmac

from secureauth.base32 import decode_base32


logger = logging.getLogger(__name__)

DEFAULT_WINDOW_SECONDS = 30
CODE_DIGITS = 6

# Sentinels returned by generate_code in place of a numeric code
INVALID = "INVALID"
ERROR = "ERROR"


class SecureAuthError(Exception):
    """Base class for errors raised by secureauth."""


class HashFailureError(SecureAuthError, RuntimeError):
    """The HMAC-SHA1 primitive rejected the key or is unavailable."""


class CodeStatus(Enum):
    OK = "ok"
    EMPTY_KEY = "empty_key"
    HASH_FAILURE = "hash_failure"


@dataclass(frozen=True)
class TotpResult:
    """Outcome of one code generation for one secret."""

    status: CodeStatus
    code: Optional[str]
    period: int
    time_left: int

    @property
    def ok(self) -> bool:
        return self.status is CodeStatus.OK

    def render(self) -> str:
        """Return the code, or the sentinel string for a failed generation."""
        if self.status is CodeStatus.EMPTY_KEY:
            return INVALID
        if self.status is CodeStatus.HASH_FAILURE:
            return ERROR
        return self.code


def _check_window(window_seconds: int) -> None:
    if window_seconds <= 0:
        raise ValueError(f"window_seconds must be positive, got {window_seconds}")


def current_epoch(now: Optional[float] = None) -> int:
    """
    Return the Unix time rounded to the nearest whole second.

    Halves round up, so 59.5 becomes 60.

    Args:
        now: Unix timestamp in seconds (default: the system clock).
    """
    if now is None:
        now = time.time()
    return int(math.floor(now + 0.5))


def current_counter(
    window_seconds: int = DEFAULT_WINDOW_SECONDS, now: Optional[float] = None
) -> int:
    """Return the number of whole windows elapsed since the Unix epoch."""
    _check_window(window_seconds)
    return current_epoch(now) // window_seconds


def counter_bytes(counter: int) -> bytes:
    """
    Serialize a time-step counter as the 8-byte big-endian HMAC message.

    Raises:
        ValueError: If the counter does not fit in an unsigned 64-bit field.
    """
    if not 0 <= counter < 2**64:
        raise ValueError(f"Counter out of range for an 8-byte field: {counter}")
    return counter.to_bytes(8, byteorder="big")


def hmac_sha1(key: bytes, message: bytes) -> bytes:
    """
    Compute HMAC-SHA1 over message.

    Args:
        key: Raw secret bytes.
        message: Bytes to authenticate.

    Returns:
        The 20-byte digest.

    Raises:
        HashFailureError: If the primitive fails for any reason, e.g. a
            backend that refuses SHA-1 or the key.
    """
    try:
        mac = hmac.HMAC(key, hashes.SHA1())
        mac.update(message)
        return mac.finalize()
    except Exception as e:
        raise HashFailureError(f"HMAC-SHA1 failed: {e}") from e


def dynamic_truncate(digest: bytes) -> int:
    """Apply RFC 4226 dynamic truncation, returning a 31-bit integer."""
    offset = digest[19] & 0x0F
    return (
        ((digest[offset] & 0x7F) << 24)
        | ((digest[offset + 1] & 0xFF) << 16)
        | ((digest[offset + 2] & 0xFF) << 8)
        | (digest[offset + 3] & 0xFF)
    )


def format_code(otp: int) -> str:
    """Reduce otp to CODE_DIGITS digits and zero-pad it, e.g. 42 -> "000042"."""
    return f"{otp % 10**CODE_DIGITS:0{CODE_DIGITS}d}"


def code_for_counter(key: bytes, counter: int) -> str:
    """
    Generate the code for one time step from raw key bytes.

    Raises:
        HashFailureError: If the HMAC primitive fails.
    """
    digest = hmac_sha1(key, counter_bytes(counter))
    return format_code(dynamic_truncate(digest))


def compute_code(
    secret: str,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
    now: Optional[float] = None,
) -> TotpResult:
    """
    Generate the TOTP code for a Base32 secret as a tagged result.

    A secret that decodes to no bytes yields CodeStatus.EMPTY_KEY and a
    failing HMAC primitive yields CodeStatus.HASH_FAILURE; neither raises.

    Args:
        secret: Base32 secret, leniently decoded.
        window_seconds: Length of one time step (default: 30).
        now: Unix timestamp in seconds (default: the system clock).

    Returns:
        TotpResult with the code and the seconds left in the window.

    Raises:
        ValueError: If window_seconds is not positive or now predates the
            Unix epoch.
    """
    _check_window(window_seconds)
    epoch = current_epoch(now)
    if epoch < 0:
        raise ValueError(f"Clock reading predates the Unix epoch: {now}")
    time_left = window_seconds - (epoch % window_seconds)

    key = decode_base32(secret or "")
    if not key:
        logger.debug("Secret decoded to zero bytes; no code generated")
        return TotpResult(CodeStatus.EMPTY_KEY, None, window_seconds, time_left)

    try:
        code = code_for_counter(key, epoch // window_seconds)
    except HashFailureError as e:
        logger.error("TOTP generation error: %s", e)
        return TotpResult(CodeStatus.HASH_FAILURE, None, window_seconds, time_left)

    return TotpResult(CodeStatus.OK, code, window_seconds, time_left)


def generate_code(
    secret: str,
    window_seconds: int = DEFAULT_WINDOW_SECONDS,
    now: Optional[float] = None,
) -> str:
    """
    Generate the current 6-digit TOTP code for a Base32 secret.

    Returns:
        The zero-padded code, INVALID if the secret has no decodable
        characters, or ERROR if HMAC-SHA1 could not be computed.
    """
    return compute_code(secret, window_seconds, now).render()


def time_remaining(
    window_seconds: int = DEFAULT_WINDOW_SECONDS, now: Optional[float] = None
) -> int:
    """
    Return the seconds left in the current window.

    The result lies in [1, window_seconds]: at the first second of a window
    the full window length is returned, never 0.
    """
    _check_window(window_seconds)
    return window_seconds - (current_epoch(now) % window_seconds)
