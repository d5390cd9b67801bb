"""Time-based one-time password generation (RFC 6238)."""

from secureauth.base32 import decode_base32, is_valid_base32
from secureauth.totp import (
    ERROR,
    INVALID,
    CodeStatus,
    HashFailureError,
    SecureAuthError,
    TotpResult,
    compute_code,
    generate_code,
    time_remaining,
)

__all__ = [
    "ERROR",
    "INVALID",
    "CodeStatus",
    "HashFailureError",
    "SecureAuthError",
    "TotpResult",
    "compute_code",
    "decode_base32",
    "generate_code",
    "is_valid_base32",
    "time_remaining",
]
