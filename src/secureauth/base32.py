"""RFC 4648 Base32 decoding and validation for TOTP secrets."""

import re
from typing import Optional


ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ234567"

_ALPHABET_INDEX = {char: index for index, char in enumerate(ALPHABET)}
_WHITESPACE = re.compile(r"\s")
_VALID_SECRET = re.compile(r"[A-Z2-7]+=*", re.IGNORECASE)


def normalize_secret(text: str) -> str:
    """
    Normalize a human-entered secret before decoding.

    Uppercases the text, removes all whitespace and strips trailing '='
    padding. Characters outside the alphabet are left in place.

    Args:
        text: Secret as typed or pasted by the user.

    Returns:
        The normalized string.
    """
    return _WHITESPACE.sub("", text.upper()).rstrip("=")


def decode_base32(text: str) -> bytes:
    """
    Decode a Base32 secret, skipping characters outside the alphabet.

    Unlike base64.b32decode this never fails: stray characters such as
    dashes are ignored and trailing bits that do not fill a byte are
    dropped. Empty input, or input without a single alphabet character,
    decodes to b"".

    Args:
        text: The encoded secret string.

    Returns:
        Decoded secret as bytes.
    """
    output = bytearray()
    value = 0
    bits = 0

    for char in normalize_secret(text):
        index = _ALPHABET_INDEX.get(char)
        if index is None:
            continue

        value = (value << 5) | index
        bits += 5

        if bits >= 8:
            output.append((value >> (bits - 8)) & 0xFF)
            bits -= 8
            # Keep only the bits not yet emitted
            value &= (1 << bits) - 1

    return bytes(output)


def is_valid_base32(text: Optional[str]) -> bool:
    """
    Check that a secret consists solely of Base32 characters.

    Whitespace is ignored and trailing '=' padding is allowed; anything
    else outside A-Z / 2-7 (in either case) makes the secret invalid.
    """
    if not text:
        return False
    return _VALID_SECRET.fullmatch(_WHITESPACE.sub("", text)) is not None
