"""
Encoding Utilities
==================

Hex and base64 helpers for the formats envelopes travel in: wrapped
keys and registry public keys are 0x-prefixed hex, encrypted fields
are base64.

Hex input is strict: no whitespace, no separators. Published envelope
fields are read with ``b64decode_field``, which also takes the URL-safe
alphabet and missing padding (libsodium's ``to_base64`` default).
"""

from __future__ import annotations

import base64
import binascii
import re
from typing import Final, Pattern

from councilvault.core.exceptions import InvalidPayload

_B64_FIELD: Final[Pattern[str]] = re.compile(r"[A-Za-z0-9+/_-]*={0,2}")
_URLSAFE_TO_STANDARD: Final[dict[int, int]] = str.maketrans("-_", "+/")


def hex_to_bytes(data: str) -> bytes:
    """
    Decode a hex string, with or without a 0x prefix.

    Raises:
        InvalidPayload: If the value has odd length or non-hex characters
    """
    text = data[2:] if data[:2] in ("0x", "0X") else data
    if len(text) % 2 != 0:
        raise InvalidPayload("Received an hex value with odd length")
    try:
        return binascii.unhexlify(text)
    except (binascii.Error, ValueError) as e:
        raise InvalidPayload("Received a value that is not hexadecimal") from e


def bytes_to_hex(data: bytes, prefix: bool = True) -> str:
    """Encode bytes as lowercase hex, 0x-prefixed by default."""
    encoded = bytes(data).hex()
    return f"0x{encoded}" if prefix else encoded


def b64encode_str(data: bytes) -> str:
    """Encode bytes as standard base64 text."""
    return base64.b64encode(data).decode("ascii")


def b64decode_str(data: str) -> bytes:
    """
    Decode standard base64 text strictly.

    Raises:
        InvalidPayload: If the value is not valid base64
    """
    try:
        return base64.b64decode(data.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as e:
        raise InvalidPayload("Received a value that is not base64") from e


def b64decode_field(data: str) -> bytes:
    """
    Decode a published base64 field in either alphabet, padded or not.

    Mixing the standard and URL-safe alphabets in one value is rejected.

    Raises:
        InvalidPayload: If the value is not base64 in either variant
    """
    if not _B64_FIELD.fullmatch(data):
        raise InvalidPayload("Received a value that is not base64")

    text = data.rstrip("=")
    padding = -len(text) % 4
    if padding == 3 or len(data) - len(text) not in (0, padding):
        raise InvalidPayload("Received base64 with an impossible length or padding")

    urlsafe = "-" in text or "_" in text
    if urlsafe and ("+" in text or "/" in text):
        raise InvalidPayload("Received base64 mixing standard and URL-safe alphabets")
    if urlsafe:
        text = text.translate(_URLSAFE_TO_STANDARD)
    return b64decode_str(text + "=" * padding)
