"""
Validation Utilities
====================

Argument validation shared by the cipher layers.
"""

from __future__ import annotations

from typing import Any

from councilvault.core.exceptions import InvalidParameter


def as_bytes(value: Any, field_name: str = "value") -> bytes:
    """
    Coerce a bytes-like value to immutable bytes.

    Raises:
        InvalidParameter: If the value is not bytes-like
    """
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    raise InvalidParameter(f"{field_name} must be bytes, got {type(value).__name__}")


def as_message_bytes(value: Any, field_name: str = "message") -> bytes:
    """Coerce text (UTF-8 encoded) or bytes-like input to bytes."""
    if isinstance(value, str):
        return value.encode("utf-8")
    return as_bytes(value, field_name)


def validate_key_length(value: Any, expected: int, field_name: str = "key") -> bytes:
    """
    Validate that a key is bytes of exactly the expected length.

    Returns:
        The key as bytes

    Raises:
        InvalidParameter: If the type or length is wrong
    """
    key = as_bytes(value, field_name)
    if len(key) != expected:
        raise InvalidParameter(f"{field_name} must be exactly {expected} bytes, got {len(key)}")
    return key
