"""
Transient Key Buffers
=====================

The envelope codec holds a recovered proposal key only while it decrypts
the two fields, and identity derivation holds a seed only while it
builds a keypair. Both copy that material into a bytearray through
``scrubbed`` and the copy is overwritten when the block exits, on
success or on error.

Security Notes:
    - Best-effort only: the bytes objects handed to libsodium are
      immutable copies that this module cannot reach
    - Buffers must be mutable (bytearray or a writable memoryview)
"""

from __future__ import annotations

import ctypes
from contextlib import contextmanager
from typing import Iterator, Union

WipeableBuffer = Union[bytearray, memoryview]


def secure_zero(data: WipeableBuffer) -> None:
    """
    Overwrite a mutable buffer with zeros in place.

    Raises:
        TypeError: If the buffer is read-only
    """
    size = len(data)
    if not size:
        return

    if isinstance(data, bytearray):
        ctypes.memset((ctypes.c_char * size).from_buffer(data), 0, size)
        return

    # memoryview: view it as raw bytes, whatever its format
    data.cast("B")[:] = bytes(data.nbytes)


def is_zeroed(data: WipeableBuffer) -> bool:
    """True when every byte of the buffer is zero."""
    return not any(data)


@contextmanager
def scrubbed(secret: bytes) -> Iterator[bytearray]:
    """
    Hold a private copy of secret material for the duration of a block.

    Usage:
        with scrubbed(recovered_key) as key:
            plaintext = cipher.decrypt_bytes(payload, bytes(key))
        # key is now all zeros
    """
    buffer = bytearray(secret)
    try:
        yield buffer
    finally:
        secure_zero(buffer)
