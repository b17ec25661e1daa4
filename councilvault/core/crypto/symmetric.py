"""
XSalsa20-Poly1305 Authenticated Encryption
==========================================

Encrypts proposal fields under a per-proposal symmetric key using
libsodium's crypto_secretbox (via PyNaCl).

Properties:
    - 256-bit key
    - 192-bit random nonce per encryption (safe to draw at random)
    - 128-bit Poly1305 authentication tag

Field Layout (EncryptedField):
    NONCE (24) | CIPHERTEXT | TAG (16)

    Empty plaintext encrypts to a 40-byte field (nonce + tag).

WARNING:
    - Always verify the tag before using plaintext (the box does this)
    - Keys should be discarded after use
"""

from __future__ import annotations

import secrets
from typing import Union

import nacl.utils
from nacl.exceptions import CryptoError
from nacl.secret import SecretBox

from councilvault.core.exceptions import (
    AuthenticationFailure,
    EncodingFailure,
    InvalidParameter,
    InvalidPayload,
)
from councilvault.security.constants import (
    MIN_ENCRYPTED_FIELD_SIZE,
    SYMMETRIC_KEY_SIZE,
    SYMMETRIC_NONCE_SIZE,
)
from councilvault.utils.validators import as_bytes, as_message_bytes, validate_key_length


class SymmetricCipher:
    """
    XSalsa20-Poly1305 AEAD cipher for proposal fields.

    Usage:
        cipher = SymmetricCipher()
        key = cipher.generate_key()

        field = cipher.encrypt('{"title": "T"}', key)
        text = cipher.decrypt_string(field, key)

    Security Notes:
        - A fresh nonce is drawn for every call, so encrypting the same
          plaintext twice under one key gives different fields
        - Decryption raises before returning any unauthenticated bytes
    """

    __slots__ = ()

    @staticmethod
    def generate_key(length: int = SYMMETRIC_KEY_SIZE) -> bytes:
        """
        Generate a cryptographically secure random key.

        Args:
            length: Key length in bytes (only 32-byte keys can encrypt)

        Returns:
            Random bytes from the OS CSPRNG

        Raises:
            InvalidParameter: If length is not positive
        """
        if isinstance(length, bool) or not isinstance(length, int) or length <= 0:
            raise InvalidParameter(f"Key length must be a positive integer, got {length!r}")
        return secrets.token_bytes(length)

    @staticmethod
    def generate_nonce() -> bytes:
        """Generate a random 24-byte nonce."""
        return nacl.utils.random(SYMMETRIC_NONCE_SIZE)

    def encrypt(self, plaintext: Union[bytes, str], key: bytes) -> bytes:
        """
        Encrypt a field.

        Args:
            plaintext: Bytes, or text to be UTF-8 encoded (can be empty)
            key: 32-byte symmetric key

        Returns:
            nonce || ciphertext || tag

        Raises:
            InvalidParameter: If the key is not 32 bytes
        """
        key = validate_key_length(key, SYMMETRIC_KEY_SIZE, "Symmetric key")
        message = as_message_bytes(plaintext, "plaintext")

        box = SecretBox(key)
        encrypted = box.encrypt(message, self.generate_nonce())
        return bytes(encrypted)

    def decrypt_bytes(self, payload: bytes, key: bytes) -> bytes:
        """
        Decrypt a field with integrity verification.

        Args:
            payload: nonce || ciphertext || tag
            key: 32-byte symmetric key

        Returns:
            Decrypted plaintext bytes

        Raises:
            InvalidParameter: If the key is not 32 bytes
            InvalidPayload: If the payload is shorter than nonce + tag
            AuthenticationFailure: If the tag does not verify
        """
        key = validate_key_length(key, SYMMETRIC_KEY_SIZE, "Symmetric key")
        payload = as_bytes(payload, "payload")
        if len(payload) < MIN_ENCRYPTED_FIELD_SIZE:
            raise InvalidPayload(
                f"Encrypted field too short ({len(payload)} bytes, "
                f"minimum {MIN_ENCRYPTED_FIELD_SIZE})"
            )

        box = SecretBox(key)
        try:
            return box.decrypt(payload)
        except CryptoError as e:
            raise AuthenticationFailure("Decryption failed: authentication tag mismatch") from e

    def decrypt_string(self, payload: bytes, key: bytes) -> str:
        """
        Decrypt a field and decode it as UTF-8.

        Raises:
            EncodingFailure: If the plaintext is not valid UTF-8
            (plus everything decrypt_bytes raises)
        """
        plaintext = self.decrypt_bytes(payload, key)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingFailure("Decrypted field is not valid UTF-8") from e
