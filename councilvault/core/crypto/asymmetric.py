"""
X25519 Sealed-Box Encryption
============================

Wraps proposal keys for individual council members using libsodium's
crypto_box_seal (via PyNaCl).

Properties:
    - X25519 keypairs (32-byte public and private keys)
    - Anonymous sender: each seal uses a fresh ephemeral keypair
    - Only the recipient's private key can open a sealed box

Sealed Layout (WrappedKey):
    EPHEMERAL_PK (32) | CIPHERTEXT | TAG (16)

Keypair Sources:
    1. generate_keypair(): uniformly random private scalar
    2. keypair_from_seed(): a 32-byte hex seed used as the private scalar,
       so the same seed yields the same keypair on any host

WARNING:
    - Private keys are never logged or persisted by this module
    - Open failures are reported without saying whether the key or the
      data was wrong
"""

from __future__ import annotations

import binascii
from dataclasses import dataclass
from typing import Optional, Union

from nacl.bindings import crypto_scalarmult_base
from nacl.exceptions import CryptoError
from nacl.public import PrivateKey, PublicKey, SealedBox

from councilvault.core.exceptions import (
    AuthenticationFailure,
    EncodingFailure,
    InvalidSeed,
)
from councilvault.security.constants import (
    KEY_TYPE_X25519,
    PRIVATE_KEY_SIZE,
    PUBLIC_KEY_SIZE,
    SEAL_OVERHEAD,
)
from councilvault.utils.validators import as_bytes, as_message_bytes, validate_key_length


@dataclass(frozen=True, slots=True)
class KeyPair:
    """
    Immutable X25519 keypair.

    Attributes:
        public_key: Shared with authors so they can wrap keys for us
        private_key: Opens wrapped keys (must be kept secret)
        key_type: Provenance tag, informational only (may be None)
    """

    public_key: bytes
    private_key: bytes
    key_type: Optional[str] = KEY_TYPE_X25519

    def __repr__(self) -> str:
        """Safe representation without exposing key material."""
        return f"KeyPair(type={self.key_type}, pk_len={len(self.public_key)})"


class AsymmetricCipher:
    """
    Anonymous public-key encryption over Curve25519.

    Usage:
        cipher = AsymmetricCipher()
        member = cipher.generate_keypair()

        wrapped = cipher.seal(symmetric_key, member.public_key)
        symmetric_key = cipher.open_bytes(wrapped, member)

    Security Notes:
        - The ciphertext carries no sender or recipient identifier
        - MAC verification is constant-time inside libsodium
    """

    __slots__ = ()

    @staticmethod
    def generate_keypair() -> KeyPair:
        """
        Generate a random X25519 keypair.

        Returns:
            KeyPair with public key = scalar * basepoint
        """
        private = PrivateKey.generate()
        return KeyPair(
            public_key=bytes(private.public_key),
            private_key=bytes(private),
        )

    def keypair_from_seed(self, seed_hex: str) -> KeyPair:
        """
        Derive a keypair deterministically from a hex seed.

        Args:
            seed_hex: 64 hex digits (upper or lower case, optional 0x)

        Returns:
            KeyPair whose private key is the decoded seed

        Raises:
            InvalidSeed: reason "not_hex" or "wrong_length"
        """
        if not isinstance(seed_hex, str):
            raise InvalidSeed("Invalid hexadecimal seed", InvalidSeed.NOT_HEX)

        text = seed_hex[2:] if seed_hex[:2] in ("0x", "0X") else seed_hex
        try:
            seed = binascii.unhexlify(text)
        except (binascii.Error, ValueError) as e:
            raise InvalidSeed("Invalid hexadecimal seed", InvalidSeed.NOT_HEX) from e

        if len(seed) != PRIVATE_KEY_SIZE:
            raise InvalidSeed(
                f"The hexadecimal seed should be {PRIVATE_KEY_SIZE} bytes long",
                InvalidSeed.WRONG_LENGTH,
            )

        return self.keypair_from_private_key(seed)

    def keypair_from_private_key(self, private_key: bytes) -> KeyPair:
        """
        Build a keypair around an existing 32-byte private scalar.

        Raises:
            InvalidParameter: If the private key is not 32 bytes
        """
        private_key = validate_key_length(private_key, PRIVATE_KEY_SIZE, "Private key")
        return KeyPair(
            public_key=self.compute_public_key(private_key),
            private_key=private_key,
        )

    @staticmethod
    def compute_public_key(private_key: bytes) -> bytes:
        """
        Compute the public key for a private scalar.

        Returns:
            crypto_scalarmult_base(private_key)

        Raises:
            InvalidParameter: If the private key is not 32 bytes
        """
        private_key = validate_key_length(private_key, PRIVATE_KEY_SIZE, "Private key")
        return crypto_scalarmult_base(private_key)

    def seal(self, message: Union[bytes, str], recipient_public_key: bytes) -> bytes:
        """
        Encrypt a message so only the recipient can open it.

        Args:
            message: Bytes, or text to be UTF-8 encoded
            recipient_public_key: Recipient's 32-byte X25519 public key

        Returns:
            ephemeral_pk || ciphertext || tag

        Raises:
            InvalidParameter: If the public key is not 32 bytes
        """
        public_key = validate_key_length(recipient_public_key, PUBLIC_KEY_SIZE, "Recipient public key")
        box = SealedBox(PublicKey(public_key))
        return bytes(box.encrypt(as_message_bytes(message)))

    def open_bytes(self, ciphertext: bytes, recipient: KeyPair) -> bytes:
        """
        Open a sealed box with the recipient's keypair.

        Raises:
            InvalidParameter: If the keypair's private key is not 32 bytes
            AuthenticationFailure: If the box cannot be opened
        """
        private_key = validate_key_length(recipient.private_key, PRIVATE_KEY_SIZE, "Private key")
        data = as_bytes(ciphertext, "ciphertext")
        if len(data) < SEAL_OVERHEAD:
            raise AuthenticationFailure("Sealed box could not be opened")

        box = SealedBox(PrivateKey(private_key))
        try:
            return box.decrypt(data)
        except CryptoError as e:
            raise AuthenticationFailure("Sealed box could not be opened") from e

    def open_string(self, ciphertext: bytes, recipient: KeyPair) -> str:
        """
        Open a sealed box and decode the message as UTF-8.

        Raises:
            EncodingFailure: If the message is not valid UTF-8
            (plus everything open_bytes raises)
        """
        plaintext = self.open_bytes(ciphertext, recipient)
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as e:
            raise EncodingFailure("Sealed message is not valid UTF-8") from e
