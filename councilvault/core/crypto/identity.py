"""
Deterministic Identity Derivation
=================================

Derives a council member's decryption keypair from a signature made by
their existing signing identity (a wallet), so the keypair can always be
reproduced by that identity and never has to be stored.

Derivation:
    signature = sign(FIXED_MESSAGE)
    seed      = H(signature)            (32 bytes, keccak-256 by default)
    keypair   = X25519 keypair with private scalar = seed

Properties:
    - Deterministic for deterministic signature schemes (RFC 6979 ECDSA,
      Ed25519): same identity + same message = same keypair
    - The message is versioned text; changing it moves every identity to
      a new keypair (an explicit keyspace partition)

Signing failures are classified, never retried:
    - user refusal           -> SignatureDeclined
    - anything else          -> SignatureUnavailable
"""

from __future__ import annotations

import hashlib
import inspect
import logging
import os
from typing import Any, Awaitable, Callable, Optional, Union

from Crypto.Hash import keccak
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from councilvault.core.config import CouncilConfig
from councilvault.core.crypto.asymmetric import AsymmetricCipher, KeyPair
from councilvault.core.exceptions import (
    IdentityError,
    InvalidParameter,
    InvalidPayload,
    SignatureDeclined,
    SignatureUnavailable,
)
from councilvault.core.memory.zeroization import scrubbed
from councilvault.security.constants import PRIVATE_KEY_SIZE
from councilvault.utils.encoding import hex_to_bytes

Signature = Union[bytes, str]
SignFn = Callable[[str], Signature]
AsyncSignFn = Callable[[str], Awaitable[Signature]]


def keccak256(data: bytes) -> bytes:
    """Ethereum keccak-256 (pre-standard SHA-3 padding)."""
    return keccak.new(digest_bits=256, data=data).digest()


def _sha256(data: bytes) -> bytes:
    return hashlib.sha256(data).digest()


def _sha3_256(data: bytes) -> bytes:
    return hashlib.sha3_256(data).digest()


SEED_HASHES: dict[str, Callable[[bytes], bytes]] = {
    "keccak256": keccak256,
    "sha256": _sha256,
    "sha3_256": _sha3_256,
}


class DeterministicIdentity:
    """
    Reproducible decryption keypairs bound to a signing identity.

    Usage:
        identity = DeterministicIdentity(config)
        keypair = identity.derive(wallet.sign)

        # Coroutine signers (remote wallets)
        keypair = await identity.derive_async(remote_wallet.sign)

    Security Notes:
        - The signature and seed are never logged
        - The seed buffer is zeroed once the keypair is built
        - No timeout is imposed; wrap the signer if one is needed
    """

    __slots__ = ("_asymmetric", "_hash", "_message", "_decline_markers", "_log")

    def __init__(
        self,
        config: Optional[CouncilConfig] = None,
        asymmetric: Optional[AsymmetricCipher] = None,
    ) -> None:
        config = config or CouncilConfig()
        self._asymmetric = asymmetric or AsymmetricCipher()
        self._hash = SEED_HASHES[config.crypto.seed_hash]
        self._message = config.identity.fixed_message
        self._decline_markers = config.identity.decline_markers
        self._log = logging.getLogger("councilvault.identity")

    @property
    def fixed_message(self) -> str:
        """Get the default derivation message."""
        return self._message

    def derive(self, sign_fn: SignFn, fixed_message: Optional[str] = None) -> KeyPair:
        """
        Derive the keypair for the identity behind sign_fn.

        Args:
            sign_fn: Signs a text message, returning bytes or 0x-hex
            fixed_message: Overrides the configured derivation message

        Returns:
            Deterministic X25519 keypair

        Raises:
            SignatureDeclined: If the user refused to sign
            SignatureUnavailable: If no signature could be obtained
            InvalidParameter: If the message is empty
        """
        message = self._resolve_message(fixed_message)
        try:
            signature = sign_fn(message)
        except IdentityError:
            raise
        except Exception as e:
            raise self._classify(e) from e

        if inspect.isawaitable(signature):
            if inspect.iscoroutine(signature):
                signature.close()
            raise InvalidParameter("Asynchronous signers must be used with derive_async()")

        return self.keypair_from_signature(signature)

    async def derive_async(self, sign_fn: AsyncSignFn, fixed_message: Optional[str] = None) -> KeyPair:
        """
        Derive the keypair using a coroutine signer.

        Cancelling this call cancels the pending signature request.
        """
        message = self._resolve_message(fixed_message)
        try:
            signature = sign_fn(message)
            if inspect.isawaitable(signature):
                signature = await signature
        except IdentityError:
            raise
        except Exception as e:
            raise self._classify(e) from e

        return self.keypair_from_signature(signature)

    def keypair_from_signature(self, signature: Signature) -> KeyPair:
        """
        Hash a signature into a seed and build the keypair.

        Raises:
            SignatureUnavailable: If the signature is empty or not bytes/hex
        """
        signature_bytes = self._normalize_signature(signature)

        with scrubbed(self._hash(signature_bytes)) as seed:
            if len(seed) != PRIVATE_KEY_SIZE:
                raise InvalidParameter(f"Seed hash must produce {PRIVATE_KEY_SIZE} bytes")
            keypair = self._asymmetric.keypair_from_private_key(bytes(seed))

        self._log.debug("Derived identity keypair")
        return keypair

    def _resolve_message(self, fixed_message: Optional[str]) -> str:
        message = self._message if fixed_message is None else fixed_message
        if not isinstance(message, str) or not message:
            raise InvalidParameter("The derivation message must be non-empty text")
        return message

    @staticmethod
    def _normalize_signature(signature: Any) -> bytes:
        if isinstance(signature, str):
            try:
                signature = hex_to_bytes(signature)
            except InvalidPayload as e:
                raise SignatureUnavailable("Signer returned a malformed signature") from e
        elif isinstance(signature, (bytes, bytearray, memoryview)):
            signature = bytes(signature)
        else:
            raise SignatureUnavailable("Signer returned no signature")

        if not signature:
            raise SignatureUnavailable("Signer returned an empty signature")
        return signature

    def _classify(self, error: Exception) -> IdentityError:
        """Map a signer failure to SignatureDeclined or SignatureUnavailable."""
        text = str(error)
        if any(marker in text for marker in self._decline_markers):
            self._log.error("User canceled the signature")
            return SignatureDeclined()

        self._log.error("Failed to retrieve signature (%s)", type(error).__name__)
        return SignatureUnavailable()


def normalize_private_key(value: str) -> str:
    """
    Normalize a hex private key to 0x-prefixed form.

    Raises:
        InvalidParameter: If the value is empty or just "0x"
    """
    if not value:
        raise InvalidParameter("Private key is required")

    trimmed = value.strip()
    if trimmed in ("", "0x", "0X"):
        raise InvalidParameter("Private key is required")

    if trimmed.lower().startswith("0x"):
        return trimmed
    return f"0x{trimmed}"


class LocalSigner:
    """
    In-process signing identity backed by an Ed25519 key.

    Ed25519 signatures are deterministic, so a LocalSigner always derives
    the same decryption keypair. Useful for automation accounts and tests
    where no interactive wallet is available.

    Usage:
        signer = LocalSigner.from_env("COUNCILVAULT_SIGNER_KEY")
        keypair = DeterministicIdentity(config).derive(signer.sign)
    """

    __slots__ = ("_key",)

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._key = private_key

    @classmethod
    def generate(cls) -> "LocalSigner":
        """Create a signer with a fresh random key."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_hex(cls, value: str) -> "LocalSigner":
        """
        Load a signer from a 32-byte hex private key.

        Raises:
            InvalidParameter: If the key is missing or not 32 hex bytes
        """
        normalized = normalize_private_key(value)
        try:
            raw = hex_to_bytes(normalized)
        except InvalidPayload as e:
            raise InvalidParameter("Private key is not valid hex") from e
        if len(raw) != 32:
            raise InvalidParameter("Private key must be 32 bytes")
        return cls(Ed25519PrivateKey.from_private_bytes(raw))

    @classmethod
    def from_env(cls, variable: str) -> "LocalSigner":
        """
        Load a signer from an environment variable holding a hex key.

        Raises:
            InvalidParameter: If the variable is unset or invalid
        """
        return cls.from_hex(os.environ.get(variable, ""))

    @property
    def public_key(self) -> bytes:
        """Raw 32-byte Ed25519 public key identifying this signer."""
        return self._key.public_key().public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw,
        )

    def sign(self, message: str) -> bytes:
        """Sign UTF-8 text, returning a 64-byte signature."""
        return self._key.sign(message.encode("utf-8"))

    def __call__(self, message: str) -> bytes:
        return self.sign(message)

    def __repr__(self) -> str:
        """Safe representation without exposing key material."""
        return f"LocalSigner(pk={self.public_key.hex()[:8]}...)"
