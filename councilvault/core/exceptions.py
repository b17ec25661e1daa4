"""
Error Taxonomy
==============

Every failure raised by CouncilVault derives from ``CouncilVaultError``.

Categories:
    - InvalidParameter: caller bug (bad lengths or arguments), never retried
    - MalformedInput: malformed data (seed, payload, envelope, metadata)
    - AuthenticationFailure: cryptographic verification failed
    - UnauthorizedRecipient: no wrapped key opens with the given keypair
    - IdentityError: the signing identity could not produce a signature

Security Notes:
    - Messages never include key material, plaintext or signatures
    - AuthenticationFailure does not say whether the key or the data was wrong
"""

from __future__ import annotations

from typing import Optional


class CouncilVaultError(Exception):
    """Base class for all CouncilVault errors."""
    pass


class InvalidParameter(CouncilVaultError, ValueError):
    """Raised for invalid lengths or arguments supplied by the caller."""
    pass


class MalformedInput(CouncilVaultError, ValueError):
    """Raised when input data is structurally invalid."""
    pass


class InvalidSeed(MalformedInput):
    """
    Raised when a keypair seed cannot be used.

    Attributes:
        reason: "not_hex" or "wrong_length"
    """

    NOT_HEX = "not_hex"
    WRONG_LENGTH = "wrong_length"

    def __init__(self, message: str, reason: str) -> None:
        super().__init__(message)
        self.reason = reason


class InvalidPayload(MalformedInput):
    """Raised when a ciphertext or serialized envelope is malformed."""
    pass


class EmptyEnvelope(MalformedInput):
    """Raised when an envelope carries an empty encrypted field."""
    pass


class MalformedMetadata(MalformedInput):
    """Raised when decrypted metadata is not valid JSON."""
    pass


class EncodingFailure(MalformedInput):
    """Raised when decrypted bytes are not valid UTF-8."""
    pass


class AuthenticationFailure(CouncilVaultError):
    """
    Raised when authenticated decryption fails.

    This is deliberately generic: wrong key, tampering and truncation
    all look the same to the caller.
    """
    pass


class UnauthorizedRecipient(CouncilVaultError):
    """Raised when trial decryption exhausts every wrapped key."""

    def __init__(
        self,
        message: str = "The given keypair cannot decrypt any of the ciphertext's",
        attempts: int = 0,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts


class IdentityError(CouncilVaultError):
    """Base class for signing identity failures."""
    pass


class SignatureDeclined(IdentityError):
    """Raised when the user refused to sign the derivation message."""

    def __init__(self, message: str = "Signature canceled by user") -> None:
        super().__init__(message)


class SignatureUnavailable(IdentityError):
    """Raised when a signature could not be obtained for any other reason."""

    def __init__(self, message: str = "Could not retrieve signature") -> None:
        super().__init__(message)


class NoRegisteredRecipients(CouncilVaultError):
    """Raised when no council member has a registered public key."""
    pass


class ContentNotFound(CouncilVaultError, KeyError):
    """Raised when a content store has nothing under a locator."""

    def __init__(self, locator: str, detail: Optional[str] = None) -> None:
        super().__init__(detail or f"No content stored under {locator}")
        self.locator = locator

    def __str__(self) -> str:
        return str(self.args[0])
