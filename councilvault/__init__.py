"""
CouncilVault - Confidential Council Proposals
=============================================

This package encrypts governance proposals once and lets any member of
a council open them, without publishing which envelope slot belongs to
which member, and derives each member's decryption keypair from their
existing signing identity.

Security Notice:
- No key material or plaintext is logged
- Fail-closed design pattern
- No process-wide key material or configuration
"""

from councilvault.core.config import CouncilConfig
from councilvault.core.crypto import (
    AsymmetricCipher,
    DecryptedProposal,
    DeterministicIdentity,
    Envelope,
    EnvelopeCodec,
    KeyPair,
    SealedProposal,
    SymmetricCipher,
)
from councilvault.core.logging import configure_logging

__version__ = "0.1.0"

__all__ = [
    "CouncilConfig",
    "AsymmetricCipher",
    "DecryptedProposal",
    "DeterministicIdentity",
    "Envelope",
    "EnvelopeCodec",
    "KeyPair",
    "SealedProposal",
    "SymmetricCipher",
    "configure_logging",
    "__version__",
]
