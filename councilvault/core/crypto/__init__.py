"""
CouncilVault Cryptographic Core
===============================

Provides multi-recipient envelope encryption for council proposals.

Architecture:
    1. XSalsa20-Poly1305 (secretbox): proposal fields
    2. X25519 sealed boxes: per-member key wrapping
    3. Signature-derived X25519 keypairs: member identities

Security Properties:
    - All encryption is authenticated
    - One fresh symmetric key per proposal
    - Wrapped keys carry no recipient identifier
    - Member keypairs are reproducible and never stored

WARNING: This module handles sensitive cryptographic material.
         Incorrect usage can compromise security.
"""

from councilvault.core.crypto.symmetric import SymmetricCipher
from councilvault.core.crypto.asymmetric import AsymmetricCipher, KeyPair
from councilvault.core.crypto.envelope import (
    DecryptedProposal,
    Envelope,
    EnvelopeCodec,
    SealedProposal,
)
from councilvault.core.crypto.identity import DeterministicIdentity, LocalSigner

__all__ = [
    "SymmetricCipher",
    "AsymmetricCipher",
    "KeyPair",
    "DecryptedProposal",
    "Envelope",
    "EnvelopeCodec",
    "SealedProposal",
    "DeterministicIdentity",
    "LocalSigner",
]
