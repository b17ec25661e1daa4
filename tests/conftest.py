"""Shared fixtures for the CouncilVault test suite."""

import hashlib

import pytest

from councilvault.core.config import CouncilConfig
from councilvault.core.crypto.asymmetric import AsymmetricCipher
from councilvault.core.crypto.envelope import EnvelopeCodec
from councilvault.core.crypto.identity import DeterministicIdentity
from councilvault.core.crypto.symmetric import SymmetricCipher
from councilvault.core.store import MemoryContentStore


class FixedSigner:
    """Signing identity that returns a fixed signature per message."""

    def __init__(self, identity: bytes = b"member-1") -> None:
        self.identity = identity
        self.calls = []

    def __call__(self, message: str) -> bytes:
        self.calls.append(message)
        return hashlib.sha512(self.identity + message.encode("utf-8")).digest() + b"\x1b"


@pytest.fixture
def config():
    return CouncilConfig()


@pytest.fixture
def symmetric():
    return SymmetricCipher()


@pytest.fixture
def asymmetric():
    return AsymmetricCipher()


@pytest.fixture
def codec(config):
    return EnvelopeCodec(config)


@pytest.fixture
def identity(config):
    return DeterministicIdentity(config)


@pytest.fixture
def council(asymmetric):
    """Three freshly generated member keypairs."""
    return [asymmetric.generate_keypair() for _ in range(3)]


@pytest.fixture
def store():
    return MemoryContentStore()


@pytest.fixture
def fixed_signer():
    return FixedSigner()


@pytest.fixture
def make_signer():
    return FixedSigner
