"""Tests for signature-derived identities."""

import asyncio
import hashlib

import pytest

from councilvault.core.config import CouncilConfig, CryptoConfig, IdentityConfig
from councilvault.core.crypto.asymmetric import AsymmetricCipher
from councilvault.core.crypto.identity import (
    DeterministicIdentity,
    LocalSigner,
    keccak256,
    normalize_private_key,
)
from councilvault.core.exceptions import (
    InvalidParameter,
    SignatureDeclined,
    SignatureUnavailable,
)
from councilvault.security.constants import DETERMINISTIC_EMERGENCY_PAYLOAD


def test_keccak256_known_vector():
    assert keccak256(b"").hex() == (
        "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    )


class TestDerive:
    def test_deterministic(self, identity, make_signer):
        first = identity.derive(make_signer(b"alice"))
        second = identity.derive(make_signer(b"alice"))
        assert first.public_key == second.public_key
        assert first.private_key == second.private_key

    def test_distinct_identities(self, identity, make_signer):
        alice = identity.derive(make_signer(b"alice"))
        bob = identity.derive(make_signer(b"bob"))
        assert alice.public_key != bob.public_key

    def test_signs_fixed_message(self, identity, fixed_signer):
        identity.derive(fixed_signer)
        assert fixed_signer.calls == [DETERMINISTIC_EMERGENCY_PAYLOAD]
        assert identity.fixed_message == DETERMINISTIC_EMERGENCY_PAYLOAD

    def test_message_override_changes_keypair(self, identity, make_signer):
        default = identity.derive(make_signer())
        other = identity.derive(make_signer(), fixed_message="another derivation message")
        assert default.public_key != other.public_key

    def test_seed_is_keccak_of_signature(self, identity, fixed_signer):
        keypair = identity.derive(fixed_signer)
        signature = fixed_signer(DETERMINISTIC_EMERGENCY_PAYLOAD)
        assert keypair.private_key == keccak256(signature)
        assert keypair.public_key == AsymmetricCipher.compute_public_key(keypair.private_key)

    def test_seed_hash_from_config(self, fixed_signer):
        identity = DeterministicIdentity(CouncilConfig(crypto=CryptoConfig(seed_hash="sha256")))
        keypair = identity.derive(fixed_signer)
        signature = fixed_signer(DETERMINISTIC_EMERGENCY_PAYLOAD)
        assert keypair.private_key == hashlib.sha256(signature).digest()

    def test_message_from_config(self, make_signer):
        config = CouncilConfig(identity=IdentityConfig(fixed_message="v2 derivation"))
        signer = make_signer()
        DeterministicIdentity(config).derive(signer)
        assert signer.calls == ["v2 derivation"]

    def test_hex_signature(self, identity, fixed_signer):
        expected = identity.derive(fixed_signer)
        hex_keypair = identity.derive(lambda message: "0x" + fixed_signer(message).hex())
        assert hex_keypair.public_key == expected.public_key

    def test_derived_keypair_opens_envelopes(self, identity, codec, fixed_signer):
        keypair = identity.derive(fixed_signer)
        sealed = codec.seal('{"title": "T"}', b"\x01", [keypair.public_key])
        again = identity.derive(fixed_signer)
        assert codec.open(sealed.envelope, again).metadata == {"title": "T"}

    def test_empty_message_override(self, identity, fixed_signer):
        with pytest.raises(InvalidParameter):
            identity.derive(fixed_signer, fixed_message="")
        assert fixed_signer.calls == []


class TestSignerFailures:
    @pytest.mark.parametrize("text", [
        "User rejected the request.",
        "MetaMask Tx Signature: User denied message signature.",
    ])
    def test_declined(self, identity, text):
        def sign(message):
            raise RuntimeError(text)

        with pytest.raises(SignatureDeclined, match="Signature canceled by user"):
            identity.derive(sign)

    def test_unavailable(self, identity):
        def sign(message):
            raise ConnectionError("wallet disconnected")

        with pytest.raises(SignatureUnavailable, match="Could not retrieve signature") as excinfo:
            identity.derive(sign)
        assert isinstance(excinfo.value.__cause__, ConnectionError)

    def test_identity_errors_pass_through(self, identity):
        def sign(message):
            raise SignatureDeclined("refused in hardware wallet")

        with pytest.raises(SignatureDeclined, match="hardware wallet"):
            identity.derive(sign)

    @pytest.mark.parametrize("result", [None, b"", "", "0xzz", 42])
    def test_unusable_signature(self, identity, result):
        with pytest.raises(SignatureUnavailable):
            identity.derive(lambda message: result)

    def test_coroutine_signer_rejected(self, identity):
        async def sign(message):
            return b"\x01" * 65

        with pytest.raises(InvalidParameter, match="derive_async"):
            identity.derive(sign)


class TestDeriveAsync:
    def test_matches_sync(self, identity, fixed_signer):
        async def sign(message):
            return fixed_signer(message)

        keypair = asyncio.run(identity.derive_async(sign))
        assert keypair.public_key == identity.derive(fixed_signer).public_key

    def test_accepts_sync_signer(self, identity, fixed_signer):
        keypair = asyncio.run(identity.derive_async(fixed_signer))
        assert keypair.public_key == identity.derive(fixed_signer).public_key

    def test_declined(self, identity):
        async def sign(message):
            raise RuntimeError("User rejected the request.")

        with pytest.raises(SignatureDeclined):
            asyncio.run(identity.derive_async(sign))


class TestLocalSigner:
    KEY = "0x" + "11" * 32

    def test_deterministic_keypair(self, identity):
        first = identity.derive(LocalSigner.from_hex(self.KEY))
        second = identity.derive(LocalSigner.from_hex(self.KEY[2:]).sign)
        assert first.public_key == second.public_key

    def test_signature_shape(self):
        signer = LocalSigner.generate()
        assert len(signer.public_key) == 32
        assert len(signer.sign("hello")) == 64
        assert signer.sign("hello") == signer("hello")

    def test_repr_hides_key(self):
        signer = LocalSigner.from_hex(self.KEY)
        assert "11111111" * 2 not in repr(signer)
        assert repr(signer).startswith("LocalSigner(pk=")

    @pytest.mark.parametrize("value", ["", "0x", "0x1234", "0x" + "zz" * 32])
    def test_from_hex_rejects(self, value):
        with pytest.raises(InvalidParameter):
            LocalSigner.from_hex(value)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("COUNCILVAULT_TEST_SIGNER", self.KEY)
        assert LocalSigner.from_env("COUNCILVAULT_TEST_SIGNER").public_key == (
            LocalSigner.from_hex(self.KEY).public_key
        )

    def test_from_env_unset(self, monkeypatch):
        monkeypatch.delenv("COUNCILVAULT_TEST_SIGNER", raising=False)
        with pytest.raises(InvalidParameter, match="required"):
            LocalSigner.from_env("COUNCILVAULT_TEST_SIGNER")


class TestNormalizePrivateKey:
    def test_adds_prefix(self):
        assert normalize_private_key("abcd") == "0xabcd"

    def test_keeps_prefix(self):
        assert normalize_private_key("0xabcd") == "0xabcd"

    def test_strips_whitespace(self):
        assert normalize_private_key("  abcd\n") == "0xabcd"

    @pytest.mark.parametrize("value", ["", "   ", "0x"])
    def test_rejects_empty(self, value):
        with pytest.raises(InvalidParameter, match="Private key is required"):
            normalize_private_key(value)
