"""Tests for the emergency proposal flow."""

import json

import pytest

from councilvault.core.crypto.identity import keccak256
from councilvault.core.exceptions import (
    ContentNotFound,
    NoRegisteredRecipients,
    UnauthorizedRecipient,
)
from councilvault.core.proposal import (
    decrypt_proposal_for_execution,
    encrypt_emergency_proposal,
    registered_public_key,
    to_json_text,
)
from councilvault.utils.encoding import bytes_to_hex

METADATA = {"title": "Emergency upgrade", "summary": "Patch bridge", "resources": []}
ACTIONS = bytes.fromhex("00000000000000000000000000000000000000000000000000000000000000200000")


class TestRegisteredPublicKey:
    def test_bytes(self, council):
        assert registered_public_key(council[0].public_key) == council[0].public_key

    def test_hex(self, council):
        assert registered_public_key(bytes_to_hex(council[0].public_key)) == council[0].public_key

    @pytest.mark.parametrize("value", [None, "0x" + "00" * 32, bytes(32), "0x1234", "0xzz", b"\x01" * 31])
    def test_unusable(self, value):
        assert registered_public_key(value) is None


class TestEncryptEmergencyProposal:
    def test_every_member_can_execute(self, store, codec, council):
        members = {f"0x{i:040x}": kp.public_key for i, kp in enumerate(council)}
        data = encrypt_emergency_proposal(METADATA, ACTIONS, members, store, codec)

        assert data.recipients == tuple(members)
        for member in council:
            proposal = decrypt_proposal_for_execution(data.encrypted_payload_uri, store, member, codec)
            assert proposal.metadata == METADATA
            assert proposal.raw_actions == ACTIONS

    def test_commitments(self, store, codec, council):
        members = {"0xaa": council[0].public_key}
        data = encrypt_emergency_proposal(METADATA, ACTIONS, members, store, codec)

        assert data.public_metadata_uri_hash == bytes_to_hex(keccak256(data.public_metadata_uri.encode("utf-8")))
        assert data.destination_actions_hash == bytes_to_hex(keccak256(ACTIONS))
        assert json.loads(store.get(data.public_metadata_uri)) == METADATA
        assert store.get(data.public_metadata_uri) == to_json_text(METADATA).encode("utf-8")

    def test_skips_unregistered_members(self, store, codec, council, caplog):
        members = {
            "0xaa": council[0].public_key,
            "0xbb": None,
            "0xcc": "0x" + "00" * 32,
            "0xdd": bytes_to_hex(council[1].public_key),
        }
        with caplog.at_level("WARNING", logger="councilvault.proposal"):
            data = encrypt_emergency_proposal(METADATA, ACTIONS, members, store, codec)

        assert data.recipients == ("0xaa", "0xdd")
        assert "No public key found for member 0xbb" in caplog.text
        assert "No public key found for member 0xcc" in caplog.text
        with pytest.raises(UnauthorizedRecipient):
            decrypt_proposal_for_execution(data.encrypted_payload_uri, store, council[2], codec)

    def test_no_registered_members(self, store, codec):
        with pytest.raises(NoRegisteredRecipients, match="Cannot create encrypted proposal"):
            encrypt_emergency_proposal(METADATA, ACTIONS, {"0xaa": None}, store, codec)
        assert len(store) == 0

    def test_default_codec(self, store, council):
        data = encrypt_emergency_proposal(METADATA, ACTIONS, {"0xaa": council[0].public_key}, store)
        assert decrypt_proposal_for_execution(data.encrypted_payload_uri, store, council[0]).metadata == METADATA

    def test_unicode_metadata(self, store, codec, council):
        metadata = {"title": "Référendum ✓"}
        data = encrypt_emergency_proposal(metadata, b"", {"0xaa": council[0].public_key}, store, codec)
        proposal = decrypt_proposal_for_execution(data.encrypted_payload_uri, store, council[0], codec)
        assert proposal.raw_metadata == '{"title":"Référendum ✓"}'


def test_execution_with_missing_payload(store, council):
    with pytest.raises(ContentNotFound):
        decrypt_proposal_for_execution("ipfs://unknown", store, council[0])
