"""
Emergency Proposal Flow
=======================

Glue between the envelope codec, the content store and the on-chain
commitments of an emergency proposal.

Creation:
    1. Keep council members that have a registered public key
    2. Seal JSON metadata + ABI-encoded actions for those members
    3. Publish the envelope and the public metadata
    4. Commit keccak256(public metadata URI) and keccak256(actions)

Execution:
    fetch envelope → open with the member's derived keypair
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

from councilvault.core.crypto.asymmetric import KeyPair
from councilvault.core.crypto.envelope import DecryptedProposal, EnvelopeCodec
from councilvault.core.crypto.identity import keccak256
from councilvault.core.exceptions import InvalidPayload, NoRegisteredRecipients
from councilvault.core.store import LOCATOR_SCHEME, ContentStore, fetch_envelope, publish_envelope
from councilvault.security.constants import PUBLIC_KEY_SIZE, UNSET_PUBLIC_KEY
from councilvault.utils.encoding import bytes_to_hex, hex_to_bytes

_log = logging.getLogger("councilvault.proposal")

RegisteredKey = Optional[Union[bytes, str]]


@dataclass(frozen=True, slots=True)
class EncryptedProposalData:
    """
    Values an author submits on-chain for an emergency proposal.

    Attributes:
        encrypted_payload_uri: ipfs:// URI of the published envelope
        public_metadata_uri: ipfs:// URI of the public metadata
        public_metadata_uri_hash: 0x keccak256 of the public metadata URI
        destination_actions_hash: 0x keccak256 of the ABI-encoded actions
        recipients: Member addresses the key was wrapped for, in order
    """

    encrypted_payload_uri: str
    public_metadata_uri: str
    public_metadata_uri_hash: str
    destination_actions_hash: str
    recipients: tuple[str, ...]


def to_json_text(value: Any) -> str:
    """Serialize metadata compactly (the form signed off by the author)."""
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def registered_public_key(value: RegisteredKey) -> Optional[bytes]:
    """
    Interpret a registry entry as a public key.

    Returns:
        The 32-byte key, or None when the entry is missing, all zero
        or malformed
    """
    if value is None:
        return None
    try:
        key = hex_to_bytes(value) if isinstance(value, str) else bytes(value)
    except InvalidPayload:
        return None
    if len(key) != PUBLIC_KEY_SIZE or key == UNSET_PUBLIC_KEY:
        return None
    return key


def encrypt_emergency_proposal(
    metadata: Any,
    action_bytes: bytes,
    member_keys: Mapping[str, RegisteredKey],
    store: ContentStore,
    codec: Optional[EnvelopeCodec] = None,
) -> EncryptedProposalData:
    """
    Seal and publish an emergency proposal.

    Args:
        metadata: JSON-serializable proposal metadata
        action_bytes: ABI-encoded action list
        member_keys: Member address -> registered public key (bytes, 0x hex,
            or None when unregistered)
        store: Content store to publish to
        codec: Envelope codec (default configuration if None)

    Raises:
        NoRegisteredRecipients: If no member has a usable public key
    """
    codec = codec or EnvelopeCodec()

    recipients: list[str] = []
    public_keys: list[bytes] = []
    for member, value in member_keys.items():
        key = registered_public_key(value)
        if key is None:
            _log.warning("No public key found for member %s", member)
            continue
        recipients.append(member)
        public_keys.append(key)

    if not public_keys:
        raise NoRegisteredRecipients(
            "No Security Council members have registered public keys. "
            "Cannot create encrypted proposal."
        )
    _log.info("Found public keys for %d of %d members", len(public_keys), len(member_keys))

    sealed = codec.seal(to_json_text(metadata), action_bytes, public_keys)
    encrypted_payload_uri = publish_envelope(store, sealed.envelope)

    public_cid = store.put(to_json_text(metadata).encode("utf-8"))
    public_metadata_uri = f"{LOCATOR_SCHEME}{public_cid}"

    return EncryptedProposalData(
        encrypted_payload_uri=encrypted_payload_uri,
        public_metadata_uri=public_metadata_uri,
        public_metadata_uri_hash=bytes_to_hex(keccak256(public_metadata_uri.encode("utf-8"))),
        destination_actions_hash=bytes_to_hex(keccak256(bytes(action_bytes))),
        recipients=tuple(recipients),
    )


def decrypt_proposal_for_execution(
    payload_uri: str,
    store: ContentStore,
    recipient: KeyPair,
    codec: Optional[EnvelopeCodec] = None,
) -> DecryptedProposal:
    """
    Fetch and open an emergency proposal's envelope.

    Raises:
        ContentNotFound: If the payload is not in the store
        InvalidPayload: If the payload is not an envelope
        UnauthorizedRecipient: If the keypair is not among the recipients
        AuthenticationFailure: If the envelope was tampered with
    """
    codec = codec or EnvelopeCodec()
    envelope = fetch_envelope(store, payload_uri)
    return codec.open(envelope, recipient)
