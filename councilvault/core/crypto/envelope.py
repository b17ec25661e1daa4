"""
Proposal Envelope Codec
=======================

Encrypts a proposal once and lets any council member open it.

Sealing Flow:
    metadata text, action bytes
        ↓ fresh symmetric key K
    encrypted_metadata = secretbox(metadata, K)
    encrypted_actions  = secretbox(actions, K)
        ↓ for each member public key, in order
    wrapped_keys[i] = sealed_box(K, member_pk[i])

Opening Flow:
    wrapped_keys
        ↓ trial decryption with the member's keypair (first success wins)
    K
        ↓ secretbox open (verify integrity)
    metadata text → JSON, action bytes verbatim

Wrapped keys carry no recipient identifier and their order is not
relied on when opening, so a member's slot is never disclosed.

Serialized Forms:
    Binary:
        MAGIC (4) | VERSION (1) |
        META_LEN (4) | META | ACT_LEN (4) | ACT |
        KEY_COUNT (2) | (KEY_LEN (2) | KEY)*
    JSON (published payload):
        {"encrypted": {"metadata": b64, "actions": b64,
                       "symmetricKeys": ["0x..", ...]}}
"""

from __future__ import annotations

import json
import logging
import struct
from dataclasses import dataclass
from typing import Any, Final, Iterable, Optional, Sequence, Tuple, Union

from councilvault.core.config import CouncilConfig
from councilvault.core.crypto.asymmetric import AsymmetricCipher, KeyPair
from councilvault.core.crypto.symmetric import SymmetricCipher
from councilvault.core.exceptions import (
    AuthenticationFailure,
    EmptyEnvelope,
    InvalidPayload,
    MalformedMetadata,
    UnauthorizedRecipient,
)
from councilvault.core.memory.zeroization import scrubbed
from councilvault.utils.encoding import b64decode_field, b64encode_str, bytes_to_hex, hex_to_bytes
from councilvault.utils.validators import as_bytes, as_message_bytes

ENVELOPE_VERSION: Final[int] = 1
MAGIC_BYTES: Final[bytes] = b"CVEN"  # CouncilVault ENvelope

_U16_MAX: Final[int] = 0xFFFF
_U32_MAX: Final[int] = 0xFFFFFFFF


@dataclass(frozen=True, slots=True)
class Envelope:
    """
    Immutable published proposal envelope.

    Contains everything a council member needs to open the proposal
    except their own private key. Safe to publish.
    """

    encrypted_metadata: bytes
    encrypted_actions: bytes
    wrapped_keys: Tuple[bytes, ...] = ()

    def to_bytes(self) -> bytes:
        """
        Serialize to the binary form.

        Raises:
            InvalidPayload: If a field is too large for its length prefix
        """
        if len(self.encrypted_metadata) > _U32_MAX or len(self.encrypted_actions) > _U32_MAX:
            raise InvalidPayload("Encrypted field too large to serialize")
        if len(self.wrapped_keys) > _U16_MAX:
            raise InvalidPayload("Too many wrapped keys to serialize")

        parts = [
            MAGIC_BYTES,
            struct.pack("<B", ENVELOPE_VERSION),
            struct.pack("<I", len(self.encrypted_metadata)),
            self.encrypted_metadata,
            struct.pack("<I", len(self.encrypted_actions)),
            self.encrypted_actions,
            struct.pack("<H", len(self.wrapped_keys)),
        ]
        for wrapped in self.wrapped_keys:
            if len(wrapped) > _U16_MAX:
                raise InvalidPayload("Wrapped key too large to serialize")
            parts.append(struct.pack("<H", len(wrapped)))
            parts.append(wrapped)

        return b"".join(parts)

    @classmethod
    def from_bytes(cls, data: bytes) -> "Envelope":
        """
        Deserialize from the binary form.

        Raises:
            InvalidPayload: If data is malformed, truncated or has trailing bytes
        """
        data = as_bytes(data, "envelope")
        if len(data) < 4 or data[:4] != MAGIC_BYTES:
            raise InvalidPayload("Invalid envelope: bad magic bytes")

        try:
            offset = 4
            version = struct.unpack_from("<B", data, offset)[0]
            offset += 1
            if version != ENVELOPE_VERSION:
                raise InvalidPayload(f"Unsupported envelope version: {version}")

            meta_len = struct.unpack_from("<I", data, offset)[0]
            offset += 4
            encrypted_metadata = _take(data, offset, meta_len)
            offset += meta_len

            act_len = struct.unpack_from("<I", data, offset)[0]
            offset += 4
            encrypted_actions = _take(data, offset, act_len)
            offset += act_len

            key_count = struct.unpack_from("<H", data, offset)[0]
            offset += 2
            wrapped_keys = []
            for _ in range(key_count):
                key_len = struct.unpack_from("<H", data, offset)[0]
                offset += 2
                wrapped_keys.append(_take(data, offset, key_len))
                offset += key_len
        except struct.error as e:
            raise InvalidPayload("Invalid envelope: truncated data") from e

        if offset != len(data):
            raise InvalidPayload("Invalid envelope: trailing bytes")

        return cls(
            encrypted_metadata=encrypted_metadata,
            encrypted_actions=encrypted_actions,
            wrapped_keys=tuple(wrapped_keys),
        )

    def to_dict(self) -> dict[str, Any]:
        """Build the published JSON structure."""
        return {
            "encrypted": {
                "metadata": b64encode_str(self.encrypted_metadata),
                "actions": b64encode_str(self.encrypted_actions),
                "symmetricKeys": [bytes_to_hex(k) for k in self.wrapped_keys],
            }
        }

    @classmethod
    def from_dict(cls, data: Any) -> "Envelope":
        """
        Parse the published JSON structure.

        Raises:
            InvalidPayload: If members are missing or badly encoded
        """
        try:
            encrypted = data["encrypted"]
            metadata = encrypted["metadata"]
            actions = encrypted["actions"]
            symmetric_keys = encrypted["symmetricKeys"]
        except (KeyError, TypeError) as e:
            raise InvalidPayload("Invalid envelope: missing encrypted members") from e

        if not isinstance(metadata, str) or not isinstance(actions, str):
            raise InvalidPayload("Invalid envelope: encrypted fields must be base64 strings")
        if not isinstance(symmetric_keys, list) or not all(isinstance(k, str) for k in symmetric_keys):
            raise InvalidPayload("Invalid envelope: symmetricKeys must be a list of hex strings")

        return cls(
            encrypted_metadata=b64decode_field(metadata),
            encrypted_actions=b64decode_field(actions),
            wrapped_keys=tuple(hex_to_bytes(k) for k in symmetric_keys),
        )

    def to_json(self) -> str:
        """Serialize to the published JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, json_str: Union[str, bytes]) -> "Envelope":
        """
        Deserialize from the published JSON string.

        Raises:
            InvalidPayload: If the text is not JSON or not an envelope
        """
        try:
            data = json.loads(json_str)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise InvalidPayload("Invalid envelope: not JSON") from e
        return cls.from_dict(data)

    def __repr__(self) -> str:
        """Safe representation."""
        return (
            f"Envelope(meta_len={len(self.encrypted_metadata)}, "
            f"actions_len={len(self.encrypted_actions)}, "
            f"recipients={len(self.wrapped_keys)})"
        )


def _take(data: bytes, offset: int, length: int) -> bytes:
    """Slice exactly length bytes or fail."""
    if offset + length > len(data):
        raise InvalidPayload("Invalid envelope: truncated data")
    return data[offset : offset + length]


@dataclass(frozen=True, slots=True)
class SealedProposal:
    """
    Result of sealing a proposal.

    Attributes:
        envelope: Publishable envelope
        symmetric_key: The proposal key (caller discards it when done)
    """

    envelope: Envelope
    symmetric_key: bytes

    def __repr__(self) -> str:
        """Safe representation without exposing key material."""
        return f"SealedProposal({self.envelope!r})"


@dataclass(frozen=True, slots=True)
class DecryptedProposal:
    """
    Result of opening a proposal.

    Attributes:
        metadata: Parsed JSON metadata
        raw_metadata: Decrypted metadata text, verbatim
        raw_actions: Decrypted action bytes, verbatim (ABI-encoded)
    """

    metadata: Any
    raw_metadata: str
    raw_actions: bytes

    def __repr__(self) -> str:
        """Safe representation without exposing proposal contents."""
        return f"DecryptedProposal(metadata_len={len(self.raw_metadata)}, actions_len={len(self.raw_actions)})"


class EnvelopeCodec:
    """
    Multi-recipient envelope encryption for council proposals.

    Usage:
        codec = EnvelopeCodec()

        sealed = codec.seal(json.dumps(metadata), action_bytes, member_public_keys)
        publish(sealed.envelope.to_json())

        proposal = codec.open(envelope, member_keypair)
        proposal.metadata, proposal.raw_actions

    Security Notes:
        - One fresh symmetric key per seal, never reused
        - Opening tries every wrapped key; the failure to open any of them
          is reported as UnauthorizedRecipient, not AuthenticationFailure
        - The recovered key is zeroed once the fields are decrypted
    """

    __slots__ = ("_symmetric", "_asymmetric", "_key_length", "_log")

    def __init__(
        self,
        config: Optional[CouncilConfig] = None,
        symmetric: Optional[SymmetricCipher] = None,
        asymmetric: Optional[AsymmetricCipher] = None,
    ) -> None:
        """
        Initialize the codec.

        Args:
            config: Configuration (defaults are used if None)
            symmetric: Field cipher (created if None)
            asymmetric: Key-wrapping cipher (created if None)
        """
        config = config or CouncilConfig()
        self._symmetric = symmetric or SymmetricCipher()
        self._asymmetric = asymmetric or AsymmetricCipher()
        self._key_length = config.crypto.symmetric_key_length
        self._log = logging.getLogger("councilvault.envelope")

    @property
    def symmetric(self) -> SymmetricCipher:
        """Get the field cipher."""
        return self._symmetric

    @property
    def asymmetric(self) -> AsymmetricCipher:
        """Get the key-wrapping cipher."""
        return self._asymmetric

    def encrypt_proposal(
        self,
        metadata_text: str,
        action_bytes: bytes,
    ) -> Tuple[bytes, bytes, bytes]:
        """
        Encrypt metadata and actions under one fresh key.

        Returns:
            (encrypted_metadata, encrypted_actions, symmetric_key)
        """
        key = self._symmetric.generate_key(self._key_length)
        encrypted_metadata = self._symmetric.encrypt(metadata_text, key)
        encrypted_actions = self._symmetric.encrypt(as_bytes(action_bytes, "action_bytes"), key)
        return encrypted_metadata, encrypted_actions, key

    def wrap_key_for_recipients(
        self,
        symmetric_key: bytes,
        recipient_public_keys: Iterable[bytes],
    ) -> Tuple[bytes, ...]:
        """
        Wrap a symmetric key once per recipient, in input order.

        An empty recipient list yields an empty tuple.
        """
        return tuple(
            self._asymmetric.seal(symmetric_key, public_key)
            for public_key in recipient_public_keys
        )

    def seal(
        self,
        metadata_text: str,
        action_bytes: bytes,
        recipient_public_keys: Sequence[bytes],
    ) -> SealedProposal:
        """
        Encrypt a proposal for a set of council members.

        Args:
            metadata_text: Metadata (JSON text, may be empty)
            action_bytes: ABI-encoded actions (may be empty)
            recipient_public_keys: Member X25519 public keys, in order

        Returns:
            SealedProposal with the envelope and the raw symmetric key

        Note:
            With no recipients the envelope cannot be opened by anyone;
            this is not an error.
        """
        encrypted_metadata, encrypted_actions, key = self.encrypt_proposal(
            metadata_text, action_bytes
        )
        wrapped_keys = self.wrap_key_for_recipients(key, recipient_public_keys)

        self._log.info(
            "Sealed proposal for %d recipient(s) (metadata %d bytes, actions %d bytes)",
            len(wrapped_keys), len(encrypted_metadata), len(encrypted_actions),
        )
        if not wrapped_keys:
            self._log.warning("Sealed proposal has no recipients and cannot be opened")

        return SealedProposal(
            envelope=Envelope(
                encrypted_metadata=encrypted_metadata,
                encrypted_actions=encrypted_actions,
                wrapped_keys=wrapped_keys,
            ),
            symmetric_key=key,
        )

    def unwrap_key_for_recipient(
        self,
        wrapped_keys: Sequence[bytes],
        recipient: KeyPair,
    ) -> bytes:
        """
        Recover the symmetric key by trial decryption.

        Tries each wrapped key in order and returns the first that opens
        to a key of the configured length. An entry that opens to any
        other length is skipped, since anyone holding the member's public
        key can seal such a value.

        Raises:
            UnauthorizedRecipient: If no wrapped key opens (including none given)
            InvalidPayload: If the only entries that open hold a malformed key
        """
        attempts = 0
        malformed = 0
        for wrapped in wrapped_keys:
            attempts += 1
            try:
                key = self._asymmetric.open_bytes(wrapped, recipient)
            except AuthenticationFailure:
                continue
            if len(key) == self._key_length:
                return key
            malformed += 1

        if malformed:
            self._log.warning("Wrapped key(s) opened to a malformed symmetric key (%d)", malformed)
            raise InvalidPayload(
                f"Wrapped key opened to a key that is not {self._key_length} bytes"
            )

        self._log.warning("Trial decryption exhausted %d wrapped key(s)", attempts)
        raise UnauthorizedRecipient(attempts=attempts)

    def decrypt_proposal(
        self,
        encrypted_metadata: bytes,
        encrypted_actions: bytes,
        symmetric_key: bytes,
    ) -> DecryptedProposal:
        """
        Decrypt both fields with a known symmetric key.

        Raises:
            EmptyEnvelope: If either field is empty (checked first)
            AuthenticationFailure: If a field does not verify under the key
            InvalidPayload: If a field is shorter than nonce + tag
            EncodingFailure: If metadata is not UTF-8
            MalformedMetadata: If metadata is not valid JSON
        """
        if not encrypted_metadata or not encrypted_actions:
            raise EmptyEnvelope("Empty data")

        raw_metadata = self._symmetric.decrypt_string(encrypted_metadata, symmetric_key)
        raw_actions = self._symmetric.decrypt_bytes(encrypted_actions, symmetric_key)

        try:
            metadata = json.loads(raw_metadata)
        except json.JSONDecodeError as e:
            raise MalformedMetadata(f"Decrypted metadata is not valid JSON: {e.msg}") from e

        return DecryptedProposal(
            metadata=metadata,
            raw_metadata=raw_metadata,
            raw_actions=raw_actions,
        )

    def open(self, envelope: Envelope, recipient: KeyPair) -> DecryptedProposal:
        """
        Open an envelope as a council member.

        Raises:
            UnauthorizedRecipient: If the keypair opens no wrapped key
            InvalidPayload: If the recovered key has the wrong length
            (plus everything decrypt_proposal raises)
        """
        with scrubbed(self.unwrap_key_for_recipient(envelope.wrapped_keys, recipient)) as key:
            proposal = self.decrypt_proposal(
                envelope.encrypted_metadata,
                envelope.encrypted_actions,
                bytes(key),
            )

        self._log.info("Opened proposal (actions %d bytes)", len(proposal.raw_actions))
        return proposal
