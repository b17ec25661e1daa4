"""
Security Constants
==================

Defines cryptographic sizes and the identity derivation message.
These values define wire formats and derived keyspaces; changing any
of them breaks compatibility with envelopes and keys already published.
"""

from typing import Final

from nacl.bindings import crypto_box_SEALBYTES
from nacl.public import PrivateKey, PublicKey
from nacl.secret import SecretBox

# Symmetric layer (XSalsa20-Poly1305, libsodium crypto_secretbox)
SYMMETRIC_KEY_SIZE: Final[int] = SecretBox.KEY_SIZE  # 32
SYMMETRIC_NONCE_SIZE: Final[int] = SecretBox.NONCE_SIZE  # 24
SYMMETRIC_TAG_SIZE: Final[int] = SecretBox.MACBYTES  # 16
MIN_ENCRYPTED_FIELD_SIZE: Final[int] = SYMMETRIC_NONCE_SIZE + SYMMETRIC_TAG_SIZE

# Asymmetric layer (X25519 sealed boxes, libsodium crypto_box_seal)
PUBLIC_KEY_SIZE: Final[int] = PublicKey.SIZE  # 32
PRIVATE_KEY_SIZE: Final[int] = PrivateKey.SIZE  # 32
SEAL_OVERHEAD: Final[int] = crypto_box_SEALBYTES  # 48: ephemeral public key + tag
KEY_TYPE_X25519: Final[str] = "x25519"

# Seed hashing for deterministic identities
SEED_HASH_ALGORITHMS: Final[frozenset[str]] = frozenset({"keccak256", "sha256", "sha3_256"})
DEFAULT_SEED_HASH: Final[str] = "keccak256"

# Versioned derivation message. Changing this text changes every derived
# keypair for every identity.
DETERMINISTIC_EMERGENCY_PAYLOAD: Final[str] = (
    "This text is used to generate an encryption key to be used on private "
    "proposals targetting the Taiko DAO.\n\nSign this message ONLY if you are "
    "about to create, approve or execute a emergency proposal using the "
    "official Taiko app."
)

# Substrings that mark a wallet error as a user refusal
SIGNATURE_DECLINE_MARKERS: Final[tuple[str, ...]] = ("User rejected", "denied")

# Registry value meaning "no public key registered"
UNSET_PUBLIC_KEY: Final[bytes] = bytes(PUBLIC_KEY_SIZE)
