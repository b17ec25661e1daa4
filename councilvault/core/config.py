"""
Configuration Module
====================

Provides immutable, environment-aware configuration for the envelope
engine and identity derivation.

Features:
- Immutable configuration after initialization
- Environment variable override support
- No secrets in default values or accepted from the environment
- Passed explicitly to the components that need it (no global instance)
"""

from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Final, Optional

from councilvault.security.constants import (
    DEFAULT_SEED_HASH,
    DETERMINISTIC_EMERGENCY_PAYLOAD,
    SEED_HASH_ALGORITHMS,
    SIGNATURE_DECLINE_MARKERS,
    SYMMETRIC_KEY_SIZE,
)


# Security Constants
_SENSITIVE_KEYS: Final[frozenset[str]] = frozenset({
    "password", "secret", "key", "token", "api_key",
    "private", "credential", "auth", "seed", "signature",
})

# Config keys that contain a sensitive word but hold no secret
_ALLOWED_KEYS: Final[frozenset[str]] = frozenset({
    "crypto.symmetric_key_length",
    "crypto.seed_hash",
})


def _flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


# Environment-settable fields and how their text is converted
_ENV_FIELDS: Final[dict[str, Callable[[str], Any]]] = {
    "crypto.symmetric_key_length": int,
    "crypto.seed_hash": str.lower,
    "identity.fixed_message": str,
    "logging.level": str.upper,
    "logging.enable_console": _flag,
    "logging.log_dir": Path,
}


def _is_sensitive_key(key: str) -> bool:
    """Check if a configuration key might contain sensitive data."""
    if key in _ALLOWED_KEYS:
        return False
    key_lower = key.lower()
    return any(sensitive in key_lower for sensitive in _SENSITIVE_KEYS)


@dataclass(frozen=True, slots=True)
class CryptoConfig:
    """Immutable envelope cipher configuration."""

    symmetric_key_length: int = SYMMETRIC_KEY_SIZE
    seed_hash: str = DEFAULT_SEED_HASH

    def __post_init__(self) -> None:
        """Validate crypto settings."""
        if self.symmetric_key_length != SYMMETRIC_KEY_SIZE:
            raise ValueError(f"Symmetric key length must be {SYMMETRIC_KEY_SIZE} bytes")
        if self.seed_hash not in SEED_HASH_ALGORITHMS:
            raise ValueError(
                f"Unsupported seed hash: {self.seed_hash} "
                f"(expected one of {', '.join(sorted(SEED_HASH_ALGORITHMS))})"
            )


@dataclass(frozen=True, slots=True)
class IdentityConfig:
    """Immutable deterministic identity configuration."""

    fixed_message: str = DETERMINISTIC_EMERGENCY_PAYLOAD
    decline_markers: tuple[str, ...] = SIGNATURE_DECLINE_MARKERS

    def __post_init__(self) -> None:
        """Validate identity settings."""
        if not self.fixed_message:
            raise ValueError("The derivation message cannot be empty")


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Immutable logging configuration."""

    level: str = "INFO"
    enable_console: bool = True
    log_dir: Optional[Path] = None
    format: str = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"

    def __post_init__(self) -> None:
        """Validate logging settings."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if self.level.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {self.level}")
        if self.log_dir is not None and not self.log_dir.is_absolute():
            raise ValueError(f"log_dir must be an absolute path: {self.log_dir}")


class CouncilConfig:
    """
    Immutable configuration with environment override support.

    Instances are created once by the caller and handed to the codec,
    identity and proposal layers; nothing in the package reads a
    process-wide configuration.

    Usage:
        config = CouncilConfig.load()
        codec = EnvelopeCodec(config)
        identity = DeterministicIdentity(config=config)
    """

    __slots__ = ("_crypto", "_identity", "_logging", "_frozen", "_config_hash")

    def __init__(
        self,
        crypto: Optional[CryptoConfig] = None,
        identity: Optional[IdentityConfig] = None,
        logging: Optional[LoggingConfig] = None,
    ) -> None:
        """Initialize configuration. Use CouncilConfig.load() to read the environment."""
        object.__setattr__(self, "_frozen", False)
        object.__setattr__(self, "_crypto", crypto or CryptoConfig())
        object.__setattr__(self, "_identity", identity or IdentityConfig())
        object.__setattr__(self, "_logging", logging or LoggingConfig())
        object.__setattr__(self, "_config_hash", self._compute_hash())
        object.__setattr__(self, "_frozen", True)

    def _compute_hash(self) -> str:
        """Compute a short fingerprint of the configuration."""
        config_str = f"{self._crypto}|{self._identity}|{self._logging}"
        return hashlib.sha256(config_str.encode()).hexdigest()[:16]

    @property
    def crypto(self) -> CryptoConfig:
        """Get cipher configuration."""
        return self._crypto

    @property
    def identity(self) -> IdentityConfig:
        """Get identity configuration."""
        return self._identity

    @property
    def logging(self) -> LoggingConfig:
        """Get logging configuration."""
        return self._logging

    @property
    def config_hash(self) -> str:
        """Get configuration fingerprint."""
        return self._config_hash

    @classmethod
    def load(cls, env_prefix: str = "COUNCILVAULT") -> CouncilConfig:
        """
        Load configuration with environment variable overrides.

        Variables are named <PREFIX>_<SECTION>__<FIELD>; only the fields in
        _ENV_FIELDS are read, and names that look secret are ignored.

        Examples:
            COUNCILVAULT_LOGGING__LEVEL=DEBUG
            COUNCILVAULT_CRYPTO__SEED_HASH=sha256
            COUNCILVAULT_IDENTITY__FIXED_MESSAGE="..."

        Raises:
            ValueError: If an override does not convert or validate
        """
        sections: dict[str, dict[str, Any]] = {"crypto": {}, "identity": {}, "logging": {}}
        for config_key, value in cls._parse_env_overrides(env_prefix).items():
            convert = _ENV_FIELDS.get(config_key)
            if convert is None:
                continue
            section, name = config_key.split(".", 1)
            sections[section][name] = convert(value)

        return cls(
            crypto=CryptoConfig(**sections["crypto"]) if sections["crypto"] else None,
            identity=IdentityConfig(**sections["identity"]) if sections["identity"] else None,
            logging=LoggingConfig(**sections["logging"]) if sections["logging"] else None,
        )

    @staticmethod
    def _parse_env_overrides(prefix: str) -> dict[str, str]:
        """Parse environment variables with the given prefix."""
        overrides: dict[str, str] = {}
        prefix_upper = f"{prefix.upper()}_"

        for key, value in os.environ.items():
            if key.startswith(prefix_upper):
                # COUNCILVAULT_SECTION__KEY -> section.key
                config_key = key[len(prefix_upper):].lower().replace("__", ".")

                # SECURITY: Skip sensitive keys from environment
                if _is_sensitive_key(config_key):
                    continue

                overrides[config_key] = value

        return overrides

    def __repr__(self) -> str:
        """Safe string representation."""
        return f"CouncilConfig(hash={self._config_hash}, seed_hash={self._crypto.seed_hash})"

    def __setattr__(self, name: str, value: Any) -> None:
        """Prevent modification after initialization."""
        if getattr(self, "_frozen", False):
            raise AttributeError("CouncilConfig is immutable after initialization")
        object.__setattr__(self, name, value)
