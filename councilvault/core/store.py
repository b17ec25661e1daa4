"""
Content Store Boundary
======================

Envelopes are published to a content-addressed store (IPFS in
production). The engine only needs put/get of opaque bytes; concrete
network clients live outside this package and implement ContentStore.

MemoryContentStore addresses content by SHA-256 and is used for tests
and offline tooling.
"""

from __future__ import annotations

import hashlib
import logging
import threading
from abc import ABC, abstractmethod
from typing import Final

from councilvault.core.crypto.envelope import Envelope
from councilvault.core.exceptions import ContentNotFound

LOCATOR_SCHEME: Final[str] = "ipfs://"


def strip_locator_scheme(locator: str) -> str:
    """Strip an ipfs:// prefix, leaving the bare content identifier."""
    return locator[len(LOCATOR_SCHEME):] if locator.startswith(LOCATOR_SCHEME) else locator


class ContentStore(ABC):
    """Abstract content store."""

    @abstractmethod
    def put(self, data: bytes) -> str:
        """Store bytes. Returns the content identifier."""
        ...

    @abstractmethod
    def get(self, locator: str) -> bytes:
        """Fetch bytes by identifier or ipfs:// URI. Raises ContentNotFound."""
        ...


class MemoryContentStore(ContentStore):
    """
    In-memory content-addressed store.

    Identifiers are the hex SHA-256 of the content, so storing the same
    bytes twice yields the same identifier.
    """

    def __init__(self) -> None:
        self._objects: dict[str, bytes] = {}
        self._lock = threading.Lock()

    def put(self, data: bytes) -> str:
        content = bytes(data)
        cid = hashlib.sha256(content).hexdigest()
        with self._lock:
            self._objects[cid] = content
        return cid

    def get(self, locator: str) -> bytes:
        cid = strip_locator_scheme(locator)
        with self._lock:
            try:
                return self._objects[cid]
            except KeyError:
                raise ContentNotFound(locator) from None

    def __len__(self) -> int:
        with self._lock:
            return len(self._objects)


def publish_envelope(store: ContentStore, envelope: Envelope) -> str:
    """
    Publish an envelope in its JSON form.

    Returns:
        ipfs:// URI of the published payload
    """
    cid = store.put(envelope.to_json().encode("utf-8"))
    uri = f"{LOCATOR_SCHEME}{cid}"
    logging.getLogger("councilvault.store").info(
        "Published envelope with %d wrapped key(s)", len(envelope.wrapped_keys),
    )
    return uri


def fetch_envelope(store: ContentStore, locator: str) -> Envelope:
    """
    Fetch and parse a published envelope.

    Raises:
        ContentNotFound: If the store has nothing under the locator
        InvalidPayload: If the content is not an envelope
    """
    return Envelope.from_json(store.get(locator))
