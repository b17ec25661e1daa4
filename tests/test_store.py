"""Tests for the content store boundary."""

import hashlib

import pytest

from councilvault.core.crypto.envelope import Envelope
from councilvault.core.exceptions import ContentNotFound, InvalidPayload
from councilvault.core.store import (
    LOCATOR_SCHEME,
    fetch_envelope,
    publish_envelope,
    strip_locator_scheme,
)


def test_strip_locator_scheme():
    assert strip_locator_scheme("ipfs://abc") == "abc"
    assert strip_locator_scheme("abc") == "abc"


class TestMemoryContentStore:
    def test_content_addressed(self, store):
        cid = store.put(b"hello")
        assert cid == hashlib.sha256(b"hello").hexdigest()
        assert store.put(bytearray(b"hello")) == cid
        assert len(store) == 1

    def test_get_by_cid_or_uri(self, store):
        cid = store.put(b"data")
        assert store.get(cid) == b"data"
        assert store.get(LOCATOR_SCHEME + cid) == b"data"

    def test_missing(self, store):
        with pytest.raises(ContentNotFound, match="No content stored under ipfs://nothing") as excinfo:
            store.get("ipfs://nothing")
        assert excinfo.value.locator == "ipfs://nothing"
        assert isinstance(excinfo.value, KeyError)


class TestPublishFetch:
    def test_round_trip(self, store, codec, council):
        envelope = codec.seal('{"title": "T"}', b"\x01", [kp.public_key for kp in council]).envelope
        uri = publish_envelope(store, envelope)
        assert uri.startswith(LOCATOR_SCHEME)
        assert fetch_envelope(store, uri) == envelope

    def test_published_form_is_json(self, store, codec, council):
        envelope = codec.seal("{}", b"", [council[0].public_key]).envelope
        uri = publish_envelope(store, envelope)
        assert store.get(uri) == envelope.to_json().encode("utf-8")

    def test_fetch_non_envelope(self, store):
        cid = store.put(b"\xff\xfe not an envelope")
        with pytest.raises(InvalidPayload):
            fetch_envelope(store, cid)

    def test_fetch_missing(self, store):
        with pytest.raises(ContentNotFound):
            fetch_envelope(store, "ipfs://missing")

    def test_publish_log_has_no_key_material(self, store, codec, council, caplog):
        envelope = codec.seal("{}", b"", [council[0].public_key]).envelope
        with caplog.at_level("INFO", logger="councilvault.store"):
            publish_envelope(store, envelope)
        assert "Published envelope with 1 wrapped key(s)" in caplog.text
        assert envelope.wrapped_keys[0].hex() not in caplog.text


def test_envelope_from_store_bytes(store):
    envelope = Envelope(b"m" * 40, b"a" * 40, (b"k" * 80,))
    assert Envelope.from_json(store.get(publish_envelope(store, envelope))) == envelope
