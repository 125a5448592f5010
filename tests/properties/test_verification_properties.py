"""Property-based tests for content addressing and verification.

Invariants: distinct contents have distinct digests; any single-byte flip in
signed content or canonical manifest is detected with the right failure kind,
including when the altered manifest arrives through a persisted record.
"""

from __future__ import annotations

import base64
import json
import tempfile

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from layertrust.crypto.digest import hash_content
from layertrust.crypto.keys import generate_keypair
from layertrust.errors import FailureKind
from layertrust.layers.builder import build_layer
from layertrust.layers.codec import encode_layer
from layertrust.layers.models import Layer
from layertrust.storage.directory import DirectoryLayerStore
from layertrust.trust.store import TrustStore
from layertrust.verify.verifier import Verifier

_KEY, _PUBLIC = generate_keypair()
_TRUST = TrustStore()
_TRUST.add(_PUBLIC, label="property-tests")


def _signed(content: bytes, key: Ed25519PrivateKey = _KEY) -> Layer:
    return build_layer(content, key, name="acme/prop", description="property layer")


class TestContentAddressing:
    @given(a=st.binary(max_size=256), b=st.binary(max_size=256))
    def test_distinct_contents_distinct_digests(self, a: bytes, b: bytes) -> None:
        if a != b:
            assert hash_content(a) != hash_content(b)

    @given(content=st.binary(max_size=4096), chunk=st.integers(min_value=1, max_value=512))
    def test_chunking_does_not_change_digest(self, content: bytes, chunk: int) -> None:
        pieces = [content[i : i + chunk] for i in range(0, len(content), chunk)]
        assert hash_content(pieces) == hash_content(content)


class TestTamperDetection:
    @given(content=st.binary(min_size=1, max_size=128), data=st.data())
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_content_flip_is_integrity_mismatch(self, content: bytes, data: st.DataObject) -> None:
        layer = _signed(content)
        index = data.draw(st.integers(min_value=0, max_value=len(content) - 1))
        bit = data.draw(st.integers(min_value=0, max_value=7))
        flipped = bytearray(content)
        flipped[index] ^= 1 << bit
        result = Verifier(_TRUST).verify(layer.model_copy(update={"content": bytes(flipped)}))
        assert result.failure_kind is FailureKind.INTEGRITY_MISMATCH

    @given(data=st.data())
    @settings(max_examples=50, suppress_health_check=[HealthCheck.too_slow])
    def test_manifest_flip_never_verifies(self, data: st.DataObject) -> None:
        layer = _signed(b"payload")
        record = json.loads(encode_layer(layer))
        manifest = bytearray(base64.b64decode(record["manifest"]))
        index = data.draw(st.integers(min_value=0, max_value=len(manifest) - 1))
        bit = data.draw(st.integers(min_value=0, max_value=7))
        manifest[index] ^= 1 << bit
        record["manifest"] = base64.b64encode(bytes(manifest)).decode()
        with tempfile.TemporaryDirectory() as root:
            store = DirectoryLayerStore(root)
            store.put(layer).write_text(json.dumps(record))
            result = Verifier(_TRUST, store=store).verify_hash(layer.content_hash)
        assert not result.verified
        assert result.failure_kind in {
            FailureKind.SIGNATURE_INVALID,
            FailureKind.INTEGRITY_MISMATCH,
            FailureKind.UNTRUSTED_SIGNER,
        }

    @given(content=st.binary(max_size=64))
    @settings(max_examples=25)
    def test_signed_layers_verify_only_when_trusted(self, content: bytes) -> None:
        layer = _signed(content)
        assert Verifier(_TRUST).verify(layer).verified
        with TrustStore() as empty:
            assert Verifier(empty).verify(layer).failure_kind is FailureKind.UNTRUSTED_SIGNER
