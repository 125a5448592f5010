"""Tests for canonical manifest serialization and layer signing."""

from __future__ import annotations

import base64
import json

import jcs
import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from pydantic import ValidationError

from layertrust.crypto.keys import fingerprint, generate_keypair
from layertrust.crypto.models import SignatureBlock
from layertrust.crypto.signing import (
    canonicalize,
    parse_canonical,
    sign_layer,
    signing_payload,
    verify_signature,
)
from layertrust.errors import (
    KeyOperationFailedError,
    ManifestMalformedError,
    SignatureInvalidError,
)
from layertrust.models.constants import MANIFEST_FORMAT, SIGNING_DOMAIN
from layertrust.models.manifest import Manifest

CONTENT_HASH = "sha256:e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"


# --- Canonicalization ---


def test_canonicalize_field_order(sample_manifest: Manifest) -> None:
    document = json.loads(canonicalize(sample_manifest))
    assert document == [
        MANIFEST_FORMAT,
        "acme/webapp",
        sample_manifest.maintainer_fingerprint,
        sample_manifest.parent_hash,
        "git+https://example.com/acme/webapp@v1.2.0",
        "hello world",
        [["vcs", "git"], ["arch", "amd64"]],
        "2024-03-01T12:30:45.123456Z",
        CONTENT_HASH,
    ]


def test_canonicalize_is_jcs_encoding(sample_manifest: Manifest) -> None:
    raw = canonicalize(sample_manifest)
    assert jcs.canonicalize(json.loads(raw)) == raw
    assert b" " not in raw.replace(b"hello world", b"")


def test_canonicalize_deterministic(sample_manifest: Manifest) -> None:
    copy = Manifest.model_validate(sample_manifest.model_dump())
    assert canonicalize(sample_manifest) == canonicalize(copy)


def test_canonicalize_absent_optionals_are_null(sample_manifest: Manifest) -> None:
    bare = sample_manifest.model_copy(
        update={"parent_hash": None, "source_uri": None, "description": None, "metadata": {}}
    )
    document = json.loads(canonicalize(bare))
    assert document[3:7] == [None, None, None, []]


def test_canonicalize_timestamp_normalized_to_utc(sample_manifest: Manifest) -> None:
    from datetime import timedelta, timezone

    shifted = Manifest.model_validate(
        {
            **sample_manifest.model_dump(),
            "build_timestamp": sample_manifest.build_timestamp.astimezone(
                timezone(timedelta(hours=5))
            ),
        }
    )
    assert canonicalize(shifted) == canonicalize(sample_manifest)


def test_metadata_order_is_significant(sample_manifest: Manifest) -> None:
    reordered = sample_manifest.model_copy(update={"metadata": {"arch": "amd64", "vcs": "git"}})
    assert canonicalize(reordered) != canonicalize(sample_manifest)


def test_parse_canonical_roundtrip(sample_manifest: Manifest) -> None:
    raw = canonicalize(sample_manifest)
    parsed = parse_canonical(raw)
    assert parsed == sample_manifest
    assert canonicalize(parsed) == raw


def test_parse_canonical_unicode_roundtrip(sample_manifest: Manifest) -> None:
    manifest = sample_manifest.model_copy(
        update={"description": "café ☃ \U0001f600", "metadata": {"ü": "ß"}}
    )
    raw = canonicalize(manifest)
    assert parse_canonical(raw) == manifest


def test_parse_canonical_rejects_non_canonical_whitespace(sample_manifest: Manifest) -> None:
    pretty = json.dumps(json.loads(canonicalize(sample_manifest)), indent=2).encode()
    with pytest.raises(ManifestMalformedError, match="not in canonical form"):
        parse_canonical(pretty)


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        b"\xff\xfe",
        b"{}",
        b"[]",
        jcs.canonicalize(["layertrust.manifest/v0", 1, 2, 3, 4, 5, 6, 7, 8]),
    ],
)
def test_parse_canonical_rejects_garbage(payload: bytes) -> None:
    with pytest.raises(ManifestMalformedError):
        parse_canonical(payload)


def test_parse_canonical_rejects_duplicate_metadata_keys(sample_manifest: Manifest) -> None:
    document = json.loads(canonicalize(sample_manifest))
    document[6] = [["k", "a"], ["k", "b"]]
    with pytest.raises(ManifestMalformedError, match="duplicate metadata key"):
        parse_canonical(jcs.canonicalize(document))


def test_parse_canonical_rejects_invalid_field(sample_manifest: Manifest) -> None:
    document = json.loads(canonicalize(sample_manifest))
    document[1] = "Not A Valid Name"
    with pytest.raises(ManifestMalformedError, match="field validation failed"):
        parse_canonical(jcs.canonicalize(document))


def test_parse_canonical_rejects_escaped_lone_surrogate(sample_manifest: Manifest) -> None:
    data = canonicalize(sample_manifest).replace(b"hello world", b"hello \\ud800")
    with pytest.raises(ManifestMalformedError, match="field validation failed"):
        parse_canonical(data)


# --- Signing ---


def test_signing_payload_binds_hash_and_manifest() -> None:
    payload = signing_payload(CONTENT_HASH, b"[manifest]")
    assert payload.startswith(SIGNING_DOMAIN)
    assert CONTENT_HASH.encode() in payload
    assert payload.endswith(b"[manifest]")
    # Moving bytes between the two fields changes the payload
    assert signing_payload(CONTENT_HASH[:-1], CONTENT_HASH[-1].encode() + b"[manifest]") != payload


def test_sign_layer_returns_signature_block(
    sample_manifest: Manifest, maintainer_key: Ed25519PrivateKey
) -> None:
    block = sign_layer(maintainer_key, canonicalize(sample_manifest), CONTENT_HASH)
    assert isinstance(block, SignatureBlock)
    assert block.alg == "ed25519"
    assert block.signer_fingerprint == fingerprint(maintainer_key)
    assert len(base64.b64decode(block.signature)) == 64


def test_sign_layer_deterministic(
    sample_manifest: Manifest, maintainer_key: Ed25519PrivateKey
) -> None:
    raw = canonicalize(sample_manifest)
    assert sign_layer(maintainer_key, raw, CONTENT_HASH) == sign_layer(
        maintainer_key, raw, CONTENT_HASH
    )


def test_sign_layer_rejects_non_ed25519_key(sample_manifest: Manifest) -> None:
    from cryptography.hazmat.primitives.asymmetric.ec import SECP256R1, generate_private_key

    with pytest.raises(KeyOperationFailedError, match="unsupported key type"):
        sign_layer(
            generate_private_key(SECP256R1()),  # type: ignore[arg-type]
            canonicalize(sample_manifest),
            CONTENT_HASH,
        )


def test_sign_layer_rejects_bad_content_hash(
    sample_manifest: Manifest, maintainer_key: Ed25519PrivateKey
) -> None:
    with pytest.raises(ManifestMalformedError):
        sign_layer(maintainer_key, canonicalize(sample_manifest), "md5:abc")


def test_verify_signature_valid(sample_manifest: Manifest, maintainer_key: Ed25519PrivateKey) -> None:
    raw = canonicalize(sample_manifest)
    block = sign_layer(maintainer_key, raw, CONTENT_HASH)
    assert verify_signature(maintainer_key.public_key(), block, raw, CONTENT_HASH) is None


def test_verify_signature_detects_manifest_tampering(
    sample_manifest: Manifest, maintainer_key: Ed25519PrivateKey
) -> None:
    raw = canonicalize(sample_manifest)
    block = sign_layer(maintainer_key, raw, CONTENT_HASH)
    tampered = raw.replace(b"hello world", b"hello worle")
    with pytest.raises(SignatureInvalidError, match="tampered"):
        verify_signature(maintainer_key.public_key(), block, tampered, CONTENT_HASH)


def test_verify_signature_detects_content_hash_swap(
    sample_manifest: Manifest, maintainer_key: Ed25519PrivateKey
) -> None:
    raw = canonicalize(sample_manifest)
    block = sign_layer(maintainer_key, raw, CONTENT_HASH)
    with pytest.raises(SignatureInvalidError):
        verify_signature(maintainer_key.public_key(), block, raw, "sha256:" + "0" * 64)


def test_verify_signature_wrong_key(sample_manifest: Manifest, maintainer_key: Ed25519PrivateKey) -> None:
    raw = canonicalize(sample_manifest)
    block = sign_layer(maintainer_key, raw, CONTENT_HASH)
    _, other_public = generate_keypair()
    with pytest.raises(SignatureInvalidError, match="different key"):
        verify_signature(other_public, block, raw, CONTENT_HASH)


def test_verify_signature_forged_signer_fingerprint(
    sample_manifest: Manifest, maintainer_key: Ed25519PrivateKey
) -> None:
    raw = canonicalize(sample_manifest)
    attacker_key, _ = generate_keypair()
    forged = sign_layer(attacker_key, raw, CONTENT_HASH).model_copy(
        update={"signer_fingerprint": fingerprint(maintainer_key)}
    )
    with pytest.raises(SignatureInvalidError, match="tampered"):
        verify_signature(maintainer_key.public_key(), forged, raw, CONTENT_HASH)


def test_verify_signature_wrong_length(sample_manifest: Manifest, maintainer_key: Ed25519PrivateKey) -> None:
    raw = canonicalize(sample_manifest)
    block = SignatureBlock(
        alg="ed25519",
        signature=base64.b64encode(b"\x00" * 32).decode(),
        signer_fingerprint=fingerprint(maintainer_key),
    )
    with pytest.raises(SignatureInvalidError, match="64 bytes"):
        verify_signature(maintainer_key.public_key(), block, raw, CONTENT_HASH)


def test_signature_block_rejects_unknown_algorithm(maintainer_key: Ed25519PrivateKey) -> None:
    with pytest.raises(ValidationError):
        SignatureBlock(alg="rs256", signature="AAAA", signer_fingerprint=fingerprint(maintainer_key))  # type: ignore[arg-type]


def test_signature_block_forbids_extra_fields(maintainer_key: Ed25519PrivateKey) -> None:
    with pytest.raises(ValidationError):
        SignatureBlock(
            alg="ed25519",
            signature="AAAA",
            signer_fingerprint=fingerprint(maintainer_key),
            key_id="k1",  # type: ignore[call-arg]
        )
