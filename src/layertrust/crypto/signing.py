"""Canonical manifest serialization and Ed25519 layer signing.

Canonical form
--------------
A manifest is serialized as the RFC 8785 (JCS) encoding of a JSON array
in fixed field order::

    [format_tag, name, maintainer_fingerprint, parent_hash, source_uri,
     description, [[key, value], ...], build_timestamp, computed_hash]

Absent optional fields are ``null``; metadata keeps insertion order;
``build_timestamp`` is UTC with microseconds and a ``Z`` suffix.

Signed payload
--------------
``SIGNING_DOMAIN || u32be(len(hash)) || hash || u64be(len(manifest)) || manifest``
so neither the content hash nor the manifest can be swapped independently.
"""

from __future__ import annotations

import base64
import binascii
import json
import struct
from datetime import datetime, timezone
from typing import Any, cast

import jcs
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from pydantic import ValidationError

from layertrust.crypto.keys import fingerprint
from layertrust.crypto.models import SignatureBlock
from layertrust.errors import (
    KeyOperationFailedError,
    ManifestMalformedError,
    SignatureInvalidError,
)
from layertrust.models.constants import (
    ED25519_SIGNATURE_LENGTH,
    MANIFEST_FORMAT,
    SIGNATURE_ALGORITHM,
    SIGNING_DOMAIN,
    TIMESTAMP_FORMAT,
)
from layertrust.models.manifest import Manifest
from layertrust.models.types import Digest
from layertrust.models.validators import is_valid_digest

_CANONICAL_FIELD_COUNT = 9


def format_timestamp(ts: datetime) -> str:
    return ts.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)


def canonicalize(manifest: Manifest) -> bytes:
    document: list[Any] = [
        MANIFEST_FORMAT,
        manifest.name,
        manifest.maintainer_fingerprint,
        manifest.parent_hash,
        manifest.source_uri,
        manifest.description,
        [[key, value] for key, value in manifest.metadata.items()],
        format_timestamp(manifest.build_timestamp),
        manifest.computed_hash,
    ]
    return cast(bytes, jcs.canonicalize(document))


def _parse_metadata(raw: Any) -> dict[str, str]:
    if not isinstance(raw, list):
        raise ManifestMalformedError("metadata must be a list of [key, value] pairs")
    metadata: dict[str, str] = {}
    for pair in raw:
        if (
            not isinstance(pair, list)
            or len(pair) != 2
            or not all(isinstance(item, str) for item in pair)
        ):
            raise ManifestMalformedError("metadata entries must be [key, value] string pairs")
        key, value = pair
        if key in metadata:
            raise ManifestMalformedError(
                f"duplicate metadata key {key!r}", details={"key": key}
            )
        metadata[key] = value
    return metadata


def parse_canonical(data: bytes) -> Manifest:
    """Parse canonical manifest bytes back into a Manifest.

    Strict: the parsed manifest must re-canonicalize to exactly ``data``.

    Raises:
        ManifestMalformedError: On any decoding, shape or canonical-form violation.
    """
    try:
        document = json.loads(data.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise ManifestMalformedError(f"not valid UTF-8 JSON: {e}") from e

    if not isinstance(document, list) or len(document) != _CANONICAL_FIELD_COUNT:
        raise ManifestMalformedError(
            f"canonical manifest must be a {_CANONICAL_FIELD_COUNT}-element array"
        )
    (
        format_tag,
        name,
        maintainer_fingerprint,
        parent_hash,
        source_uri,
        description,
        raw_metadata,
        raw_timestamp,
        computed_hash,
    ) = document
    if format_tag != MANIFEST_FORMAT:
        raise ManifestMalformedError(
            f"unsupported manifest format {format_tag!r}", details={"format": format_tag}
        )
    if not isinstance(raw_timestamp, str):
        raise ManifestMalformedError("build_timestamp must be a string")
    try:
        build_timestamp = datetime.strptime(raw_timestamp, TIMESTAMP_FORMAT).replace(
            tzinfo=timezone.utc
        )
    except ValueError as e:
        raise ManifestMalformedError(f"bad build_timestamp: {e}") from e

    try:
        manifest = Manifest(
            name=name,
            maintainer_fingerprint=maintainer_fingerprint,
            parent_hash=parent_hash,
            source_uri=source_uri,
            description=description,
            metadata=_parse_metadata(raw_metadata),
            build_timestamp=build_timestamp,
            computed_hash=computed_hash,
        )
    except ValidationError as e:
        raise ManifestMalformedError(
            "field validation failed", details={"errors": e.errors(include_url=False)}
        ) from e

    if canonicalize(manifest) != data:
        raise ManifestMalformedError("manifest bytes are not in canonical form")
    return manifest


def signing_payload(content_hash: Digest, canonical_manifest: bytes) -> bytes:
    """Bytes actually signed: domain tag plus length-prefixed hash and manifest."""
    hash_bytes = content_hash.encode("ascii")
    return b"".join(
        (
            SIGNING_DOMAIN,
            struct.pack(">I", len(hash_bytes)),
            hash_bytes,
            struct.pack(">Q", len(canonical_manifest)),
            canonical_manifest,
        )
    )


def sign_layer(
    private_key: Ed25519PrivateKey,
    canonical_manifest: bytes,
    content_hash: Digest,
) -> SignatureBlock:
    """Sign ``(content_hash, canonical_manifest)`` with the maintainer's key.

    The key is only used for the duration of the call and never stored.

    Raises:
        KeyOperationFailedError: Unsupported key type, or the key produced a
            signature that does not verify (corrupted key material).
        ManifestMalformedError: ``content_hash`` is not a valid digest.
    """
    if not isinstance(private_key, Ed25519PrivateKey):
        raise KeyOperationFailedError(
            f"unsupported key type {type(private_key).__name__}; only {SIGNATURE_ALGORITHM}",
            details={"key_type": type(private_key).__name__},
        )
    if not is_valid_digest(content_hash):
        raise ManifestMalformedError(
            "content hash is not a valid digest", details={"content_hash": content_hash}
        )
    payload = signing_payload(content_hash, canonical_manifest)
    try:
        raw_signature = private_key.sign(payload)
        public_key = private_key.public_key()
        public_key.verify(raw_signature, payload)
    except InvalidSignature as e:
        raise KeyOperationFailedError("key produced a signature that does not verify") from e
    except (ValueError, TypeError) as e:
        raise KeyOperationFailedError(str(e)) from e
    if len(raw_signature) != ED25519_SIGNATURE_LENGTH:
        raise KeyOperationFailedError(
            f"signature must be {ED25519_SIGNATURE_LENGTH} bytes, got {len(raw_signature)}"
        )
    return SignatureBlock(
        alg="ed25519",
        signature=base64.b64encode(raw_signature).decode("ascii"),
        signer_fingerprint=fingerprint(public_key),
    )


def verify_signature(
    public_key: Ed25519PublicKey,
    signature: SignatureBlock,
    canonical_manifest: bytes,
    content_hash: Digest,
    layer_hash: Digest | None = None,
) -> None:
    """Check a layer signature; returns None on success.

    Raises:
        SignatureInvalidError: Wrong algorithm, wrong signer, bad encoding or
            a signature that does not match the payload.
    """
    if signature.alg != SIGNATURE_ALGORITHM:
        raise SignatureInvalidError(
            f"Unsupported signature algorithm: {signature.alg}",
            layer_hash=layer_hash,
            details={"alg": signature.alg},
        )
    expected_fingerprint = fingerprint(public_key)
    if signature.signer_fingerprint != expected_fingerprint:
        raise SignatureInvalidError(
            "Signature was produced by a different key than the claimed maintainer",
            layer_hash=layer_hash,
            details={
                "signer_fingerprint": signature.signer_fingerprint,
                "expected_fingerprint": expected_fingerprint,
            },
        )
    try:
        raw_sig = signature.raw()
    except binascii.Error as e:
        raise SignatureInvalidError(
            f"Invalid signature encoding (base64): {e}", layer_hash=layer_hash
        ) from e
    if len(raw_sig) != ED25519_SIGNATURE_LENGTH:
        raise SignatureInvalidError(
            f"Ed25519 signature must be {ED25519_SIGNATURE_LENGTH} bytes, got {len(raw_sig)}",
            layer_hash=layer_hash,
            details={"signature_length": len(raw_sig)},
        )
    try:
        public_key.verify(raw_sig, signing_payload(content_hash, canonical_manifest))
    except InvalidSignature as e:
        raise SignatureInvalidError(
            "Signature verification failed: manifest or content hash may have been tampered with",
            layer_hash=layer_hash,
        ) from e
