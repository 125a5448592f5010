"""Manifest Builder and build-time signing pipeline.

``build_manifest`` turns author-supplied fields into a validated Manifest;
``build_layer`` hashes the content, builds the manifest and signs it.
Every failure raises before a Layer exists, so nothing partially signed
can reach a storage collaborator.
"""

from __future__ import annotations

import time
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import BinaryIO

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from pydantic import ValidationError

from layertrust.crypto.digest import hash_content
from layertrust.crypto.keys import fingerprint
from layertrust.crypto.signing import canonicalize, sign_layer
from layertrust.errors import ContentUnreadableError, KeyOperationFailedError, ManifestMalformedError
from layertrust.layers.models import Layer
from layertrust.models.manifest import Manifest
from layertrust.models.types import Digest, Fingerprint, LayerName
from layertrust.observability import get_logger, get_metrics, sanitize_for_logging

logger = get_logger(__name__)


def build_manifest(
    *,
    name: LayerName,
    maintainer_fingerprint: Fingerprint,
    content_hash: Digest,
    parent_hash: Digest | None = None,
    source_uri: str | None = None,
    description: str | None = None,
    metadata: Mapping[str, str] | None = None,
    build_timestamp: datetime | None = None,
) -> Manifest:
    """Build a canonical Manifest with ``computed_hash = content_hash``.

    ``build_timestamp`` defaults to the current UTC time.

    Raises:
        ManifestMalformedError: Empty or malformed name, syntactically invalid
            parent_hash or content_hash, or any other field violation.
    """
    try:
        return Manifest(
            name=name,
            maintainer_fingerprint=maintainer_fingerprint,
            parent_hash=parent_hash,
            source_uri=source_uri,
            description=description,
            metadata=dict(metadata or {}),
            build_timestamp=build_timestamp or datetime.now(timezone.utc),
            computed_hash=content_hash,
        )
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "manifest" for err in e.errors()})
        raise ManifestMalformedError(
            f"invalid field(s): {', '.join(fields)}",
            details={"fields": fields, "errors": e.errors(include_url=False, include_context=False)},
        ) from e


def _read_content(content: bytes | bytearray | memoryview | BinaryIO) -> bytes:
    if isinstance(content, (bytes, bytearray, memoryview)):
        return bytes(content)
    try:
        data = content.read()
    except OSError as e:
        raise ContentUnreadableError(str(e)) from e
    if not isinstance(data, (bytes, bytearray)):
        raise ContentUnreadableError(
            "stream returned non-bytes data", details={"chunk_type": type(data).__name__}
        )
    return bytes(data)


def build_layer(
    content: bytes | bytearray | memoryview | BinaryIO,
    private_key: Ed25519PrivateKey,
    *,
    name: LayerName,
    parent: Layer | None = None,
    parent_hash: Digest | None = None,
    source_uri: str | None = None,
    description: str | None = None,
    metadata: Mapping[str, str] | None = None,
    build_timestamp: datetime | None = None,
) -> Layer:
    """Hash, describe and sign a filesystem delta.

    The maintainer fingerprint is derived from ``private_key``. Pass either
    the parent Layer (preferred, lets the ancestry invariant be checked at
    build time) or just its ``parent_hash``.

    Raises:
        ContentUnreadableError: Content stream could not be read.
        ManifestMalformedError: Invalid fields, or the parent would break the
            acyclic ancestry invariant.
        KeyOperationFailedError: The key cannot produce a valid signature.
    """
    if not isinstance(private_key, Ed25519PrivateKey):
        raise KeyOperationFailedError(
            f"unsupported key type {type(private_key).__name__}",
            details={"key_type": type(private_key).__name__},
        )
    started = time.perf_counter()
    data = _read_content(content)
    content_hash = hash_content(data)

    if parent is not None:
        if parent_hash is not None and parent_hash != parent.content_hash:
            raise ManifestMalformedError(
                "parent_hash does not match the given parent layer",
                details={"parent_hash": parent_hash, "parent": parent.content_hash},
            )
        parent_hash = parent.content_hash

    manifest = build_manifest(
        name=name,
        maintainer_fingerprint=fingerprint(private_key),
        content_hash=content_hash,
        parent_hash=parent_hash,
        source_uri=source_uri,
        description=description,
        metadata=metadata,
        build_timestamp=build_timestamp,
    )
    if parent is not None and parent.manifest.build_timestamp > manifest.build_timestamp:
        raise ManifestMalformedError(
            "parent layer was built after its child",
            details={
                "parent_timestamp": parent.manifest.build_timestamp.isoformat(),
                "build_timestamp": manifest.build_timestamp.isoformat(),
            },
        )
    signature = sign_layer(private_key, canonicalize(manifest), content_hash)
    layer = Layer(
        content=data,
        content_hash=content_hash,
        manifest=manifest,
        signature=signature,
    )

    metrics = get_metrics()
    metrics.increment_counter("layertrust_layers_signed_total")
    metrics.observe_histogram("layertrust_signing_duration_seconds", time.perf_counter() - started)
    logger.info(
        "layertrust.layer.signed",
        name=manifest.name,
        layer_hash=content_hash,
        parent_hash=parent_hash,
        maintainer=manifest.maintainer_fingerprint,
        size=len(data),
        metadata=sanitize_for_logging(manifest.metadata),
    )
    return layer
