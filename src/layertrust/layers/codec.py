"""Persisted layer format.

A layer is stored and transmitted as a JSON record::

    {
      "format": "layertrust.layer/v1",
      "content_hash": "sha256:...",
      "manifest": "<base64 of the canonical manifest bytes>",
      "signature": {"alg": "ed25519", "signature": "...", "signer_fingerprint": "..."},
      "content": "<base64 of the filesystem delta>"
    }

The manifest travels as its canonical bytes, so what is decoded is exactly
what was signed. Decoding is strict: manifest bytes that do not
round-trip byte-for-byte are rejected.
"""

from __future__ import annotations

import base64
import binascii
from typing import Literal

from pydantic import ConfigDict, Field, ValidationError

from layertrust.crypto.models import SignatureBlock
from layertrust.crypto.signing import parse_canonical
from layertrust.errors import LayerDecodeError, ManifestMalformedError
from layertrust.layers.models import Layer
from layertrust.models.base import LayerTrustBaseModel
from layertrust.models.constants import LAYER_FORMAT


class PersistedLayer(LayerTrustBaseModel):
    """Wire/storage record for a Layer."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    format: Literal["layertrust.layer/v1"] = Field(default=LAYER_FORMAT)
    content_hash: str
    manifest: str = Field(..., description="Base64 canonical manifest bytes")
    signature: SignatureBlock
    content: str = Field(..., description="Base64 layer content")


def _b64decode(value: str, field: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except binascii.Error as e:
        raise LayerDecodeError(
            f"{field} is not valid base64", details={"field": field}, field=field
        ) from e


def encode_layer(layer: Layer) -> bytes:
    record = PersistedLayer(
        content_hash=layer.content_hash,
        manifest=base64.b64encode(layer.canonical_manifest).decode("ascii"),
        signature=layer.signature,
        content=base64.b64encode(layer.content).decode("ascii"),
    )
    return record.model_dump_json().encode("utf-8")


def decode_layer(data: bytes) -> Layer:
    """Decode a persisted layer record.

    Raises:
        LayerDecodeError: Not a valid record, or the manifest bytes are not
            canonical. ``field`` names the damaged part when it is known.
    """
    try:
        record = PersistedLayer.model_validate_json(data)
    except ValidationError as e:
        raise LayerDecodeError(
            "invalid layer record",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e

    manifest_bytes = _b64decode(record.manifest, "manifest")
    content = _b64decode(record.content, "content")
    try:
        manifest = parse_canonical(manifest_bytes)
    except ManifestMalformedError as e:
        raise LayerDecodeError(e.reason, details=e.details, field="manifest") from e

    try:
        return Layer(
            content=content,
            content_hash=record.content_hash,
            manifest=manifest,
            signature=record.signature,
        )
    except ValidationError as e:
        raise LayerDecodeError(
            "invalid layer fields",
            details={"errors": e.errors(include_url=False, include_context=False)},
        ) from e
