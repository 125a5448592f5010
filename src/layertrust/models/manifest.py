"""Manifest: the provenance record embedded in every layer.

Field declaration order matches the canonical serialization order:
name, maintainer_fingerprint, parent_hash, source_uri, description,
metadata, build_timestamp, computed_hash.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import Field, field_validator, model_validator

from layertrust.models.base import LayerTrustBaseModel
from layertrust.models.constants import MAX_METADATA_ENTRIES
from layertrust.models.types import Digest, Fingerprint, LayerName
from layertrust.models.validators import (
    validate_digest,
    validate_fingerprint,
    validate_layer_name,
    validate_utf8_text,
)


class Manifest(LayerTrustBaseModel):
    """Declared provenance of a single layer.

    Attributes:
        name: Immutable ``namespace/image-name`` identity, independent of storage location
        maintainer_fingerprint: Fingerprint of the signing key (not the signature)
        parent_hash: Content hash of the parent layer; None for a root layer
        source_uri: Optional pointer to the build source
        description: Optional free text
        metadata: Ordered maintainer key/value pairs, passed through untouched
        build_timestamp: Creation time (UTC), set once
        computed_hash: Content hash this manifest claims to describe
    """

    name: LayerName = Field(..., description="namespace/image-name identity")
    maintainer_fingerprint: Fingerprint = Field(..., description="Signing key fingerprint")
    parent_hash: Digest | None = Field(default=None, description="Parent layer content hash")
    source_uri: str | None = Field(default=None, description="Build source origin")
    description: str | None = Field(default=None, description="Free text")
    metadata: dict[str, str] = Field(
        default_factory=dict, description="Ordered, uninterpreted key/value pairs"
    )
    build_timestamp: datetime = Field(..., description="Creation time, UTC")
    computed_hash: Digest = Field(..., description="Claimed content hash")

    @field_validator("name")
    @classmethod
    def _check_name(cls, v: str) -> str:
        return validate_layer_name(v)

    @field_validator("maintainer_fingerprint")
    @classmethod
    def _check_fingerprint(cls, v: str) -> str:
        return validate_fingerprint(v)

    @field_validator("parent_hash")
    @classmethod
    def _check_parent_hash(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_digest(v)

    @field_validator("computed_hash")
    @classmethod
    def _check_computed_hash(cls, v: str) -> str:
        return validate_digest(v)

    @field_validator("source_uri", "description")
    @classmethod
    def _check_text(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_utf8_text(v)

    @field_validator("metadata")
    @classmethod
    def _check_metadata(cls, v: dict[str, str]) -> dict[str, str]:
        if len(v) > MAX_METADATA_ENTRIES:
            raise ValueError(
                f"Metadata may hold at most {MAX_METADATA_ENTRIES} entries, got {len(v)}"
            )
        if any(not key for key in v):
            raise ValueError("Metadata keys must not be empty")
        for key, value in v.items():
            validate_utf8_text(key)
            validate_utf8_text(value)
        return v

    @field_validator("build_timestamp")
    @classmethod
    def _check_build_timestamp(cls, v: datetime) -> datetime:
        if v.tzinfo is None or v.utcoffset() is None:
            raise ValueError("build_timestamp must be timezone-aware")
        return v.astimezone(timezone.utc)

    @model_validator(mode="after")
    def _check_not_self_parent(self) -> Manifest:
        if self.parent_hash is not None and self.parent_hash == self.computed_hash:
            raise ValueError("A layer cannot be its own parent (parent_hash == computed_hash)")
        return self

    @property
    def is_root(self) -> bool:
        return self.parent_hash is None
