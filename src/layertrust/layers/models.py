"""Layer: the immutable, content-addressed unit of distribution."""

from __future__ import annotations

from pydantic import Field, field_validator

from layertrust.crypto.models import SignatureBlock
from layertrust.crypto.signing import canonicalize
from layertrust.models.base import LayerTrustBaseModel
from layertrust.models.manifest import Manifest
from layertrust.models.types import Digest
from layertrust.models.validators import validate_digest


class Layer(LayerTrustBaseModel):
    """Filesystem delta plus its signed manifest.

    Construction does not re-hash ``content``; matching ``content_hash``
    against the content and the manifest claim is the Verifier's job, so a
    tampered layer read back from storage can still be represented and
    rejected with a precise failure.
    """

    content: bytes = Field(..., description="Opaque filesystem delta")
    content_hash: Digest = Field(..., description="Digest of content")
    manifest: Manifest
    signature: SignatureBlock

    @field_validator("content_hash")
    @classmethod
    def _check_content_hash(cls, v: str) -> str:
        return validate_digest(v)

    @property
    def canonical_manifest(self) -> bytes:
        """Exactly the manifest bytes covered by ``signature``."""
        return canonicalize(self.manifest)

    @property
    def parent_hash(self) -> Digest | None:
        return self.manifest.parent_hash

    @property
    def is_root(self) -> bool:
        return self.manifest.is_root
