"""Pydantic model for the signature attached to a layer."""

from __future__ import annotations

import base64
from typing import Annotated, Literal

from pydantic import ConfigDict, Field, field_validator

from layertrust.models.base import LayerTrustBaseModel
from layertrust.models.types import Fingerprint
from layertrust.models.validators import validate_fingerprint

# Base64 (standard alphabet) pattern for signature bytes.
BASE64_PATTERN = r"^[A-Za-z0-9+/=]+$"


class SignatureBlock(LayerTrustBaseModel):
    """Ed25519 only; ``signature`` is base64 of the raw 64 bytes."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    alg: Literal["ed25519"] = Field(..., description="Signature algorithm identifier.")
    signature: Annotated[
        str,
        Field(..., description="Base64-encoded 64-byte Ed25519 signature.", pattern=BASE64_PATTERN),
    ]
    signer_fingerprint: Fingerprint = Field(
        ..., description="Fingerprint of the key that produced the signature."
    )

    @field_validator("signer_fingerprint")
    @classmethod
    def _check_fingerprint(cls, v: str) -> str:
        return validate_fingerprint(v)

    def raw(self) -> bytes:
        """Decoded signature bytes. Raises ``binascii.Error`` on bad base64."""
        return base64.b64decode(self.signature, validate=True)
