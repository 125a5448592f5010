"""Shared validators for layertrust models."""

import re

from layertrust.models.constants import (
    DIGEST_PATTERN,
    FINGERPRINT_PATTERN,
    LAYER_NAME_PATTERN,
    MAX_LAYER_NAME_LENGTH,
)

_DIGEST_RE = re.compile(DIGEST_PATTERN)
_FINGERPRINT_RE = re.compile(FINGERPRINT_PATTERN)
_LAYER_NAME_RE = re.compile(LAYER_NAME_PATTERN)


def is_valid_digest(v: str) -> bool:
    return isinstance(v, str) and _DIGEST_RE.match(v) is not None


def validate_digest(v: str) -> str:
    """Validate ``sha256:<64 lowercase hex>``."""
    if not is_valid_digest(v):
        raise ValueError(f"Digest must match 'sha256:<64 lowercase hex>', got: {v!r}")
    return v


def validate_fingerprint(v: str) -> str:
    if not isinstance(v, str) or not _FINGERPRINT_RE.match(v):
        raise ValueError(f"Fingerprint must match 'ed25519:<64 lowercase hex>', got: {v!r}")
    return v


def validate_layer_name(v: str) -> str:
    """Validate layer name format and length (namespace/image-name)."""
    if not v:
        raise ValueError("Layer name must not be empty")
    if len(v) > MAX_LAYER_NAME_LENGTH:
        raise ValueError(
            f"Layer name must be at most {MAX_LAYER_NAME_LENGTH} characters, got {len(v)}"
        )
    if not _LAYER_NAME_RE.match(v):
        raise ValueError(f"Layer name must follow 'namespace/image-name' form, got: {v!r}")
    return v


def validate_utf8_text(v: str) -> str:
    """Reject text that has no UTF-8 encoding (lone surrogates)."""
    try:
        v.encode("utf-8")
    except UnicodeEncodeError as e:
        raise ValueError(f"Text must be encodable as UTF-8: {e.reason} at {e.start}") from e
    return v
