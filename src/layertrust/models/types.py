"""Type aliases for layertrust identifiers.

These are plain ``str`` aliases used for readability in signatures;
format checks live in ``layertrust.models.validators``.
"""

from typing import TypeAlias

Digest: TypeAlias = str
"""Content hash in ``sha256:<hex>`` form."""

Fingerprint: TypeAlias = str
"""Signing key identity in ``ed25519:<hex>`` form."""

LayerName: TypeAlias = str
"""Maintainer-assigned ``namespace/image-name`` identity."""
