"""layertrust data models.

Exports the manifest record, the shared base model and the identifier aliases.
"""

from layertrust.models.base import LayerTrustBaseModel
from layertrust.models.manifest import Manifest
from layertrust.models.types import Digest, Fingerprint, LayerName

__all__ = [
    "Digest",
    "Fingerprint",
    "LayerName",
    "LayerTrustBaseModel",
    "Manifest",
]
