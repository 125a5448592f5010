"""layertrust: image layer provenance and trust.

Content-addressed layer identity, signed provenance manifests, chain-of-trust
verification against a trust store, and third-party certification records.

Example:
    >>> from layertrust import TrustStore, Verifier, build_layer, generate_keypair
    >>> key, public = generate_keypair()
    >>> base = build_layer(b"rootfs", key, name="acme/base")
    >>> with TrustStore() as trust:
    ...     trust.add(public)
    ...     Verifier(trust).verify(base).verified
    True
"""

from layertrust.certification import CertificationResult, certify, verify_certification
from layertrust.config import VerifierSettings
from layertrust.crypto import (
    SignatureBlock,
    canonicalize,
    fingerprint,
    generate_keypair,
    hash_content,
    parse_canonical,
)
from layertrust.errors import FailureKind, LayerTrustError, VerificationError
from layertrust.layers import Layer, build_layer, build_manifest, decode_layer, encode_layer
from layertrust.models import Manifest
from layertrust.storage import DirectoryLayerStore, InMemoryLayerStore, LayerStore
from layertrust.trust import TrustedIdentity, TrustStore
from layertrust.verify import VerificationResult, VerificationState, Verifier, verify

__version__ = "0.1.0"

__all__ = [
    "CertificationResult",
    "DirectoryLayerStore",
    "FailureKind",
    "InMemoryLayerStore",
    "Layer",
    "LayerStore",
    "LayerTrustError",
    "Manifest",
    "SignatureBlock",
    "TrustStore",
    "TrustedIdentity",
    "VerificationError",
    "VerificationResult",
    "VerificationState",
    "Verifier",
    "VerifierSettings",
    "build_layer",
    "build_manifest",
    "canonicalize",
    "certify",
    "decode_layer",
    "encode_layer",
    "fingerprint",
    "generate_keypair",
    "hash_content",
    "parse_canonical",
    "verify",
    "verify_certification",
]
