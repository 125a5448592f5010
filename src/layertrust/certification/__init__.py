"""Certification Overlay: signed, content-empty attestation layers."""

from layertrust.certification.overlay import (
    CertificationResult,
    certify,
    is_certification_record,
    verify_certification,
)

__all__ = [
    "CertificationResult",
    "certify",
    "is_certification_record",
    "verify_certification",
]
