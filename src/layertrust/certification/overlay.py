"""Certification Overlay: third-party attestation of an application layer.

A certification record is an ordinary signed layer with empty content whose
``parent_hash`` is the certified layer's content hash and whose maintainer
is the certifying party. Verifying a certified application takes two chain
walks (application, certification) plus an exact cross-check that the
record points at this application and was issued by someone else.

Every certification record has the same content hash (the digest of zero
bytes), so records are leaves: they are handed to the verifier directly and
are never used as parents or looked up by hash.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey
from pydantic import Field

from layertrust.crypto.digest import EMPTY_DIGEST
from layertrust.crypto.keys import fingerprint
from layertrust.errors import (
    CertificationMismatchError,
    KeyOperationFailedError,
    ManifestMalformedError,
)
from layertrust.layers.builder import build_layer
from layertrust.layers.models import Layer
from layertrust.models.base import LayerTrustBaseModel
from layertrust.models.types import Digest, Fingerprint, LayerName
from layertrust.observability import get_logger, get_metrics
from layertrust.storage.base import LayerStore
from layertrust.trust.store import TrustStore
from layertrust.verify.result import VerificationFailure, VerificationResult
from layertrust.verify.verifier import Verifier

logger = get_logger(__name__)


def is_certification_record(layer: Layer) -> bool:
    return (
        len(layer.content) == 0
        and layer.content_hash == EMPTY_DIGEST
        and layer.manifest.parent_hash is not None
    )


def certify(
    base_layer: Layer,
    certifier_key: Ed25519PrivateKey,
    metadata: Mapping[str, str] | None = None,
    *,
    name: LayerName | None = None,
    description: str | None = None,
    source_uri: str | None = None,
    build_timestamp: datetime | None = None,
) -> Layer:
    """Issue a certification record attesting to ``base_layer``.

    ``name`` defaults to the base layer's name.

    Raises:
        ManifestMalformedError: The certifier is the base layer's maintainer,
            or the base layer is itself a certification record.
        KeyOperationFailedError: The certifier key cannot sign.
    """
    if not isinstance(certifier_key, Ed25519PrivateKey):
        raise KeyOperationFailedError(
            f"unsupported key type {type(certifier_key).__name__}",
            details={"key_type": type(certifier_key).__name__},
        )
    certifier = fingerprint(certifier_key)
    if certifier == base_layer.manifest.maintainer_fingerprint:
        raise ManifestMalformedError(
            "certifier must be distinct from the base layer's maintainer",
            details={"fingerprint": certifier},
        )
    if len(base_layer.content) == 0:
        raise ManifestMalformedError(
            "cannot certify an empty (certification) layer",
            details={"base_hash": base_layer.content_hash},
        )

    record = build_layer(
        b"",
        certifier_key,
        name=name or base_layer.manifest.name,
        parent=base_layer,
        source_uri=source_uri,
        description=description,
        metadata=metadata,
        build_timestamp=build_timestamp,
    )
    get_metrics().increment_counter("layertrust_certifications_total")
    logger.info(
        "layertrust.certification.issued",
        base_hash=base_layer.content_hash,
        certifier=certifier,
        maintainer=base_layer.manifest.maintainer_fingerprint,
    )
    return record


class CertificationResult(LayerTrustBaseModel):
    """Outcome of verifying a certified application."""

    application: VerificationResult
    certification: VerificationResult
    cross_check: VerificationFailure | None = Field(
        default=None, description="Set when the record does not attest to this application"
    )
    certifier_fingerprint: Fingerprint

    def __bool__(self) -> bool:
        raise TypeError("CertificationResult has no truth value; check .verified or .failure")

    @property
    def verified(self) -> bool:
        return (
            self.application.verified and self.certification.verified and self.cross_check is None
        )

    @property
    def failure(self) -> VerificationFailure | None:
        """First failure in order: application walk, certification walk, cross-check."""
        for candidate in (self.application.failure, self.certification.failure):
            if candidate is not None:
                return candidate
        return self.cross_check

    def raise_for_failure(self) -> None:
        failure = self.failure
        if failure is not None:
            raise failure.to_error()


class _WithApplication:
    """LayerStore view that also serves the application layer being certified."""

    def __init__(self, application: Layer, store: LayerStore | None) -> None:
        self._application = application
        self._store = store

    def retrieve(self, content_hash: Digest) -> Layer | None:
        if content_hash == self._application.content_hash:
            return self._application
        if self._store is None:
            return None
        return self._store.retrieve(content_hash)


def _cross_check(
    application: Layer,
    certification: Layer,
    required_certifiers: frozenset[Fingerprint] | None,
) -> None:
    record_hash = certification.content_hash
    certifier = certification.manifest.maintainer_fingerprint
    if len(certification.content) != 0:
        raise CertificationMismatchError(
            "Certification record must have empty content", layer_hash=record_hash
        )
    if certification.manifest.parent_hash != application.content_hash:
        raise CertificationMismatchError(
            "Certification record does not reference this application layer",
            layer_hash=record_hash,
            details={
                "parent_hash": certification.manifest.parent_hash,
                "application_hash": application.content_hash,
            },
        )
    if certifier == application.manifest.maintainer_fingerprint:
        raise CertificationMismatchError(
            "Certification was issued by the application's own maintainer",
            layer_hash=record_hash,
            details={"fingerprint": certifier},
        )
    if required_certifiers is not None and certifier not in required_certifiers:
        raise CertificationMismatchError(
            "Certifier is not among the required certifiers",
            layer_hash=record_hash,
            details={"fingerprint": certifier},
        )


def verify_certification(
    application: Layer,
    certification: Layer,
    trust_store: TrustStore,
    *,
    store: LayerStore | None = None,
    depth_limit: int | None = None,
    required_certifiers: set[Fingerprint] | frozenset[Fingerprint] | None = None,
    verifier: Verifier | None = None,
) -> CertificationResult:
    """Verify an application layer together with its certification record.

    Both chains are walked independently; the record's walk reaches the
    application through its parent reference, and the application layer is
    served to that walk even if ``store`` does not hold it.
    """
    app_verifier = verifier or Verifier(trust_store, store=store)
    cert_verifier = Verifier(
        app_verifier.trust_store,
        store=_WithApplication(application, app_verifier.store),
        settings=app_verifier.settings,
    )
    app_result = app_verifier.verify(application, depth_limit=depth_limit)
    cert_result = cert_verifier.verify(certification, depth_limit=depth_limit)

    cross_failure: VerificationFailure | None = None
    try:
        _cross_check(
            application,
            certification,
            frozenset(required_certifiers) if required_certifiers is not None else None,
        )
    except CertificationMismatchError as e:
        cross_failure = VerificationFailure.from_error(e, depth=1)

    result = CertificationResult(
        application=app_result,
        certification=cert_result,
        cross_check=cross_failure,
        certifier_fingerprint=certification.manifest.maintainer_fingerprint,
    )
    outcome = "verified" if result.verified else "failed"
    get_metrics().increment_counter("layertrust_certification_checks_total", {"outcome": outcome})
    logger.info(
        "layertrust.certification.checked",
        outcome=outcome,
        application_hash=application.content_hash,
        certifier=result.certifier_fingerprint,
        failure=result.failure.kind.value if result.failure is not None else None,
    )
    return result
