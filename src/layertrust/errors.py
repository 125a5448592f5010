"""layertrust Error Taxonomy.

This module defines the error hierarchy for layer provenance and trust,
providing structured error handling with specific error codes
and context information.

Verification failures carry a ``FailureKind`` so the Verifier can turn
them into typed results; build-time failures abort the operation.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class FailureKind(str, Enum):
    """Classification of a failed verification."""

    INTEGRITY_MISMATCH = "integrity_mismatch"
    UNTRUSTED_SIGNER = "untrusted_signer"
    SIGNATURE_INVALID = "signature_invalid"
    CHAIN_INCOMPLETE = "chain_incomplete"
    CHAIN_TOO_DEEP = "chain_too_deep"
    ANCESTRY_VIOLATION = "ancestry_violation"
    CERTIFICATION_MISMATCH = "certification_mismatch"
    CANCELLED = "cancelled"

    @property
    def is_cryptographic(self) -> bool:
        """True when the failure is always fatal to trust for the same input."""
        return self in _FATAL_KINDS


_FATAL_KINDS = frozenset(
    {
        FailureKind.INTEGRITY_MISMATCH,
        FailureKind.SIGNATURE_INVALID,
        FailureKind.ANCESTRY_VIOLATION,
    }
)


class LayerTrustError(Exception):
    """Base exception for all layertrust errors.

    Attributes:
        code: Error code following the layertrust:<area>/<kind> pattern
        message: Human-readable error message
        details: Optional additional error context
    """

    def __init__(self, code: str, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize to ``{code, message, details}`` dict."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


# --- Build-time errors ---


class ManifestMalformedError(LayerTrustError):
    """Raised when a manifest violates a required-field or canonical-form rule.

    Attributes:
        reason: Short description of the violated rule
    """

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="layertrust:build/manifest_malformed",
            message=f"Malformed manifest: {reason}",
            details=details or {},
        )
        self.reason = reason


class LayerDecodeError(ManifestMalformedError):
    """Raised when a persisted layer record cannot be decoded.

    Attributes:
        field: Record field that failed to decode (``"manifest"``, ``"content"``),
            or None when the record as a whole is invalid
    """

    def __init__(
        self, reason: str, details: dict[str, Any] | None = None, field: str | None = None
    ) -> None:
        super().__init__(reason, details)
        self.code = "layertrust:storage/layer_decode"
        self.field = field


class KeyOperationFailedError(LayerTrustError):
    """Raised when a signing key cannot produce a valid signature.

    Unsupported algorithms and corrupted keys end up here. Fatal to the build.
    """

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="layertrust:build/key_operation_failed",
            message=f"Key operation failed: {reason}",
            details=details or {},
        )
        self.reason = reason


class ContentUnreadableError(LayerTrustError):
    """Raised when layer content cannot be read to the end."""

    def __init__(self, reason: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="layertrust:content/unreadable",
            message=f"Content stream unreadable: {reason}",
            details=details or {},
        )
        self.reason = reason


# --- Infrastructure errors ---


class TrustStoreClosedError(LayerTrustError):
    """Raised when a trust store is used after it was torn down."""

    def __init__(self, details: dict[str, Any] | None = None) -> None:
        super().__init__(
            code="layertrust:trust/store_closed",
            message="Trust store has been closed",
            details=details or {},
        )


class LayerRetrievalError(LayerTrustError):
    """Raised by a storage collaborator that could not serve a layer.

    The Verifier classifies it as ``ChainIncomplete``; see
    ``CorruptLayerRecordError`` for records that exist but do not decode.
    """

    def __init__(
        self, content_hash: str, reason: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            code="layertrust:storage/retrieval_failed",
            message=f"Could not retrieve layer {content_hash}: {reason}",
            details={"content_hash": content_hash, "reason": reason, **(details or {})},
        )
        self.content_hash = content_hash
        self.reason = reason


class CorruptLayerRecordError(LayerRetrievalError):
    """Raised when a stored record exists but does not decode.

    The record is present, so this is tampering or corruption rather than
    missing data: the Verifier reports ``SignatureInvalid`` when the signed
    manifest bytes are damaged and ``IntegrityMismatch`` otherwise.

    Attributes:
        field: Record field that failed to decode, None for the whole record
    """

    def __init__(
        self,
        content_hash: str,
        reason: str,
        field: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(content_hash, f"corrupt record: {reason}", details)
        self.code = "layertrust:storage/corrupt_record"
        self.field = field

    @property
    def manifest_damaged(self) -> bool:
        return self.field == "manifest"


# --- Verification errors ---


class VerificationError(LayerTrustError):
    """Base class for failures detected while verifying a layer or chain.

    Attributes:
        kind: FailureKind classifying the failure
        layer_hash: Content hash of the layer at which verification stopped
    """

    kind: FailureKind

    def __init__(
        self,
        message: str,
        layer_hash: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(
            code=f"layertrust:verify/{self.kind.value}",
            message=message,
            details={"layer_hash": layer_hash, **(details or {})},
        )
        self.layer_hash = layer_hash


class IntegrityMismatchError(VerificationError):
    """Content hash does not match the hash the manifest claims."""

    kind = FailureKind.INTEGRITY_MISMATCH


class UntrustedSignerError(VerificationError):
    """Signer is unknown to the trust store, or not bound to the layer's name."""

    kind = FailureKind.UNTRUSTED_SIGNER


class SignatureInvalidError(VerificationError):
    """Key is known but the signature does not verify."""

    kind = FailureKind.SIGNATURE_INVALID


class ChainIncompleteError(VerificationError):
    """A parent reference could not be resolved."""

    kind = FailureKind.CHAIN_INCOMPLETE


class ChainTooDeepError(VerificationError):
    """Ancestry exceeds the configured depth limit."""

    kind = FailureKind.CHAIN_TOO_DEEP


class AncestryViolationError(VerificationError):
    """Parent reference revisits a layer or goes forward in time."""

    kind = FailureKind.ANCESTRY_VIOLATION


class CertificationMismatchError(VerificationError):
    """Certification record does not attest to the given application layer."""

    kind = FailureKind.CERTIFICATION_MISMATCH


class VerificationCancelledError(VerificationError):
    """Verification was cancelled or timed out before the walk finished."""

    kind = FailureKind.CANCELLED


ERRORS_BY_KIND: dict[FailureKind, type[VerificationError]] = {
    cls.kind: cls
    for cls in (
        IntegrityMismatchError,
        UntrustedSignerError,
        SignatureInvalidError,
        ChainIncompleteError,
        ChainTooDeepError,
        AncestryViolationError,
        CertificationMismatchError,
        VerificationCancelledError,
    )
}


class InvalidStateTransitionError(LayerTrustError):
    """Raised when the verification state machine is driven out of order.

    Attributes:
        from_state: The current verification state
        to_state: The attempted target state
    """

    def __init__(
        self, from_state: str, to_state: str, details: dict[str, Any] | None = None
    ) -> None:
        super().__init__(
            code="layertrust:verify/invalid_state",
            message=f"Invalid transition from '{from_state}' to '{to_state}'",
            details={"from_state": from_state, "to_state": to_state, **(details or {})},
        )
        self.from_state = from_state
        self.to_state = to_state
