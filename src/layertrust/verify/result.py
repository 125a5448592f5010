"""Typed verification outcomes."""

from __future__ import annotations

from typing import Any, NoReturn

from pydantic import Field

from layertrust.errors import ERRORS_BY_KIND, FailureKind, VerificationError
from layertrust.models.base import LayerTrustBaseModel
from layertrust.models.types import Digest, Fingerprint
from layertrust.verify.states import VerificationState


class VerificationFailure(LayerTrustBaseModel):
    """Why and where a verification stopped."""

    kind: FailureKind
    message: str
    layer_hash: Digest | None = None
    depth: int = Field(..., ge=0, description="1-based position from the leaf; 0 before any layer")
    details: dict[str, Any] = Field(default_factory=dict)

    @property
    def is_cryptographic(self) -> bool:
        return self.kind.is_cryptographic

    @classmethod
    def from_error(cls, error: VerificationError, depth: int) -> VerificationFailure:
        details = {k: v for k, v in error.details.items() if k != "layer_hash"}
        return cls(
            kind=error.kind,
            message=error.message,
            layer_hash=error.layer_hash,
            depth=depth,
            details=details,
        )

    def to_error(self) -> VerificationError:
        return ERRORS_BY_KIND[self.kind](self.message, self.layer_hash, self.details)


class VerificationResult(LayerTrustBaseModel):
    """Outcome of one chain walk.

    ``chain`` and ``layer_hashes`` list every layer that passed its hash and
    signature checks, ordered root to leaf. On failure they hold the part of
    the walk that succeeded before the failing layer.

    Not usable as a boolean on purpose; read ``verified`` or ``failure``.
    """

    state: VerificationState
    leaf_hash: Digest | None = None
    chain: tuple[Fingerprint, ...] = ()
    layer_hashes: tuple[Digest, ...] = ()
    failure: VerificationFailure | None = None
    trail: tuple[tuple[VerificationState, Digest | None], ...] = ()
    trust_version: int | None = None
    duration_seconds: float = 0.0

    def __bool__(self) -> bool:
        raise TypeError("VerificationResult has no truth value; check .verified or .failure")

    @property
    def verified(self) -> bool:
        return self.state is VerificationState.VERIFIED

    @property
    def failure_kind(self) -> FailureKind | None:
        return self.failure.kind if self.failure is not None else None

    @property
    def root_hash(self) -> Digest | None:
        if not self.verified or not self.layer_hashes:
            return None
        return self.layer_hashes[0]

    @property
    def depth(self) -> int:
        return len(self.layer_hashes)

    def raise_for_failure(self) -> None:
        """Re-raise the typed VerificationError if verification failed."""
        if self.failure is not None:
            self._raise(self.failure)

    @staticmethod
    def _raise(failure: VerificationFailure) -> NoReturn:
        raise failure.to_error()
