"""Custom assertions for layertrust tests.

Functions:
    assert_verified: Assert a verification result succeeded.
    assert_failed_with: Assert a result failed with a given FailureKind.
    assert_chain_order: Assert a result's layers match a chain, root to leaf.
"""

from collections.abc import Sequence

from layertrust.certification.overlay import CertificationResult
from layertrust.errors import FailureKind
from layertrust.layers.models import Layer
from layertrust.verify.result import VerificationResult


def assert_verified(result: VerificationResult | CertificationResult) -> None:
    failure = result.failure
    assert result.verified, (
        f"Expected verification to succeed, got {failure.kind.value}: {failure.message}"
        if failure is not None
        else "Expected verification to succeed"
    )


def assert_failed_with(
    result: VerificationResult | CertificationResult,
    kind: FailureKind,
    *,
    layer_hash: str | None = None,
) -> None:
    """Assert that verification failed with ``kind`` (optionally at ``layer_hash``)."""
    assert not result.verified, f"Expected {kind.value} failure, but verification succeeded"
    failure = result.failure
    assert failure is not None, "Failed result must carry a failure"
    assert failure.kind is kind, (
        f"Expected failure {kind.value!r}, got {failure.kind.value!r}: {failure.message}"
    )
    if layer_hash is not None:
        assert failure.layer_hash == layer_hash, (
            f"Expected failure at {layer_hash}, got {failure.layer_hash}"
        )


def assert_chain_order(result: VerificationResult, chain: Sequence[Layer]) -> None:
    """Assert ``result`` covers ``chain`` (root first) in root-to-leaf order."""
    expected_hashes = tuple(layer.content_hash for layer in chain)
    expected_fingerprints = tuple(layer.manifest.maintainer_fingerprint for layer in chain)
    assert result.layer_hashes == expected_hashes, (
        f"Layer order {result.layer_hashes} != {expected_hashes}"
    )
    assert result.chain == expected_fingerprints, (
        f"Fingerprint order {result.chain} != {expected_fingerprints}"
    )


__all__ = [
    "assert_chain_order",
    "assert_failed_with",
    "assert_verified",
]
