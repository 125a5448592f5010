"""Verifier: integrity, signature and chain-of-trust checks at pull time.

For each layer, starting at the leaf:

1. Recompute the content hash; it must equal the manifest's
   ``computed_hash``, the layer's declared ``content_hash`` and, for
   parents, the hash the child asked for (``IntegrityMismatch``).
2. Check the ancestry invariant against the child: not seen before in this
   walk, not built after the child (``AncestryViolation``).
3. Look the maintainer fingerprint up in the pinned trust snapshot, and
   check its name binding (``UntrustedSigner``).
4. Verify the signature over (content hash, canonical manifest)
   (``SignatureInvalid``).
5. If there is a parent, fetch it from the storage collaborator and repeat
   (``ChainIncomplete``, ``ChainTooDeep``, ``Cancelled``); otherwise the
   layer is a root and the walk succeeds. A stored record that exists but
   does not decode is tampering, not missing data: ``SignatureInvalid`` when
   its manifest bytes are damaged, ``IntegrityMismatch`` otherwise.

The walk is a loop with an explicit visited set, not recursion, so neither
a corrupted store nor a long chain can exhaust the call stack.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from layertrust.config import VerifierSettings
from layertrust.crypto.digest import hash_content
from layertrust.crypto.signing import verify_signature
from layertrust.errors import (
    AncestryViolationError,
    ChainIncompleteError,
    ChainTooDeepError,
    CorruptLayerRecordError,
    IntegrityMismatchError,
    LayerRetrievalError,
    SignatureInvalidError,
    UntrustedSignerError,
    VerificationCancelledError,
    VerificationError,
)
from layertrust.layers.models import Layer
from layertrust.models.constants import DEFAULT_DEPTH_LIMIT
from layertrust.models.types import Digest, Fingerprint
from layertrust.observability import get_logger, get_metrics
from layertrust.storage.base import LayerStore
from layertrust.trust.store import TrustSnapshot, TrustStore
from layertrust.verify.result import VerificationFailure, VerificationResult
from layertrust.verify.states import VerificationState, advance

logger = get_logger(__name__)


@dataclass
class _Walk:
    """Mutable bookkeeping for one verification call; never shared."""

    snapshot: TrustSnapshot
    depth_limit: int
    enforce_name_bindings: bool
    cancel_event: threading.Event | None
    deadline: float | None
    state: VerificationState = VerificationState.UNVERIFIED
    depth: int = 0
    visited: set[Digest] = field(default_factory=set)
    fingerprints: list[Fingerprint] = field(default_factory=list)
    hashes: list[Digest] = field(default_factory=list)
    trail: list[tuple[VerificationState, Digest | None]] = field(default_factory=list)

    def move(self, to_state: VerificationState, layer_hash: Digest | None) -> None:
        self.state = advance(self.state, to_state)
        self.trail.append((to_state, layer_hash))

    def check_cancelled(self, layer_hash: Digest | None) -> None:
        if self.cancel_event is not None and self.cancel_event.is_set():
            raise VerificationCancelledError("Verification cancelled", layer_hash=layer_hash)
        if self.deadline is not None and time.monotonic() >= self.deadline:
            raise VerificationCancelledError(
                "Verification timed out", layer_hash=layer_hash, details={"reason": "timeout"}
            )


class Verifier:
    """Verifies layers and their ancestry against a trust store.

    Holds no per-call state, so one Verifier may serve many threads
    verifying different layers concurrently.

    Example:
        >>> verifier = Verifier(trust_store, store=layer_store)
        >>> result = verifier.verify(layer)
        >>> result.verified, result.chain
        (True, ('ed25519:...', 'ed25519:...'))
    """

    def __init__(
        self,
        trust_store: TrustStore,
        store: LayerStore | None = None,
        settings: VerifierSettings | None = None,
    ) -> None:
        self.trust_store = trust_store
        self.store = store
        self.settings = settings or VerifierSettings()

    def verify(
        self,
        layer: Layer,
        *,
        depth_limit: int | None = None,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> VerificationResult:
        """Verify ``layer`` and walk its parents up to a root.

        Args:
            layer: The leaf layer to verify
            depth_limit: Maximum layers walked, leaf included (defaults to settings)
            cancel_event: When set, the walk stops before the next retrieval
            timeout: Seconds before the walk is abandoned (defaults to settings)

        Returns:
            VerificationResult; failures are reported there, not raised.

        Raises:
            TrustStoreClosedError: The trust store was closed before the call.
            ValueError: ``depth_limit`` is smaller than 1.
        """
        return self._run(layer, depth_limit, cancel_event, timeout)

    def verify_hash(
        self,
        content_hash: Digest,
        *,
        depth_limit: int | None = None,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> VerificationResult:
        """Fetch a layer by content hash from the store, then verify it."""
        return self._run(content_hash, depth_limit, cancel_event, timeout)

    def _run(
        self,
        leaf: Layer | Digest,
        depth_limit: int | None,
        cancel_event: threading.Event | None,
        timeout: float | None,
    ) -> VerificationResult:
        limit = self.settings.depth_limit if depth_limit is None else depth_limit
        if limit < 1:
            raise ValueError(f"depth_limit must be >= 1, got {limit}")
        timeout = self.settings.timeout_seconds if timeout is None else timeout

        started = time.monotonic()
        walk = _Walk(
            snapshot=self.trust_store.snapshot(),
            depth_limit=limit,
            enforce_name_bindings=self.settings.enforce_name_bindings,
            cancel_event=cancel_event,
            deadline=started + timeout if timeout is not None else None,
        )
        leaf_hash = leaf if isinstance(leaf, str) else leaf.content_hash
        log = logger.bind(leaf_hash=leaf_hash, trust_version=walk.snapshot.version)

        failure: VerificationFailure | None = None
        try:
            if isinstance(leaf, str):
                walk.check_cancelled(leaf)
                self._walk(walk, self._retrieve(leaf, None), leaf)
            else:
                self._walk(walk, leaf, None)
        except VerificationError as e:
            failure = VerificationFailure.from_error(e, depth=walk.depth)
            walk.move(VerificationState.FAILED, e.layer_hash)

        duration = time.monotonic() - started
        result = VerificationResult(
            state=walk.state,
            leaf_hash=leaf_hash,
            chain=tuple(reversed(walk.fingerprints)),
            layer_hashes=tuple(reversed(walk.hashes)),
            failure=failure,
            trail=tuple(walk.trail),
            trust_version=walk.snapshot.version,
            duration_seconds=duration,
        )

        metrics = get_metrics()
        outcome = "verified" if failure is None else "failed"
        metrics.increment_counter(
            "layertrust_verifications_total",
            {"outcome": outcome, "failure": failure.kind.value if failure else "none"},
        )
        metrics.increment_counter("layertrust_chain_layers_walked_total", value=len(walk.hashes))
        metrics.observe_histogram(
            "layertrust_verification_duration_seconds", duration, {"outcome": outcome}
        )
        if failure is None:
            log.info("layertrust.verify.succeeded", depth=result.depth, root_hash=result.root_hash)
        else:
            log.warning(
                "layertrust.verify.failed",
                failure=failure.kind.value,
                layer_hash=failure.layer_hash,
                depth=failure.depth,
                reason=failure.message,
            )
        return result

    def _retrieve(self, content_hash: Digest, child_hash: Digest | None) -> Layer:
        details = {"child_hash": child_hash} if child_hash is not None else {}
        if self.store is None:
            raise ChainIncompleteError(
                "No storage collaborator configured to resolve layer",
                layer_hash=content_hash,
                details=details,
            )
        try:
            layer = self.store.retrieve(content_hash)
        except CorruptLayerRecordError as e:
            error_cls = SignatureInvalidError if e.manifest_damaged else IntegrityMismatchError
            raise error_cls(
                f"Stored record does not decode: {e.reason}",
                layer_hash=content_hash,
                details={**details, "field": e.field},
            ) from e
        except LayerRetrievalError as e:
            raise ChainIncompleteError(
                f"Layer could not be retrieved: {e.reason}",
                layer_hash=content_hash,
                details=details,
            ) from e
        if layer is None:
            raise ChainIncompleteError(
                "Layer not found in storage", layer_hash=content_hash, details=details
            )
        return layer

    def _walk(self, walk: _Walk, layer: Layer, requested_hash: Digest | None) -> None:
        current = layer
        child: Layer | None = None
        while True:
            walk.depth += 1
            digest = self._check_integrity(current, requested_hash)
            walk.move(VerificationState.HASH_CHECKED, digest)
            self._check_ancestry(walk, current, digest, child)
            self._check_signer(walk, current, digest)
            walk.move(VerificationState.SIGNATURE_CHECKED, digest)

            walk.visited.add(digest)
            walk.fingerprints.append(current.manifest.maintainer_fingerprint)
            walk.hashes.append(digest)

            parent_hash = current.manifest.parent_hash
            if parent_hash is None:
                walk.move(VerificationState.VERIFIED, digest)
                return

            if walk.depth >= walk.depth_limit:
                raise ChainTooDeepError(
                    f"Ancestry exceeds depth limit of {walk.depth_limit}",
                    layer_hash=parent_hash,
                    details={"depth_limit": walk.depth_limit, "child_hash": digest},
                )
            walk.check_cancelled(parent_hash)
            walk.move(VerificationState.CHAIN_WALKING, parent_hash)
            parent = self._retrieve(parent_hash, digest)
            walk.check_cancelled(parent_hash)

            child, current, requested_hash = current, parent, parent_hash

    @staticmethod
    def _check_integrity(layer: Layer, requested_hash: Digest | None) -> Digest:
        digest = hash_content(layer.content)
        claimed = layer.manifest.computed_hash
        if digest != claimed:
            raise IntegrityMismatchError(
                "Content hash does not match the manifest's computed_hash",
                layer_hash=layer.content_hash,
                details={"computed": digest, "claimed": claimed},
            )
        if digest != layer.content_hash:
            raise IntegrityMismatchError(
                "Content hash does not match the layer's declared content_hash",
                layer_hash=layer.content_hash,
                details={"computed": digest, "declared": layer.content_hash},
            )
        if requested_hash is not None and digest != requested_hash:
            raise IntegrityMismatchError(
                "Storage returned a layer with a different content hash than requested",
                layer_hash=requested_hash,
                details={"computed": digest, "requested": requested_hash},
            )
        return digest

    @staticmethod
    def _check_ancestry(walk: _Walk, layer: Layer, digest: Digest, child: Layer | None) -> None:
        if digest in walk.visited:
            raise AncestryViolationError(
                "Ancestry revisits a layer already in this chain (cycle)",
                layer_hash=digest,
            )
        if child is not None and layer.manifest.build_timestamp > child.manifest.build_timestamp:
            raise AncestryViolationError(
                "Parent layer was built after its child",
                layer_hash=digest,
                details={
                    "parent_timestamp": layer.manifest.build_timestamp.isoformat(),
                    "child_timestamp": child.manifest.build_timestamp.isoformat(),
                },
            )

    @staticmethod
    def _check_signer(walk: _Walk, layer: Layer, digest: Digest) -> None:
        fp = layer.manifest.maintainer_fingerprint
        public_key = walk.snapshot.lookup(fp)
        if public_key is None:
            raise UntrustedSignerError(
                "Maintainer key is not in the trust store",
                layer_hash=digest,
                details={"fingerprint": fp},
            )
        if walk.enforce_name_bindings and not walk.snapshot.permits_name(fp, layer.manifest.name):
            raise UntrustedSignerError(
                "Maintainer key is not bound to this layer name",
                layer_hash=digest,
                details={"fingerprint": fp, "name": layer.manifest.name},
            )
        verify_signature(
            public_key,
            layer.signature,
            layer.canonical_manifest,
            digest,
            layer_hash=digest,
        )


def verify(
    layer: Layer,
    trust_store: TrustStore,
    depth_limit: int = DEFAULT_DEPTH_LIMIT,
    *,
    store: LayerStore | None = None,
    cancel_event: threading.Event | None = None,
    timeout: float | None = None,
) -> VerificationResult:
    """Verify ``layer`` and its ancestry; see ``Verifier.verify``."""
    return Verifier(trust_store, store=store).verify(
        layer, depth_limit=depth_limit, cancel_event=cancel_event, timeout=timeout
    )
