"""Concurrent verification against a shared, changing trust store."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from layertrust.crypto.keys import fingerprint
from layertrust.errors import FailureKind
from layertrust.layers.models import Layer
from layertrust.models.types import Digest
from layertrust.storage.memory import InMemoryLayerStore
from layertrust.testing.assertions import assert_verified
from layertrust.testing.fixtures import ChainFactory
from layertrust.trust.store import TrustStore
from layertrust.verify.verifier import Verifier


def test_many_threads_share_one_verifier(
    chain_factory: ChainFactory, trust_store: TrustStore
) -> None:
    chain = chain_factory(6)
    verifier = Verifier(trust_store, store=chain_factory.store)
    leaves = chain * 8

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(verifier.verify, leaves))

    for leaf, result in zip(leaves, results):
        assert_verified(result)
        assert result.leaf_hash == leaf.content_hash
        assert result.depth == chain.index(leaf) + 1


def test_revocation_mid_walk_does_not_tear(
    chain_factory: ChainFactory,
    trust_store: TrustStore,
    maintainer_key: Ed25519PrivateKey,
) -> None:
    """A walk pinned before revocation sees the old trust set for every layer."""
    chain = chain_factory(3)
    at_parent = threading.Event()
    resume = threading.Event()

    class _PausingStore:
        def retrieve(self, content_hash: Digest) -> Layer | None:
            at_parent.set()
            resume.wait(timeout=5)
            return chain_factory.store.retrieve(content_hash)

    results = []
    worker = threading.Thread(
        target=lambda: results.append(
            Verifier(trust_store, store=_PausingStore()).verify(chain[-1])
        )
    )
    worker.start()
    assert at_parent.wait(timeout=5)
    trust_store.remove(fingerprint(maintainer_key))
    resume.set()
    worker.join(timeout=10)

    (in_flight,) = results
    assert_verified(in_flight)

    after = Verifier(trust_store, store=chain_factory.store).verify(chain[-1])
    assert after.failure_kind is FailureKind.UNTRUSTED_SIGNER
    assert after.trust_version is not None
    assert in_flight.trust_version is not None
    assert after.trust_version > in_flight.trust_version


def test_concurrent_trust_updates_and_verifications(
    trust_store: TrustStore, maintainer_key: Ed25519PrivateKey, certifier_key: Ed25519PrivateKey
) -> None:
    """Every result is either fully trusted or fails on the certifier's layer, never mixed."""
    store = InMemoryLayerStore()
    factory = ChainFactory(store, maintainer_key)
    chain = factory(2, keys=[certifier_key, maintainer_key])
    certifier_fp = fingerprint(certifier_key)
    stop = threading.Event()

    def churn() -> None:
        while not stop.is_set():
            trust_store.remove(certifier_fp)
            trust_store.add(certifier_key.public_key(), label="certifier")

    churner = threading.Thread(target=churn)
    churner.start()
    try:
        verifier = Verifier(trust_store, store=store)
        results = [verifier.verify(chain[-1]) for _ in range(200)]
    finally:
        stop.set()
        churner.join()

    for result in results:
        if not result.verified:
            assert result.failure_kind is FailureKind.UNTRUSTED_SIGNER
            assert result.failure is not None
            assert result.failure.layer_hash == chain[0].content_hash
