"""Pytest fixtures for layertrust tests.

Load with ``pytest_plugins = ["layertrust.testing.fixtures"]``.

Fixtures:
    maintainer_key: Fresh Ed25519 private key for a layer maintainer.
    certifier_key: Fresh Ed25519 private key for a certifying party.
    trust_store: TrustStore trusting both keys, closed after the test.
    layer_store: Empty InMemoryLayerStore.
    chain_factory: Callable building a linked, signed chain of N layers.
"""

from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import datetime, timedelta, timezone

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from layertrust.crypto.keys import generate_keypair
from layertrust.layers.builder import build_layer
from layertrust.layers.models import Layer
from layertrust.storage.memory import InMemoryLayerStore
from layertrust.trust.store import TrustStore

CHAIN_EPOCH = datetime(2024, 1, 1, tzinfo=timezone.utc)


class ChainFactory:
    """Builds chains of signed layers, root first, and stores them.

    Each layer is built one second after its parent, with content
    ``b"layer-<i>"`` unless other content is given.
    """

    def __init__(self, store: InMemoryLayerStore, default_key: Ed25519PrivateKey) -> None:
        self.store = store
        self.default_key = default_key

    def __call__(
        self,
        length: int,
        *,
        keys: Sequence[Ed25519PrivateKey] | None = None,
        name: str = "acme/app",
        store: bool = True,
    ) -> list[Layer]:
        if length < 1:
            raise ValueError("chain length must be >= 1")
        layers: list[Layer] = []
        parent: Layer | None = None
        for i in range(length):
            key = keys[i] if keys is not None else self.default_key
            layer = build_layer(
                f"layer-{i}".encode(),
                key,
                name=name,
                parent=parent,
                description=f"layer {i}",
                metadata={"position": str(i)},
                build_timestamp=CHAIN_EPOCH + timedelta(seconds=i),
            )
            if store:
                self.store.put(layer)
            layers.append(layer)
            parent = layer
        return layers


@pytest.fixture
def maintainer_key() -> Ed25519PrivateKey:
    private_key, _ = generate_keypair()
    return private_key


@pytest.fixture
def certifier_key() -> Ed25519PrivateKey:
    private_key, _ = generate_keypair()
    return private_key


@pytest.fixture
def trust_store(
    maintainer_key: Ed25519PrivateKey, certifier_key: Ed25519PrivateKey
) -> Iterator[TrustStore]:
    """TrustStore trusting the maintainer and certifier keys (isolated per test)."""
    with TrustStore() as store:
        store.add(maintainer_key.public_key(), label="maintainer")
        store.add(certifier_key.public_key(), label="certifier")
        yield store


@pytest.fixture
def layer_store() -> InMemoryLayerStore:
    return InMemoryLayerStore()


@pytest.fixture
def chain_factory(
    layer_store: InMemoryLayerStore, maintainer_key: Ed25519PrivateKey
) -> ChainFactory:
    return ChainFactory(layer_store, maintainer_key)
