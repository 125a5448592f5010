"""Shared pytest fixtures for layertrust tests.

Key, trust store, layer store and chain fixtures come from the
``layertrust.testing.fixtures`` plugin.
"""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timezone

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from layertrust.crypto.keys import fingerprint
from layertrust.layers.builder import build_manifest
from layertrust.models.manifest import Manifest
from layertrust.observability import reset_metrics

pytest_plugins = ["layertrust.testing.fixtures"]

FIXED_TIMESTAMP = datetime(2024, 3, 1, 12, 30, 45, 123456, tzinfo=timezone.utc)
EMPTY_DIGEST = "sha256:e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
OTHER_DIGEST = "sha256:" + "ab" * 32


@pytest.fixture(autouse=True)
def _reset_metrics() -> Iterator[None]:
    """Isolate the global metrics collector between tests."""
    reset_metrics()
    yield
    reset_metrics()


@pytest.fixture
def sample_manifest(maintainer_key: Ed25519PrivateKey) -> Manifest:
    return build_manifest(
        name="acme/webapp",
        maintainer_fingerprint=fingerprint(maintainer_key),
        content_hash=EMPTY_DIGEST,
        parent_hash=OTHER_DIGEST,
        source_uri="git+https://example.com/acme/webapp@v1.2.0",
        description="hello world",
        metadata={"vcs": "git", "arch": "amd64"},
        build_timestamp=FIXED_TIMESTAMP,
    )
