"""Tests for the in-memory and directory layer stores."""

from __future__ import annotations

import base64
import json
import os
from pathlib import Path

import pytest

from layertrust.errors import CorruptLayerRecordError, LayerRetrievalError
from layertrust.layers.models import Layer
from layertrust.storage import DirectoryLayerStore, InMemoryLayerStore, LayerStore

MISSING = "sha256:" + "f" * 64


@pytest.fixture
def chain(chain_factory) -> list[Layer]:  # type: ignore[no-untyped-def]
    return chain_factory(3, store=False)


class TestInMemoryLayerStore:
    def test_put_retrieve(self, chain: list[Layer]) -> None:
        store = InMemoryLayerStore()
        store.put(chain[0])
        assert store.retrieve(chain[0].content_hash) is chain[0]
        assert chain[0].content_hash in store
        assert len(store) == 1

    def test_missing_returns_none(self) -> None:
        assert InMemoryLayerStore().retrieve(MISSING) is None

    def test_initial_layers(self, chain: list[Layer]) -> None:
        store = InMemoryLayerStore(chain)
        assert len(store) == 3
        assert all(layer.content_hash in store for layer in chain)

    def test_delete(self, chain: list[Layer]) -> None:
        store = InMemoryLayerStore(chain)
        assert store.delete(chain[1].content_hash) is True
        assert store.delete(chain[1].content_hash) is False
        assert store.retrieve(chain[1].content_hash) is None

    def test_is_layer_store(self) -> None:
        assert isinstance(InMemoryLayerStore(), LayerStore)


class TestDirectoryLayerStore:
    def test_put_writes_content_addressed_path(self, tmp_path: Path, chain: list[Layer]) -> None:
        store = DirectoryLayerStore(tmp_path)
        path = store.put(chain[0])
        hexdigest = chain[0].content_hash.split(":", 1)[1]
        assert path == tmp_path / "sha256" / f"{hexdigest}.json"
        assert path.is_file()
        assert not [p for p in path.parent.iterdir() if p.name.startswith(".tmp-")]

    def test_roundtrip(self, tmp_path: Path, chain: list[Layer]) -> None:
        store = DirectoryLayerStore(tmp_path)
        for layer in chain:
            store.put(layer)
        reopened = DirectoryLayerStore(tmp_path)
        for layer in chain:
            assert reopened.retrieve(layer.content_hash) == layer
            assert layer.content_hash in reopened

    def test_missing_returns_none(self, tmp_path: Path) -> None:
        assert DirectoryLayerStore(tmp_path).retrieve(MISSING) is None

    def test_invalid_hash_returns_none(self, tmp_path: Path) -> None:
        store = DirectoryLayerStore(tmp_path)
        assert store.retrieve("sha256:../../etc/passwd") is None
        assert "sha256:../../etc/passwd" not in store
        assert 42 not in store

    def test_corrupt_record_raises(self, tmp_path: Path, chain: list[Layer]) -> None:
        store = DirectoryLayerStore(tmp_path)
        path = store.put(chain[0])
        path.write_bytes(b"{not json")
        with pytest.raises(CorruptLayerRecordError, match="corrupt record") as exc_info:
            store.retrieve(chain[0].content_hash)
        assert exc_info.value.content_hash == chain[0].content_hash
        assert exc_info.value.field is None
        assert isinstance(exc_info.value, LayerRetrievalError)

    def test_damaged_manifest_is_flagged(self, tmp_path: Path, chain: list[Layer]) -> None:
        store = DirectoryLayerStore(tmp_path)
        path = store.put(chain[0])
        record = json.loads(path.read_bytes())
        manifest = bytearray(base64.b64decode(record["manifest"]))
        manifest[0] ^= 0x80
        record["manifest"] = base64.b64encode(bytes(manifest)).decode()
        path.write_text(json.dumps(record))
        with pytest.raises(CorruptLayerRecordError) as exc_info:
            store.retrieve(chain[0].content_hash)
        assert exc_info.value.field == "manifest"
        assert exc_info.value.manifest_damaged

    @pytest.mark.skipif(
        os.name == "nt" or (hasattr(os, "geteuid") and os.geteuid() == 0),
        reason="permission bits are not enforced",
    )
    def test_unreadable_record_raises(self, tmp_path: Path, chain: list[Layer]) -> None:
        store = DirectoryLayerStore(tmp_path)
        path = store.put(chain[0])
        path.chmod(0)
        try:
            with pytest.raises(LayerRetrievalError):
                store.retrieve(chain[0].content_hash)
        finally:
            path.chmod(0o600)

    def test_delete(self, tmp_path: Path, chain: list[Layer]) -> None:
        store = DirectoryLayerStore(tmp_path)
        store.put(chain[0])
        assert store.delete(chain[0].content_hash) is True
        assert store.delete(chain[0].content_hash) is False
        assert chain[0].content_hash not in store

    def test_overwrite_is_atomic_replace(self, tmp_path: Path, chain: list[Layer]) -> None:
        store = DirectoryLayerStore(tmp_path)
        first = store.put(chain[0])
        second = store.put(chain[0])
        assert first == second
        assert store.retrieve(chain[0].content_hash) == chain[0]

    def test_is_layer_store(self, tmp_path: Path) -> None:
        assert isinstance(DirectoryLayerStore(tmp_path), LayerStore)
