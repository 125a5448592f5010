"""In-memory LayerStore implementation."""

from __future__ import annotations

import threading

from layertrust.layers.models import Layer
from layertrust.models.types import Digest


class InMemoryLayerStore:
    """Stores layers in a dict keyed by ``layer.content_hash``.

    Useful for testing and for callers that have already fetched a chain.
    Thread-safe using RLock for concurrent access.
    """

    def __init__(self, layers: list[Layer] | None = None) -> None:
        self._lock = threading.RLock()
        self._layers: dict[Digest, Layer] = {}
        for layer in layers or []:
            self.put(layer)

    def put(self, layer: Layer) -> None:
        """Store a layer verbatim under its declared content hash."""
        with self._lock:
            self._layers[layer.content_hash] = layer

    def retrieve(self, content_hash: Digest) -> Layer | None:
        with self._lock:
            return self._layers.get(content_hash)

    def delete(self, content_hash: Digest) -> bool:
        with self._lock:
            return self._layers.pop(content_hash, None) is not None

    def __contains__(self, content_hash: object) -> bool:
        with self._lock:
            return content_hash in self._layers

    def __len__(self) -> int:
        with self._lock:
            return len(self._layers)
