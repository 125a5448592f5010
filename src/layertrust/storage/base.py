"""Storage collaborator interface.

The core never talks to a registry itself; it asks a ``LayerStore`` for
layers by content hash (never by mutable name).
"""

from typing import Protocol, runtime_checkable

from layertrust.layers.models import Layer
from layertrust.models.types import Digest


@runtime_checkable
class LayerStore(Protocol):
    """Protocol for layer storage implementations.

    ``retrieve`` returns None when the layer is simply not available and
    raises ``LayerRetrievalError`` when the backend fails; the Verifier
    treats both as an incomplete chain. A record that exists but is
    corrupt raises ``CorruptLayerRecordError`` and fails verification as
    tampering. Retry policy for transient failures belongs to the
    implementation, not to the caller.
    """

    def retrieve(self, content_hash: Digest) -> Layer | None:
        ...
