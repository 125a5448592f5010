"""Storage collaborators: where the Verifier fetches parent layers from."""

from layertrust.storage.base import LayerStore
from layertrust.storage.directory import DirectoryLayerStore
from layertrust.storage.memory import InMemoryLayerStore

__all__ = ["DirectoryLayerStore", "InMemoryLayerStore", "LayerStore"]
