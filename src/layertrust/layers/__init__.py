"""Layers: the signed, content-addressed unit of distribution.

Public exports:
    Layer: Content + manifest + signature
    build_manifest, build_layer: Build-time pipeline (hash, describe, sign)
    encode_layer, decode_layer: Persisted record format
"""

from layertrust.layers.builder import build_layer, build_manifest
from layertrust.layers.codec import PersistedLayer, decode_layer, encode_layer
from layertrust.layers.models import Layer

__all__ = [
    "Layer",
    "PersistedLayer",
    "build_layer",
    "build_manifest",
    "decode_layer",
    "encode_layer",
]
