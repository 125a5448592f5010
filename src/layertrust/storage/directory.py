"""Filesystem LayerStore: one persisted record per content hash.

Layout: ``<root>/sha256/<hex>.json``, each file holding ``encode_layer`` output.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path

from layertrust.errors import CorruptLayerRecordError, LayerDecodeError, LayerRetrievalError
from layertrust.layers.codec import decode_layer, encode_layer
from layertrust.layers.models import Layer
from layertrust.models.types import Digest
from layertrust.models.validators import validate_digest
from layertrust.observability import get_logger

logger = get_logger(__name__)


class DirectoryLayerStore:
    """Layers persisted as individual files under a root directory.

    Writes go through a temporary file and ``os.replace`` so a reader never
    sees a half-written record.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def _path_for(self, content_hash: Digest) -> Path:
        validate_digest(content_hash)
        algorithm, hexdigest = content_hash.split(":", 1)
        return self.root / algorithm / f"{hexdigest}.json"

    def put(self, layer: Layer) -> Path:
        path = self._path_for(layer.content_hash)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(encode_layer(layer))
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("layertrust.storage.stored", layer_hash=layer.content_hash, path=str(path))
        return path

    def retrieve(self, content_hash: Digest) -> Layer | None:
        """Load a layer, or None if no record exists.

        Raises:
            CorruptLayerRecordError: The record exists but does not decode.
            LayerRetrievalError: The record exists but cannot be read.
        """
        try:
            path = self._path_for(content_hash)
        except ValueError:
            return None
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise LayerRetrievalError(content_hash, str(e)) from e
        try:
            return decode_layer(data)
        except LayerDecodeError as e:
            raise CorruptLayerRecordError(
                content_hash, e.reason, field=e.field, details={"path": str(path)}
            ) from e

    def delete(self, content_hash: Digest) -> bool:
        try:
            self._path_for(content_hash).unlink()
        except FileNotFoundError:
            return False
        return True

    def __contains__(self, content_hash: object) -> bool:
        if not isinstance(content_hash, str):
            return False
        try:
            return self._path_for(content_hash).is_file()
        except ValueError:
            return False
