"""Content addressing: the deterministic digest that identifies a layer.

A layer's identity is the SHA-256 of its uncompressed filesystem delta,
rendered as ``sha256:<hex>``. The digest depends only on the bytes, never
on where or how they were stored or fetched.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from pathlib import Path
from typing import BinaryIO, Union

from layertrust.errors import ContentUnreadableError
from layertrust.models.constants import DIGEST_PREFIX, READ_CHUNK_SIZE
from layertrust.models.types import Digest
from layertrust.models.validators import is_valid_digest

Content = Union[bytes, bytearray, memoryview, BinaryIO, Iterable[bytes]]

__all__ = ["EMPTY_DIGEST", "Content", "hash_content", "hash_file", "is_valid_digest"]

EMPTY_DIGEST: Digest = DIGEST_PREFIX + hashlib.sha256(b"").hexdigest()
"""Digest of zero bytes; shared by every certification record."""


def _iter_chunks(content: Content) -> Iterable[bytes]:
    if isinstance(content, (bytes, bytearray, memoryview)):
        yield bytes(content)
        return
    read = getattr(content, "read", None)
    if callable(read):
        while True:
            chunk = read(READ_CHUNK_SIZE)
            if not chunk:
                return
            if not isinstance(chunk, (bytes, bytearray)):
                raise ContentUnreadableError(
                    "stream returned non-bytes data",
                    details={"chunk_type": type(chunk).__name__},
                )
            yield bytes(chunk)
    else:
        for chunk in content:
            if not isinstance(chunk, (bytes, bytearray, memoryview)):
                raise ContentUnreadableError(
                    "iterable yielded non-bytes data",
                    details={"chunk_type": type(chunk).__name__},
                )
            yield bytes(chunk)


def hash_content(content: Content, expected_size: int | None = None) -> Digest:
    """Compute the content hash of a layer's filesystem delta.

    Args:
        content: Raw bytes, a binary file object, or an iterable of byte chunks
        expected_size: If given, the stream must yield exactly this many bytes

    Returns:
        Digest in ``sha256:<64 hex>`` form

    Raises:
        ContentUnreadableError: If the stream fails mid-read or is shorter or
            longer than ``expected_size``. No partial digest is ever returned.

    Example:
        >>> hash_content(b"")
        'sha256:e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855'
    """
    hasher = hashlib.sha256()
    total = 0
    try:
        for chunk in _iter_chunks(content):
            hasher.update(chunk)
            total += len(chunk)
    except OSError as e:
        raise ContentUnreadableError(
            f"read failed after {total} bytes: {e}", details={"bytes_read": total}
        ) from e
    if expected_size is not None and total != expected_size:
        raise ContentUnreadableError(
            f"expected {expected_size} bytes, read {total}",
            details={"expected_size": expected_size, "bytes_read": total},
        )
    return f"{DIGEST_PREFIX}{hasher.hexdigest()}"


def hash_file(path: str | Path) -> Digest:
    """Hash a file on disk, streaming it in fixed-size chunks."""
    path = Path(path)
    try:
        expected = path.stat().st_size
        with path.open("rb") as fh:
            return hash_content(fh, expected_size=expected)
    except OSError as e:
        raise ContentUnreadableError(str(e), details={"path": str(path)}) from e
