"""Ed25519 key generation, serialization, loading and fingerprinting."""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
from datetime import datetime, timezone
from pathlib import Path

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import load_pem_private_key
from pydantic import BaseModel

from layertrust.models.constants import ED25519_PUBLIC_KEY_LENGTH, SIGNATURE_ALGORITHM
from layertrust.models.types import Fingerprint
from layertrust.observability import get_logger

logger = get_logger(__name__)

# Age in days after which to log a key rotation warning.
KEY_ROTATION_WARNING_DAYS = 365
# Recommended mode for private key files (owner read/write only).
KEY_FILE_RECOMMENDED_MODE = 0o600


class KeyMetadata(BaseModel):
    """Key creation time (or file mtime); used for rotation/audit."""

    created_at: datetime


def generate_keypair() -> tuple[Ed25519PrivateKey, Ed25519PublicKey]:
    private_key = Ed25519PrivateKey.generate()
    return (private_key, private_key.public_key())


def public_key_raw(key: Ed25519PublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def fingerprint(key: Ed25519PublicKey | Ed25519PrivateKey) -> Fingerprint:
    """``ed25519:<sha256 hex of the raw 32-byte public key>``."""
    if isinstance(key, Ed25519PrivateKey):
        key = key.public_key()
    digest = hashlib.sha256(public_key_raw(key)).hexdigest()
    return f"{SIGNATURE_ALGORITHM}:{digest}"


def serialize_private_key(key: Ed25519PrivateKey) -> bytes:
    """PEM (PKCS#8, unencrypted)."""
    pem: bytes = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    return pem


def public_key_to_base64(key: Ed25519PublicKey) -> str:
    return base64.b64encode(public_key_raw(key)).decode("ascii")


def load_public_key_from_base64(b64: str) -> Ed25519PublicKey:
    """From base64 raw 32 bytes. Raises ValueError if not decodable or not 32 bytes."""
    try:
        raw = base64.b64decode(b64, validate=True)
    except binascii.Error as e:
        raise ValueError(f"Invalid base64 public key: {e}") from e
    if len(raw) != ED25519_PUBLIC_KEY_LENGTH:
        raise ValueError(
            f"Ed25519 public key must be {ED25519_PUBLIC_KEY_LENGTH} bytes, got {len(raw)}"
        )
    return Ed25519PublicKey.from_public_bytes(raw)


def load_private_key_from_pem(pem: bytes, password: bytes | None = None) -> Ed25519PrivateKey:
    """From PEM. Raises ValueError if invalid or not Ed25519."""
    key = load_pem_private_key(pem, password=password)
    if not isinstance(key, Ed25519PrivateKey):
        raise ValueError("Key is not an Ed25519 private key")
    return key


def get_key_metadata_from_file(path: str | Path) -> KeyMetadata:
    """KeyMetadata from file mtime (UTC)."""
    mtime = Path(path).stat().st_mtime
    return KeyMetadata(created_at=datetime.fromtimestamp(mtime, tz=timezone.utc))


def warn_if_key_old(
    metadata: KeyMetadata,
    max_age_days: int = KEY_ROTATION_WARNING_DAYS,
) -> None:
    age_days = (datetime.now(timezone.utc) - metadata.created_at).days
    if age_days >= max_age_days:
        logger.warning(
            "layertrust.key.rotation_recommended",
            age_days=age_days,
            max_age_days=max_age_days,
            created_at=metadata.created_at.isoformat(),
        )


def warn_if_key_file_permissions_loose(path: Path) -> None:
    """Warn when key file is group/other readable (recommend chmod 0600)."""
    try:
        mode = path.stat().st_mode
    except OSError:
        return
    if (mode & 0o77) != 0:
        logger.warning(
            "layertrust.key.file_permissions_loose",
            path=str(path),
            mode=oct(mode),
            recommended=oct(KEY_FILE_RECOMMENDED_MODE),
        )


def load_private_key_from_file_sync(path: str | Path) -> Ed25519PrivateKey:
    """Load Ed25519 private key from PEM file (blocking disk I/O).

    Logs a rotation warning if the file is older than KEY_ROTATION_WARNING_DAYS
    and a security warning if it is readable by group or others.
    """
    path = Path(path)
    warn_if_key_file_permissions_loose(path)
    key = load_private_key_from_pem(path.read_bytes())
    warn_if_key_old(get_key_metadata_from_file(path))
    return key


def load_private_key_from_env(var_name: str) -> Ed25519PrivateKey:
    """From env var (PEM string). Raises ValueError if unset or invalid."""
    value = os.environ.get(var_name)
    if not value:
        raise ValueError(f"Environment variable {var_name!r} is not set or empty")
    return load_private_key_from_pem(value.encode("utf-8"))
