"""Constants for layertrust.

This module defines format-wide constants used across the codebase.
"""

# Content addressing
DIGEST_ALGORITHM = "sha256"
DIGEST_PREFIX = f"{DIGEST_ALGORITHM}:"
DIGEST_PATTERN = r"^sha256:[0-9a-f]{64}$"
READ_CHUNK_SIZE = 1024 * 1024
"""Bytes read per chunk when hashing file-like content."""

# Signing
SIGNATURE_ALGORITHM = "ed25519"
ED25519_SIGNATURE_LENGTH = 64
ED25519_PUBLIC_KEY_LENGTH = 32
FINGERPRINT_PATTERN = r"^ed25519:[0-9a-f]{64}$"
SIGNING_DOMAIN = b"layertrust-layer-signature-v1\x00"
"""Domain separation prefix for signed payloads.

Binds every signature to this format so it cannot be replayed as a
signature over some other kind of message made with the same key.
"""

# Manifest
MANIFEST_FORMAT = "layertrust.manifest/v1"
"""Tag written as the first element of every canonical manifest."""

LAYER_FORMAT = "layertrust.layer/v1"
"""Tag written into every persisted layer record."""

LAYER_NAME_PATTERN = r"^[a-z0-9]+(?:[._-][a-z0-9]+)*(?:/[a-z0-9]+(?:[._-][a-z0-9]+)*)+$"
"""namespace/image-name form; nested namespaces allowed, lowercase only."""

MAX_LAYER_NAME_LENGTH = 255
MAX_METADATA_ENTRIES = 256
TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"

# Verification
DEFAULT_DEPTH_LIMIT = 64
"""Maximum number of layers walked from a leaf to its root, leaf included."""

MAX_DEPTH_LIMIT = 4096
