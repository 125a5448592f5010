"""layertrust Cryptographic Layer.

This module provides content addressing, Ed25519 key management and layer signing:
- Content hashing of filesystem deltas (SHA-256, ``sha256:<hex>``)
- Key generation, serialization, loading (PEM, file, env) and fingerprints
- Canonical manifest serialization (RFC 8785 JCS over a fixed field order)
- Signing and verification over (content hash, canonical manifest)

Public exports:
    keys: Key generation and management submodule
    signing: canonicalize, parse_canonical, sign_layer, verify_signature
    digest: hash_content, hash_file
    models: SignatureBlock
"""

from layertrust.crypto import digest
from layertrust.crypto import keys
from layertrust.crypto import signing
from layertrust.crypto.digest import EMPTY_DIGEST, hash_content, hash_file
from layertrust.crypto.keys import fingerprint, generate_keypair
from layertrust.crypto.models import SignatureBlock
from layertrust.crypto.signing import canonicalize, parse_canonical, sign_layer, verify_signature

__all__ = [
    "EMPTY_DIGEST",
    "digest",
    "keys",
    "signing",
    "SignatureBlock",
    "canonicalize",
    "fingerprint",
    "generate_keypair",
    "hash_content",
    "hash_file",
    "parse_canonical",
    "sign_layer",
    "verify_signature",
]
