"""Trust Store: fingerprint to trusted public key.

Populated by an external trust-management collaborator through ``add`` and
``remove``; the Verifier only reads it. Updates are serialized and publish a
new immutable ``TrustSnapshot``; readers pin one snapshot per verification so
a walk never sees a mix of pre- and post-update trust.

Trust is evaluated when a verification starts, never cached beyond it:
after ``remove`` every new verification treats the key as unknown.
"""

from __future__ import annotations

import threading
from collections.abc import Iterable, Iterator, Mapping
from datetime import datetime, timezone
from fnmatch import fnmatchcase
from types import MappingProxyType, TracebackType

from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey
from pydantic import Field, field_validator, model_validator

from layertrust.crypto.keys import fingerprint, load_public_key_from_base64, public_key_to_base64
from layertrust.errors import TrustStoreClosedError
from layertrust.models.base import LayerTrustBaseModel
from layertrust.models.types import Fingerprint, LayerName
from layertrust.models.validators import validate_fingerprint
from layertrust.observability import get_logger, get_metrics

logger = get_logger(__name__)


class TrustedIdentity(LayerTrustBaseModel):
    """A trusted maintainer or certifier key.

    ``name_patterns`` is the auditable trust-to-name binding: shell-style
    patterns (``acme/*``) of layer names this key may sign. Empty means the
    key is not restricted to any namespace.
    """

    fingerprint: Fingerprint
    public_key: str = Field(..., description="Base64 raw Ed25519 public key")
    label: str | None = None
    name_patterns: tuple[str, ...] = ()
    added_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_validator("fingerprint")
    @classmethod
    def _check_fingerprint(cls, v: str) -> str:
        return validate_fingerprint(v)

    @model_validator(mode="after")
    def _check_key_matches_fingerprint(self) -> TrustedIdentity:
        if fingerprint(load_public_key_from_base64(self.public_key)) != self.fingerprint:
            raise ValueError("fingerprint does not match public_key")
        return self

    @classmethod
    def from_public_key(
        cls,
        public_key: Ed25519PublicKey,
        *,
        label: str | None = None,
        name_patterns: Iterable[str] = (),
    ) -> TrustedIdentity:
        return cls(
            fingerprint=fingerprint(public_key),
            public_key=public_key_to_base64(public_key),
            label=label,
            name_patterns=tuple(name_patterns),
        )

    def load_public_key(self) -> Ed25519PublicKey:
        return load_public_key_from_base64(self.public_key)

    def permits_name(self, name: LayerName) -> bool:
        if not self.name_patterns:
            return True
        return any(fnmatchcase(name, pattern) for pattern in self.name_patterns)


class TrustSnapshot:
    """Immutable view of the trust set at one point in time."""

    __slots__ = ("_entries", "version")

    def __init__(self, entries: Mapping[Fingerprint, TrustedIdentity], version: int) -> None:
        self._entries = MappingProxyType(dict(entries))
        self.version = version

    def identity(self, fp: Fingerprint) -> TrustedIdentity | None:
        return self._entries.get(fp)

    def lookup(self, fp: Fingerprint) -> Ed25519PublicKey | None:
        entry = self._entries.get(fp)
        return entry.load_public_key() if entry is not None else None

    def is_trusted(self, fp: Fingerprint) -> bool:
        return fp in self._entries

    def permits_name(self, fp: Fingerprint, name: LayerName) -> bool:
        entry = self._entries.get(fp)
        return entry is not None and entry.permits_name(name)

    @property
    def fingerprints(self) -> frozenset[Fingerprint]:
        return frozenset(self._entries)

    def __contains__(self, fp: object) -> bool:
        return fp in self._entries

    def __iter__(self) -> Iterator[TrustedIdentity]:
        return iter(self._entries.values())

    def __len__(self) -> int:
        return len(self._entries)


class TrustStore:
    """Explicitly scoped registry of trusted identities.

    Created at process or session start and torn down with ``close()`` (or by
    leaving a ``with`` block); it is never implicitly re-initialized.
    """

    def __init__(self, identities: Iterable[TrustedIdentity] = ()) -> None:
        self._write_lock = threading.Lock()
        entries = {identity.fingerprint: identity for identity in identities}
        self._snapshot = TrustSnapshot(entries, version=0)
        self._closed = False

    # --- read side ---

    def snapshot(self) -> TrustSnapshot:
        """Current trust set; stable for as long as the caller holds it."""
        if self._closed:
            raise TrustStoreClosedError()
        return self._snapshot

    def lookup(self, fp: Fingerprint) -> Ed25519PublicKey | None:
        return self.snapshot().lookup(fp)

    def is_trusted(self, fp: Fingerprint) -> bool:
        return self.snapshot().is_trusted(fp)

    def __len__(self) -> int:
        return len(self.snapshot())

    def __contains__(self, fp: object) -> bool:
        return fp in self.snapshot()

    # --- write side ---

    def add(
        self,
        public_key: Ed25519PublicKey | TrustedIdentity,
        *,
        label: str | None = None,
        name_patterns: Iterable[str] = (),
    ) -> TrustedIdentity:
        """Trust a key. Re-adding an identical identity is a no-op.

        Raises:
            ValueError: The fingerprint is already trusted with a different
                label or name binding; remove it first (no silent upgrades).
            TrustStoreClosedError: The store has been closed.
        """
        if isinstance(public_key, TrustedIdentity):
            identity = public_key
        else:
            identity = TrustedIdentity.from_public_key(
                public_key, label=label, name_patterns=name_patterns
            )
        with self._write_lock:
            current = self.snapshot()
            existing = current.identity(identity.fingerprint)
            if existing is not None:
                if (existing.label, existing.name_patterns) == (
                    identity.label,
                    identity.name_patterns,
                ):
                    return existing
                raise ValueError(
                    f"{identity.fingerprint} is already trusted with different bindings; "
                    "remove it before re-adding"
                )
            entries = {entry.fingerprint: entry for entry in current}
            entries[identity.fingerprint] = identity
            self._snapshot = TrustSnapshot(entries, version=current.version + 1)

        get_metrics().increment_counter("layertrust_trust_store_changes_total", {"action": "add"})
        logger.info(
            "layertrust.trust.added",
            fingerprint=identity.fingerprint,
            label=identity.label,
            name_patterns=list(identity.name_patterns),
        )
        return identity

    def remove(self, fp: Fingerprint) -> bool:
        """Revoke trust in a key. Returns False if it was not trusted."""
        with self._write_lock:
            current = self.snapshot()
            if fp not in current:
                return False
            entries = {entry.fingerprint: entry for entry in current if entry.fingerprint != fp}
            self._snapshot = TrustSnapshot(entries, version=current.version + 1)

        get_metrics().increment_counter(
            "layertrust_trust_store_changes_total", {"action": "remove"}
        )
        logger.info("layertrust.trust.revoked", fingerprint=fp)
        return True

    # --- lifecycle ---

    @property
    def closed(self) -> bool:
        return self._closed

    def close(self) -> None:
        with self._write_lock:
            self._closed = True
            self._snapshot = TrustSnapshot({}, version=self._snapshot.version + 1)

    def __enter__(self) -> TrustStore:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
