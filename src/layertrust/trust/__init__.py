"""Trust Store: the set of keys a verifier currently accepts."""

from layertrust.trust.store import TrustedIdentity, TrustSnapshot, TrustStore

__all__ = ["TrustedIdentity", "TrustSnapshot", "TrustStore"]
