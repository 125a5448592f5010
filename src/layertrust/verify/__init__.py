"""Verifier: integrity, signature and chain-of-trust checks.

Example:
    >>> from layertrust.verify import Verifier
    >>> result = Verifier(trust_store, store=layer_store).verify(layer)
    >>> result.verified
    True
"""

from layertrust.verify.result import VerificationFailure, VerificationResult
from layertrust.verify.states import (
    VALID_TRANSITIONS,
    VerificationState,
    advance,
    can_transition,
)
from layertrust.verify.verifier import Verifier, verify

__all__ = [
    "VALID_TRANSITIONS",
    "VerificationFailure",
    "VerificationResult",
    "VerificationState",
    "Verifier",
    "advance",
    "can_transition",
    "verify",
]
