"""Verification state machine.

Each layer in a walk moves ``Unverified -> HashChecked -> SignatureChecked``;
from there the walk either moves on to the parent (``ChainWalking``, whose
next step is the parent's ``HashChecked``) or ends. ``Verified`` and
``Failed`` are terminal: there is no retry inside one verification call.

Example:
    >>> can_transition(VerificationState.UNVERIFIED, VerificationState.HASH_CHECKED)
    True
    >>> can_transition(VerificationState.VERIFIED, VerificationState.CHAIN_WALKING)
    False
"""

from enum import Enum

from layertrust.errors import InvalidStateTransitionError


class VerificationState(str, Enum):
    UNVERIFIED = "unverified"
    HASH_CHECKED = "hash_checked"
    SIGNATURE_CHECKED = "signature_checked"
    CHAIN_WALKING = "chain_walking"
    VERIFIED = "verified"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (VerificationState.VERIFIED, VerificationState.FAILED)


VALID_TRANSITIONS: dict[VerificationState, set[VerificationState]] = {
    VerificationState.UNVERIFIED: {VerificationState.HASH_CHECKED, VerificationState.FAILED},
    VerificationState.HASH_CHECKED: {
        VerificationState.SIGNATURE_CHECKED,
        VerificationState.FAILED,
    },
    VerificationState.SIGNATURE_CHECKED: {
        VerificationState.CHAIN_WALKING,
        VerificationState.VERIFIED,
        VerificationState.FAILED,
    },
    VerificationState.CHAIN_WALKING: {VerificationState.HASH_CHECKED, VerificationState.FAILED},
    VerificationState.VERIFIED: set(),  # Terminal state
    VerificationState.FAILED: set(),  # Terminal state
}


def can_transition(from_state: VerificationState, to_state: VerificationState) -> bool:
    return to_state in VALID_TRANSITIONS.get(from_state, set())


def advance(from_state: VerificationState, to_state: VerificationState) -> VerificationState:
    """Return ``to_state`` if the move is allowed.

    Raises:
        InvalidStateTransitionError: If the transition is not valid
    """
    if not can_transition(from_state, to_state):
        raise InvalidStateTransitionError(from_state=from_state.value, to_state=to_state.value)
    return to_state
