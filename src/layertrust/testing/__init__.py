"""layertrust testing utilities.

Modules:
    fixtures: Pytest fixtures (maintainer_key, certifier_key, trust_store,
              layer_store, chain_factory).
    assertions: assert_verified, assert_failed_with, assert_chain_order.
"""

from layertrust.testing.assertions import (
    assert_chain_order,
    assert_failed_with,
    assert_verified,
)

__all__ = [
    "assert_chain_order",
    "assert_failed_with",
    "assert_verified",
]
