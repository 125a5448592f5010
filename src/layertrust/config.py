"""Verifier configuration.

Environment Variables:
    LAYERTRUST_DEPTH_LIMIT: Maximum layers walked per chain, leaf included (default 64)
    LAYERTRUST_VERIFY_TIMEOUT: Seconds before a verification is abandoned (unset = no timeout)
    LAYERTRUST_ENFORCE_NAME_BINDINGS: "true"/"false"; check trust-to-name bindings (default true)
"""

from __future__ import annotations

import os
from collections.abc import Mapping

from pydantic import Field

from layertrust.models.base import LayerTrustBaseModel
from layertrust.models.constants import DEFAULT_DEPTH_LIMIT, MAX_DEPTH_LIMIT

ENV_DEPTH_LIMIT = "LAYERTRUST_DEPTH_LIMIT"
ENV_VERIFY_TIMEOUT = "LAYERTRUST_VERIFY_TIMEOUT"
ENV_ENFORCE_NAME_BINDINGS = "LAYERTRUST_ENFORCE_NAME_BINDINGS"

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})
_FALSE_VALUES = frozenset({"false", "0", "no", "off"})


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    raise ValueError(f"{name} must be a boolean (true/false), got {raw!r}")


class VerifierSettings(LayerTrustBaseModel):
    """Tunable limits for chain verification."""

    depth_limit: int = Field(default=DEFAULT_DEPTH_LIMIT, ge=1, le=MAX_DEPTH_LIMIT)
    timeout_seconds: float | None = Field(default=None, gt=0)
    enforce_name_bindings: bool = True

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> VerifierSettings:
        """Read settings from the environment; unset variables keep defaults.

        Raises:
            ValueError: A variable is set to an unparseable or out-of-range value.
        """
        env = os.environ if environ is None else environ
        values: dict[str, object] = {}

        raw_depth = env.get(ENV_DEPTH_LIMIT)
        if raw_depth:
            try:
                values["depth_limit"] = int(raw_depth)
            except ValueError as e:
                raise ValueError(f"{ENV_DEPTH_LIMIT} must be an integer, got {raw_depth!r}") from e

        raw_timeout = env.get(ENV_VERIFY_TIMEOUT)
        if raw_timeout:
            try:
                values["timeout_seconds"] = float(raw_timeout)
            except ValueError as e:
                raise ValueError(
                    f"{ENV_VERIFY_TIMEOUT} must be a number of seconds, got {raw_timeout!r}"
                ) from e

        raw_bindings = env.get(ENV_ENFORCE_NAME_BINDINGS)
        if raw_bindings:
            values["enforce_name_bindings"] = _parse_bool(ENV_ENFORCE_NAME_BINDINGS, raw_bindings)

        return cls.model_validate(values)
