"""Severity policy for the compliance gate."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_bool, env_int

DEFAULT_FAIL_ON_CAT_I = True
"""CAT I failures block the pipeline unless exempted."""

DEFAULT_FAIL_ON_CAT_II = False
"""CAT II failures are informational unless explicitly enabled."""

DEFAULT_CAT_II_THRESHOLD = 10
"""Number of CAT II failures tolerated before the gate trips."""


@dataclass(frozen=True)
class GateConfig:
    """Policy knobs consulted by :func:`compliance_gate.evaluate`."""

    fail_on_cat_i: bool = DEFAULT_FAIL_ON_CAT_I
    fail_on_cat_ii: bool = DEFAULT_FAIL_ON_CAT_II
    cat_ii_threshold: int = DEFAULT_CAT_II_THRESHOLD

    @classmethod
    def from_env(cls) -> "GateConfig":
        """Return the policy using the configured environment variables."""

        return cls(
            fail_on_cat_i=env_bool("STIGPIPE_FAIL_ON_CAT_I", DEFAULT_FAIL_ON_CAT_I),
            fail_on_cat_ii=env_bool(
                "STIGPIPE_FAIL_ON_CAT_II", DEFAULT_FAIL_ON_CAT_II
            ),
            cat_ii_threshold=env_int(
                "STIGPIPE_CAT_II_THRESHOLD",
                DEFAULT_CAT_II_THRESHOLD,
                min_value=0,
            ),
        )


DEFAULT_GATE_CONFIG = GateConfig()
