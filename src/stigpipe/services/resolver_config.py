"""Run-scoped settings for benchmark resolution."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from .env import env_bool, env_int

STATE_DIR_ENV = "STIGPIPE_STATE_DIR"
RUN_ID_ENV = "STIGPIPE_RUN_ID"
ALLOW_DEGRADED_ENV = "STIGPIPE_ALLOW_DEGRADED_MATCH"
CATALOG_TIMEOUT_ENV = "STIGPIPE_CATALOG_TIMEOUT"

DEFAULT_STATE_DIR = Path("state")
"""Relative to the workspace the pipeline runs in."""

DEFAULT_CATALOG_TIMEOUT_SECONDS = 120


@dataclass(frozen=True)
class ResolverConfig:
    """Settings for where selections live and how permissive matching is."""

    state_dir: Path = DEFAULT_STATE_DIR
    run_id: str | None = None
    allow_degraded_match: bool = True
    catalog_timeout: int = DEFAULT_CATALOG_TIMEOUT_SECONDS

    @classmethod
    def from_env(cls) -> "ResolverConfig":
        """Create a config using the current environment."""

        state_dir = Path(os.getenv(STATE_DIR_ENV) or DEFAULT_STATE_DIR)
        run_id = (os.getenv(RUN_ID_ENV) or "").strip() or None
        return cls(
            state_dir=state_dir,
            run_id=run_id,
            allow_degraded_match=env_bool(ALLOW_DEGRADED_ENV, True),
            catalog_timeout=env_int(
                CATALOG_TIMEOUT_ENV,
                DEFAULT_CATALOG_TIMEOUT_SECONDS,
                min_value=1,
                max_value=3600,
            ),
        )
