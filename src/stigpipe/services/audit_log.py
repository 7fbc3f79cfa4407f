"""JSONL audit trail for resolver and gate decisions.

One line per event, stamped with ``recorded_at``. The file rotates to a single
``.1`` backup once it reaches ``max_bytes``. Audit failures are logged (at most
once per ``warning_interval`` for each failing step) and never interrupt a
resolution or a gate decision.
"""

from __future__ import annotations

import json
import logging
import os
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

from .env import env_int
from .resolver_config import DEFAULT_STATE_DIR, STATE_DIR_ENV

_LOG = logging.getLogger(__name__)

AUDIT_DIR_ENV = "STIGPIPE_AUDIT_DIR"
AUDIT_MAX_BYTES_ENV = "STIGPIPE_AUDIT_MAX_BYTES"
AUDIT_WARN_INTERVAL_ENV = "STIGPIPE_AUDIT_WARN_INTERVAL"
AUDIT_FILENAME = "audit.jsonl"

DEFAULT_MAX_AUDIT_BYTES = 1_000_000
DEFAULT_WARNING_INTERVAL_SECONDS = 60


@dataclass(frozen=True)
class AuditConfig:
    """Where decision events go and how the file is bounded.

    ``max_bytes=None`` disables rotation; ``warning_interval=0`` logs every
    audit failure.
    """

    audit_file: Path
    max_bytes: int | None = DEFAULT_MAX_AUDIT_BYTES
    warning_interval: float = DEFAULT_WARNING_INTERVAL_SECONDS

    @classmethod
    def from_env(cls) -> "AuditConfig":
        """Audit file defaults to ``<state dir>/audit.jsonl``."""

        state_dir = os.getenv(STATE_DIR_ENV) or str(DEFAULT_STATE_DIR)
        base_dir = Path(os.getenv(AUDIT_DIR_ENV) or state_dir)
        # Zero turns rotation off.
        max_bytes = env_int(AUDIT_MAX_BYTES_ENV, DEFAULT_MAX_AUDIT_BYTES)
        return cls(
            audit_file=base_dir / AUDIT_FILENAME,
            max_bytes=max_bytes if max_bytes > 0 else None,
            warning_interval=env_int(
                AUDIT_WARN_INTERVAL_ENV, DEFAULT_WARNING_INTERVAL_SECONDS
            ),
        )


_ACTIVE_CONFIG: AuditConfig | None = None
_LAST_WARN: dict[str, float] = {}


def set_audit_config(config: AuditConfig | None) -> None:
    """Pin the audit config; ``None`` rereads the environment on next use.

    Rate-limit state is tied to the config and starts over with it.
    """

    global _ACTIVE_CONFIG
    _ACTIVE_CONFIG = config
    _LAST_WARN.clear()


def reset_audit_config() -> None:
    set_audit_config(None)


def _get_audit_config() -> AuditConfig:
    global _ACTIVE_CONFIG
    if _ACTIVE_CONFIG is None:
        _ACTIVE_CONFIG = AuditConfig.from_env()
    return _ACTIVE_CONFIG


def _warn(config: AuditConfig, step: str, message: str, *args: object) -> None:
    if config.warning_interval > 0:
        now = time.monotonic()
        last = _LAST_WARN.get(step)
        if last is not None and now - last < config.warning_interval:
            return
        _LAST_WARN[step] = now
    _LOG.warning(message, *args)


def append_audit_event(event: dict[str, object]) -> None:
    """Append ``event`` as one JSON line; failures are logged, never raised."""

    config = _get_audit_config()
    try:
        config.audit_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        _warn(
            config,
            "mkdir",
            "Unable to create audit directory %s: %s",
            config.audit_file.parent,
            exc,
        )
        return

    _rotate_if_needed(config)

    record = {"recorded_at": datetime.now(timezone.utc).isoformat(), **event}
    line = json.dumps(record, ensure_ascii=False, sort_keys=True)
    try:
        with config.audit_file.open("a", encoding="utf-8") as fh:
            fh.write(line)
            fh.write("\n")
    except OSError as exc:
        _warn(
            config,
            "write",
            "Unable to write audit event to %s: %s",
            config.audit_file,
            exc,
        )


def _rotate_if_needed(config: AuditConfig) -> None:
    path = config.audit_file
    if config.max_bytes is None or not path.exists():
        return

    try:
        if path.stat().st_size < config.max_bytes:
            return
        backup = path.with_name(path.name + ".1")
        if backup.exists():
            backup.unlink()
        path.rename(backup)
    except OSError as exc:
        _warn(config, "rotate", "Unable to rotate audit log %s: %s", path, exc)
