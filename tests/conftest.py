"""Shared fixtures: keep audit output and env-driven policy out of the tests' way."""

from __future__ import annotations

from pathlib import Path

import pytest

from stigpipe.services.audit_log import (
    AuditConfig,
    reset_audit_config,
    set_audit_config,
)
from stigpipe.services.decision_audit import clear_audit_events

STIGPIPE_ENV = (
    "STIGPIPE_STATE_DIR",
    "STIGPIPE_RUN_ID",
    "STIGPIPE_ALLOW_DEGRADED_MATCH",
    "STIGPIPE_CATALOG_TIMEOUT",
    "STIGPIPE_FAIL_ON_CAT_I",
    "STIGPIPE_FAIL_ON_CAT_II",
    "STIGPIPE_CAT_II_THRESHOLD",
    "STIGPIPE_EXEMPTIONS_FILE",
    "STIGPIPE_MAX_REPORT_BYTES",
    "STIGPIPE_MAX_FINDINGS",
    "STIGPIPE_AUDIT_DIR",
    "STIGPIPE_AUDIT_MAX_BYTES",
    "STIGPIPE_AUDIT_WARN_INTERVAL",
)


@pytest.fixture(autouse=True)
def isolated_environment(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Route audit events into tmp_path and clear inherited STIGPIPE_* settings."""

    for name in STIGPIPE_ENV:
        monkeypatch.delenv(name, raising=False)
    set_audit_config(
        AuditConfig(audit_file=tmp_path / "audit" / "audit.jsonl", max_bytes=None)
    )
    clear_audit_events()
    yield
    clear_audit_events()
    reset_audit_config()
