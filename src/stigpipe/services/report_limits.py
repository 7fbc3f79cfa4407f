"""Configurable limits for reading scan findings artifacts."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_int

DEFAULT_MAX_REPORT_BYTES = 64 * 1024 * 1024
"""ARF files for a full STIG run can be tens of megabytes."""

DEFAULT_MAX_FINDINGS = 50_000
"""Upper bound on rule results accepted from one report."""


@dataclass(frozen=True)
class ReportLimitConfig:
    """Container describing every configurable report limit."""

    max_report_bytes: int
    max_findings: int

    @classmethod
    def from_env(cls) -> "ReportLimitConfig":
        return cls(
            max_report_bytes=env_int(
                "STIGPIPE_MAX_REPORT_BYTES",
                DEFAULT_MAX_REPORT_BYTES,
                min_value=1,
            ),
            max_findings=env_int(
                "STIGPIPE_MAX_FINDINGS",
                DEFAULT_MAX_FINDINGS,
                min_value=1,
            ),
        )


DEFAULT_REPORT_LIMITS = ReportLimitConfig(DEFAULT_MAX_REPORT_BYTES, DEFAULT_MAX_FINDINGS)
