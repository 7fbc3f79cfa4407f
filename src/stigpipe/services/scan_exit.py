"""Exit-code contract of the external scan engine (``oscap xccdf eval``).

The scan engine's codes describe the host, not the gate: ``2`` means rules
failed and the findings must still go through the gate. They are kept apart
from the gate CLI's own exit codes.
"""

from __future__ import annotations

from enum import Enum

from ..domain.errors import ScanEngineError


class ScanOutcome(Enum):
    COMPLIANT = 0
    RULES_FAILED = 2

    @property
    def label(self) -> str:
        return self.name.lower()


def classify_scan_exit(exit_code: int) -> ScanOutcome:
    """Map the scan engine's exit status to an outcome or raise."""

    try:
        return ScanOutcome(exit_code)
    except ValueError:
        raise ScanEngineError(exit_code) from None
