"""Reason codes used in CLI error payloads and audit responses."""

from __future__ import annotations

from ..domain import errors

INVALID_INPUT = "invalid_input"
"""Arguments or environment did not describe a usable request."""

CATALOG_UNAVAILABLE = "catalog_unavailable"
"""The benchmark catalog could not be queried."""

NO_MATCHING_BENCHMARK = "no_matching_benchmark"
"""No catalog entry matched the target under any strategy."""

CACHE_CORRUPT = "cache_corrupt"
"""The pinned selection was unreadable and has been re-resolved."""

REPORT_PARSE_ERROR = "report_parse_error"
"""The scan findings could not be read; the gate refuses to pass."""

EXEMPTION_FILE_INVALID = "exemption_file_invalid"
"""The exemption policy was ignored; no exemptions applied."""

SCAN_ENGINE_ERROR = "scan_engine_error"
"""The scan engine failed outright; its findings are not evaluated."""

INTERNAL_ERROR = "internal_error"
"""An error outside the documented taxonomy."""

_ERROR_REASONS: dict[type[errors.StigPipeError], str] = {
    errors.CatalogUnavailable: CATALOG_UNAVAILABLE,
    errors.NoMatchingBenchmark: NO_MATCHING_BENCHMARK,
    errors.CacheCorrupt: CACHE_CORRUPT,
    errors.ReportParseError: REPORT_PARSE_ERROR,
    errors.ExemptionFileInvalid: EXEMPTION_FILE_INVALID,
    errors.ScanEngineError: SCAN_ENGINE_ERROR,
}


def reason_for(exc: BaseException) -> str:
    """Return the reason code for ``exc`` (most specific class wins)."""

    for cls in type(exc).__mro__:
        reason = _ERROR_REASONS.get(cls)
        if reason is not None:
            return reason
    return INTERNAL_ERROR
