"""Error taxonomy shared by the resolver, cache, and gate."""

from __future__ import annotations


class StigPipeError(Exception):
    """Base class for every error raised by stigpipe services."""


class ResolutionError(StigPipeError):
    """Resolution could not pin a benchmark; remediation must not proceed."""


class CatalogUnavailable(ResolutionError):
    """The benchmark catalog could not be queried."""


class NoMatchingBenchmark(ResolutionError):
    """No match strategy produced a candidate for the target."""


class CacheCorrupt(StigPipeError):
    """The persisted selection could not be read; treated as a cache miss."""


class ReportParseError(StigPipeError):
    """Scan findings could not be read. Never interpreted as a pass."""


class ExemptionFileInvalid(StigPipeError):
    """The exemption policy could not be loaded; an empty policy applies."""


class ScanEngineError(StigPipeError):
    """The scan engine itself failed; its report cannot be trusted."""

    def __init__(self, exit_code: int) -> None:
        super().__init__(f"Scan engine exited with unexpected status {exit_code}.")
        self.exit_code = exit_code
