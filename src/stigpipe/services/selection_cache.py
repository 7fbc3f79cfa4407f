"""Run-scoped persistence for the pinned benchmark selection."""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path

from ..domain.errors import CacheCorrupt
from ..domain.models import BenchmarkSelection
from . import schema_registry
from .atomic_io import write_json_atomic
from .resolver_config import ResolverConfig
from .schema_registry import SchemaValidationError

_LOG = logging.getLogger(__name__)

RECORD_SCHEMA = "selection_record_v1"
RECORD_FILENAME = "benchmark_selection.json"

_UNSAFE_RUN_ID = re.compile(r"[^A-Za-z0-9._-]")


def _safe_run_id(run_id: str) -> str:
    cleaned = _UNSAFE_RUN_ID.sub("_", run_id.strip())
    if not cleaned.strip("._"):
        raise ValueError("A non-empty run id is required for the selection cache.")
    return cleaned


class SelectionCache:
    """Single-writer record of the benchmark that governs one run.

    Only the resolver calls :meth:`store`; every other phase reads.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    @classmethod
    def for_run(cls, state_dir: Path, run_id: str) -> "SelectionCache":
        """Return the cache scoped to ``run_id`` under ``state_dir``."""

        return cls(Path(state_dir) / "runs" / _safe_run_id(run_id) / RECORD_FILENAME)

    @classmethod
    def from_config(cls, config: ResolverConfig) -> "SelectionCache":
        if not config.run_id:
            raise ValueError("A run id is required for the selection cache.")
        return cls.for_run(config.state_dir, config.run_id)

    def load(self) -> BenchmarkSelection | None:
        """Return the cached selection, or ``None`` when absent or unreadable."""

        try:
            return self._read()
        except CacheCorrupt as exc:
            _LOG.warning(
                "Ignoring unreadable benchmark selection %s; resolving again, "
                "which may pin a different benchmark for this run: %s",
                self.path,
                exc,
            )
            return None

    def _read(self) -> BenchmarkSelection | None:
        if not self.path.exists():
            return None
        try:
            record = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CacheCorrupt(str(exc)) from exc
        try:
            schema_registry.validate(RECORD_SCHEMA, record)
            return BenchmarkSelection.from_record(record)
        except (SchemaValidationError, ValueError) as exc:
            raise CacheCorrupt(str(exc)) from exc

    def store(self, selection: BenchmarkSelection) -> None:
        """Persist the selection with write-to-temp then rename."""

        record = selection.to_record()
        schema_registry.validate(RECORD_SCHEMA, record)
        write_json_atomic(self.path, record)
        _LOG.debug("Stored benchmark selection at %s", self.path)

    def clear(self) -> None:
        """Remove the persisted selection (operator reset, tests)."""

        if self.path.exists():
            self.path.unlink()
