"""Pin the benchmark that governs a pipeline run.

Resolution invariants:
1. Only ``Benchmark`` releases are ever selected; drafts never auto-win.
2. The first strategy in :data:`MATCH_STRATEGIES` with a non-empty result set
   decides the candidates; later strategies are not consulted.
3. Candidates are ordered by numeric benchmark version, highest first, with
   ties kept in catalog order.
4. Once a run has a cached selection the catalog is not queried again, so the
   baseline and after-remediation scans evaluate the same benchmark.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Sequence

from ..domain.errors import NoMatchingBenchmark
from ..domain.models import (
    BenchmarkDescriptor,
    BenchmarkSelection,
    MatchStrategy,
    TargetDescriptor,
)
from .catalog import BenchmarkCatalog
from .decision_audit import record_selection
from .match_strategies import MATCH_STRATEGIES
from .resolver_config import ResolverConfig
from .selection_cache import SelectionCache

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchResult:
    """The winning catalog entry and the strategy that found it."""

    descriptor: BenchmarkDescriptor
    strategy: MatchStrategy
    candidates: int

    @property
    def degraded(self) -> bool:
        return self.strategy.degraded


def _rank(candidates: Sequence[BenchmarkDescriptor]) -> BenchmarkDescriptor:
    # sorted() stays stable with reverse=True, so equal versions keep catalog order.
    return sorted(candidates, key=lambda entry: entry.version_key, reverse=True)[0]


def select_benchmark(
    target: TargetDescriptor,
    entries: Sequence[BenchmarkDescriptor],
    *,
    allow_degraded: bool = True,
) -> MatchResult:
    """Choose a benchmark from a catalog snapshot without side effects."""

    selectable = [entry for entry in entries if entry.selectable]
    for strategy, predicate in MATCH_STRATEGIES:
        if strategy.degraded and not allow_degraded:
            continue
        candidates = [entry for entry in selectable if predicate(target, entry)]
        if candidates:
            return MatchResult(
                descriptor=_rank(candidates),
                strategy=strategy,
                candidates=len(candidates),
            )

    raise NoMatchingBenchmark(
        f"No benchmark in the catalog ({len(selectable)} selectable of "
        f"{len(entries)}) matches {target.os_family} {target.os_version_major}"
        + (f" role {target.role}" if target.role else "")
        + ("" if allow_degraded else " (degraded matches disabled)")
        + "."
    )


def pinned_selection(
    cache: SelectionCache, config: ResolverConfig
) -> BenchmarkSelection | None:
    """Return the selection already pinned for the run, recording the reuse."""

    cached = cache.load()
    if cached is None:
        return None
    _LOG.info(
        "Reusing pinned benchmark %s (version %s) for run %s",
        cached.benchmark_id,
        cached.benchmark_version,
        config.run_id,
    )
    record_selection(config.run_id, cached, cached=True)
    return cached


def resolve(
    target: TargetDescriptor,
    catalog: BenchmarkCatalog,
    cache: SelectionCache,
    *,
    config: ResolverConfig | None = None,
    now: datetime | None = None,
) -> BenchmarkSelection:
    """Return the run's pinned selection, resolving and storing it if needed.

    Raises:
        CatalogUnavailable: the catalog query failed.
        NoMatchingBenchmark: no strategy matched a selectable entry.
    """

    config = config or ResolverConfig.from_env()
    cached = pinned_selection(cache, config)
    if cached is not None:
        return cached

    entries = catalog.entries()
    result = select_benchmark(
        target, entries, allow_degraded=config.allow_degraded_match
    )
    if result.degraded:
        _LOG.warning(
            "Degraded benchmark match for %s %s: %s ignores the target version",
            target.os_family,
            target.os_version_major,
            result.descriptor.id,
        )
    else:
        _LOG.info(
            "Selected benchmark %s via %s (%d candidates)",
            result.descriptor.id,
            result.strategy.value,
            result.candidates,
        )

    selection = BenchmarkSelection.from_descriptor(
        result.descriptor,
        result.strategy,
        selected_at=now or datetime.now(timezone.utc),
    )
    cache.store(selection)
    record_selection(config.run_id, selection, cached=False)
    return selection
