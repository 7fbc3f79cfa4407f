"""Audit events for benchmark selections and gate decisions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import MutableSequence, Protocol

from ..domain.models import BenchmarkSelection, GateDecision
from .audit_log import append_audit_event

_LOG = logging.getLogger(__name__)
_EVENTS: MutableSequence[dict[str, object]] = []

BENCHMARK_SELECTED = "BENCHMARK_SELECTED"
BENCHMARK_CACHE_HIT = "BENCHMARK_CACHE_HIT"
GATE_EVALUATED = "GATE_EVALUATED"


class DecisionAuditSink(Protocol):
    """Protocol describing a decision audit sink."""

    def emit(self, entry: dict[str, object]) -> None:  # pragma: no cover - trivial
        ...


@dataclass
class InMemoryDecisionAuditSink:
    """Simple sink used for tests."""

    events: MutableSequence[dict[str, object]]

    def emit(self, entry: dict[str, object]) -> None:
        self.events.append(dict(entry))


class ProductionDecisionAuditSink:
    """Sink that writes events to the persistent audit log."""

    __slots__ = ()

    def emit(self, entry: dict[str, object]) -> None:
        append_audit_event(entry)


_IN_MEMORY_SINK = InMemoryDecisionAuditSink(events=_EVENTS)
_DEFAULT_PRODUCTION_SINK: DecisionAuditSink = ProductionDecisionAuditSink()
_PRODUCTION_SINK: DecisionAuditSink | None = _DEFAULT_PRODUCTION_SINK


def set_production_audit_sink(sink: DecisionAuditSink | None) -> None:
    """Override the production audit sink (for testing)."""

    global _PRODUCTION_SINK
    _PRODUCTION_SINK = sink


def reset_production_audit_sink() -> None:
    set_production_audit_sink(_DEFAULT_PRODUCTION_SINK)


def _emit(entry: dict[str, object]) -> None:
    _IN_MEMORY_SINK.emit(entry)
    if _PRODUCTION_SINK is not None:
        _PRODUCTION_SINK.emit(entry)


def record_selection(
    run_id: str | None, selection: BenchmarkSelection, *, cached: bool
) -> None:
    """Record which benchmark governs ``run_id`` and how it was obtained."""

    entry: dict[str, object] = {
        "event": BENCHMARK_CACHE_HIT if cached else BENCHMARK_SELECTED,
        "run_id": run_id,
        "selection": selection.to_record(),
    }
    if selection.degraded:
        _LOG.warning(
            "Run %s is governed by a degraded benchmark match: %s",
            run_id,
            selection.benchmark_id,
        )
    _emit(entry)


def record_gate_decision(
    run_id: str | None,
    phase: str,
    decision: GateDecision,
    evaluated_on: date,
) -> None:
    """Record the gate outcome for one scan phase."""

    _emit(
        {
            "event": GATE_EVALUATED,
            "run_id": run_id,
            "phase": phase,
            "evaluated_on": evaluated_on.isoformat(),
            "decision": decision.to_mapping(),
        }
    )


def get_audit_events() -> list[dict[str, object]]:
    """Return a snapshot of recorded events."""

    return list(_EVENTS)


def clear_audit_events() -> None:
    """Clear the recorded events (testing aid)."""

    _EVENTS.clear()
