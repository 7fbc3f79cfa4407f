"""Decide whether a pipeline may proceed past a compliance checkpoint.

:func:`evaluate` is a pure function of (findings, exemptions, evaluation date,
policy). It performs no I/O, so the same inputs always produce the same
:class:`GateDecision`, including the order of ``reasons``.

Exemptions only neutralize failing CAT I findings. CAT II failures are
counted against the threshold as-is, and CAT III never gates.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Iterable, Sequence

from ..domain.models import ExemptionEntry, Finding, GateDecision, Severity
from .gate_config import DEFAULT_GATE_CONFIG, GateConfig


def _as_day(now: date | datetime) -> date:
    if isinstance(now, datetime):
        return now.date()
    return now


def _unique(values: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(values))


def _failing(findings: Sequence[Finding], severity: Severity) -> list[Finding]:
    return [f for f in findings if f.severity is severity and f.failed]


def evaluate(
    findings: Sequence[Finding],
    exemptions: Sequence[ExemptionEntry],
    now: date | datetime,
    config: GateConfig = DEFAULT_GATE_CONFIG,
    *,
    warnings: Sequence[str] = (),
) -> GateDecision:
    """Classify findings, apply exemptions, and return the gate decision.

    ``warnings`` carries loader problems (for example an unreadable exemption
    file) into the decision. They are appended to ``reasons`` and kept in
    ``warnings``, and never relax the outcome.
    """

    day = _as_day(now)
    active = [entry for entry in exemptions if entry.active_on(day)]
    expired = [entry for entry in exemptions if not entry.active_on(day)]

    cat_i = _failing(findings, Severity.CAT_I)
    cat_ii = _failing(findings, Severity.CAT_II)

    exempted_ids = _unique(
        f.rule_id for f in cat_i if any(entry.covers(f.rule_id) for entry in active)
    )
    unexempted = [f for f in cat_i if f.rule_id not in exempted_ids]
    # One exemption neutralizes one failing result per rule id.
    repeated = _unique(
        rule_id
        for rule_id in exempted_ids
        if sum(1 for f in cat_i if f.rule_id == rule_id) > 1
    )

    effective_cat_i = len(cat_i) - len(exempted_ids)
    effective_cat_ii = len(cat_ii)

    reasons: list[str] = []
    cat_i_blocks = config.fail_on_cat_i and effective_cat_i > 0
    cat_ii_blocks = (
        config.fail_on_cat_ii and effective_cat_ii > config.cat_ii_threshold
    )

    if cat_i_blocks:
        failing_ids = _unique(f.rule_id for f in unexempted)
        reason = f"{effective_cat_i} CAT I finding(s) failed without a valid exemption"
        if failing_ids:
            reason += f": {', '.join(failing_ids)}"
        if repeated:
            reason += (
                f"; repeated failure(s) of exempted rule(s): {', '.join(repeated)}"
            )
        lapsed = [
            f"{rule_id} (expired {entry.expiry_date.isoformat()})"
            for rule_id in failing_ids
            for entry in expired
            if entry.covers(rule_id)
        ]
        if lapsed:
            reason += f"; expired exemption(s): {', '.join(lapsed)}"
        reasons.append(reason)

    if cat_ii_blocks:
        reasons.append(
            f"{effective_cat_ii} CAT II finding(s) failed, above the threshold "
            f"of {config.cat_ii_threshold}"
        )
    # Loader warnings come after the policy reasons.
    reasons.extend(warnings)

    return GateDecision(
        passed=not (cat_i_blocks or cat_ii_blocks),
        raw_cat_i=len(cat_i),
        raw_cat_ii=len(cat_ii),
        exempted_rule_ids=exempted_ids,
        effective_cat_i=effective_cat_i,
        effective_cat_ii=effective_cat_ii,
        reasons=tuple(reasons),
        warnings=tuple(warnings),
    )
