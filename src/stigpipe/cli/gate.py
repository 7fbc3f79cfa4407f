"""Compliance gate entry point, invoked by the driver after each scan phase.

Exit codes: 0 when the gate passes (or for the informational baseline phase),
1 when it fails or its input cannot be read. These are unrelated to the scan
engine's own exit codes.
"""

from __future__ import annotations

import argparse
import logging
import os
from datetime import date
from pathlib import Path
from typing import Sequence

from ..domain.errors import ExemptionFileInvalid, ReportParseError, ScanEngineError
from ..domain.models import GateDecision
from ..services import schema_registry
from ..services.atomic_io import write_json_atomic
from ..services.compliance_gate import evaluate
from ..services.decision_audit import record_gate_decision
from ..services.exemption_policy import load_exemptions
from ..services.findings_report import load_findings
from ..services.gate_config import GateConfig
from ..services.resolver_config import RUN_ID_ENV
from ..services.scan_exit import classify_scan_exit
from . import reason_codes
from .common import (
    ArgumentParser,
    UsageError,
    configure_logging,
    write_error,
    write_json,
)

_LOG = logging.getLogger(__name__)

PHASE = "gate"
BASELINE = "baseline"
AFTER = "after"
EXEMPTIONS_ENV = "STIGPIPE_EXEMPTIONS_FILE"
DECISION_SCHEMA = "gate_decision_v1"


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="stigpipe-gate",
        description="Evaluate scan findings against the severity and exemption policy.",
    )
    parser.add_argument(
        "--report-path",
        type=Path,
        required=True,
        help="Findings JSON array or XCCDF/ARF results from the scan phase.",
    )
    parser.add_argument(
        "--fail-on-cat-i",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fail when unexempted CAT I findings remain (default: on).",
    )
    parser.add_argument(
        "--fail-on-cat-ii",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Fail when CAT II findings exceed the threshold (default: off).",
    )
    parser.add_argument(
        "--cat-ii-threshold",
        type=int,
        default=None,
        help="CAT II failures tolerated before the gate trips (default: 10).",
    )
    parser.add_argument(
        "--exemptions",
        type=Path,
        default=os.getenv(EXEMPTIONS_ENV) or None,
        help="Exemption policy JSON.",
    )
    parser.add_argument(
        "--as-of",
        type=date.fromisoformat,
        default=None,
        help="Evaluate exemption expiry as of this date (YYYY-MM-DD).",
    )
    parser.add_argument(
        "--phase",
        choices=[BASELINE, AFTER],
        default=AFTER,
        help="Baseline decisions are informational and never fail the run.",
    )
    parser.add_argument(
        "--decision-path",
        type=Path,
        default=None,
        help="Also write the decision JSON to this file.",
    )
    parser.add_argument(
        "--scan-exit-code",
        type=int,
        default=None,
        help="Exit status of the scan engine run that produced the report.",
    )
    parser.add_argument("--run-id", default=os.getenv(RUN_ID_ENV))
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def config_from_args(args: argparse.Namespace) -> GateConfig:
    """Overlay explicit CLI flags on the environment policy."""

    base = GateConfig.from_env()
    threshold = base.cat_ii_threshold
    if args.cat_ii_threshold is not None:
        threshold = args.cat_ii_threshold
    return GateConfig(
        fail_on_cat_i=base.fail_on_cat_i
        if args.fail_on_cat_i is None
        else args.fail_on_cat_i,
        fail_on_cat_ii=base.fail_on_cat_ii
        if args.fail_on_cat_ii is None
        else args.fail_on_cat_ii,
        cat_ii_threshold=threshold,
    )


def _log_decision(decision: GateDecision, phase: str) -> None:
    verdict = "PASSED" if decision.passed else "FAILED"
    _LOG.info(
        "Gate %s (%s): CAT I %d raw / %d effective, CAT II %d",
        verdict,
        phase,
        decision.raw_cat_i,
        decision.effective_cat_i,
        decision.effective_cat_ii,
    )
    if decision.exempted_rule_ids:
        _LOG.info("Exemptions applied: %s", ", ".join(decision.exempted_rule_ids))
    for reason in decision.reasons:
        if reason in decision.warnings:
            _LOG.warning("%s", reason)
        else:
            _LOG.error("%s", reason)


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        write_error(PHASE, reason_codes.INVALID_INPUT, str(exc))
        return 1
    configure_logging(args.verbose)

    if args.cat_ii_threshold is not None and args.cat_ii_threshold < 0:
        write_error(PHASE, reason_codes.INVALID_INPUT, "--cat-ii-threshold must be >= 0.")
        return 1
    config = config_from_args(args)

    scan_outcome = None
    if args.scan_exit_code is not None:
        try:
            scan_outcome = classify_scan_exit(args.scan_exit_code)
            _LOG.info("Scan engine outcome: %s", scan_outcome.label)
        except ScanEngineError as exc:
            write_error(PHASE, reason_codes.reason_for(exc), str(exc))
            return 1

    try:
        findings = load_findings(args.report_path)
    except ReportParseError as exc:
        write_error(PHASE, reason_codes.reason_for(exc), str(exc))
        return 1

    warnings: list[str] = []
    try:
        exemptions = load_exemptions(args.exemptions)
    except ExemptionFileInvalid as exc:
        _LOG.warning("Ignoring exemption policy: %s", exc)
        warnings.append(
            f"{reason_codes.EXEMPTION_FILE_INVALID}: {exc}; no exemptions applied"
        )
        exemptions = ()

    evaluated_on = args.as_of or date.today()
    decision = evaluate(findings, exemptions, evaluated_on, config, warnings=warnings)
    record_gate_decision(args.run_id, args.phase, decision, evaluated_on)
    _log_decision(decision, args.phase)

    payload = decision.to_mapping()
    payload["phase"] = args.phase
    payload["evaluatedOn"] = evaluated_on.isoformat()
    if scan_outcome is not None:
        payload["scanOutcome"] = scan_outcome.label
    schema_registry.validate(DECISION_SCHEMA, payload)
    if args.decision_path is not None:
        write_json_atomic(args.decision_path, payload)
    write_json(payload)

    if args.phase == BASELINE:
        return 0
    return 0 if decision.passed else 1


if __name__ == "__main__":
    raise SystemExit(main())
