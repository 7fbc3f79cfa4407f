"""End-to-end behaviour of the ``stigpipe-gate`` entry point."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from stigpipe.cli import gate
from stigpipe.services.decision_audit import GATE_EVALUATED, get_audit_events

AS_OF = "2026-10-19"


def _report(tmp_path: Path, *rows: tuple[str, str, str]) -> Path:
    path = tmp_path / "findings.json"
    path.write_text(
        json.dumps(
            [
                {"RuleId": rule_id, "Severity": severity, "Status": status}
                for rule_id, severity, status in rows
            ]
        ),
        encoding="utf-8",
    )
    return path


def _exemptions(tmp_path: Path, expiry: str, *rule_ids: str) -> Path:
    path = tmp_path / "exemptions.json"
    path.write_text(
        json.dumps(
            {
                "exemptions": {
                    "ruleIds": list(rule_ids),
                    "justification": "Vendor fix pending",
                    "approver": "ISSO",
                    "expiryDate": expiry,
                }
            }
        ),
        encoding="utf-8",
    )
    return path


def _errors(stderr: str) -> list[dict[str, object]]:
    return [json.loads(line) for line in stderr.splitlines() if line.startswith("{")]


def test_unexempted_cat_i_fails_after_phase(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = _report(tmp_path, ("V-1", "CAT I", "Fail"))

    code = gate.main(["--report-path", str(report), "--as-of", AS_OF])

    payload = json.loads(capsys.readouterr().out)
    assert code == 1
    assert payload["passed"] is False
    assert payload["phase"] == "after"
    assert payload["evaluatedOn"] == AS_OF
    assert payload["effectiveCatI"] == 1


def test_active_exemption_passes(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = _report(tmp_path, ("V-12345", "CAT I", "Fail"))
    exemptions = _exemptions(tmp_path, "2026-10-20", "V-12345")

    code = gate.main(
        [
            "--report-path",
            str(report),
            "--exemptions",
            str(exemptions),
            "--as-of",
            AS_OF,
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["exemptedRuleIds"] == ["V-12345"]


def test_exemptions_file_from_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    report = _report(tmp_path, ("V-12345", "CAT I", "Fail"))
    exemptions = _exemptions(tmp_path, "2026-10-20", "V-12345")
    monkeypatch.setenv("STIGPIPE_EXEMPTIONS_FILE", str(exemptions))

    assert gate.main(["--report-path", str(report), "--as-of", AS_OF]) == 0


def test_baseline_phase_is_informational(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = _report(tmp_path, ("V-1", "CAT I", "Fail"))

    code = gate.main(
        ["--report-path", str(report), "--phase", "baseline", "--as-of", AS_OF]
    )

    payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert payload["passed"] is False
    assert payload["phase"] == "baseline"


def test_invalid_exemption_file_fails_closed_with_warning(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = _report(tmp_path, ("V-1", "CAT I", "Fail"))
    exemptions = tmp_path / "exemptions.json"
    exemptions.write_text('{"exemptions": "everything"}', encoding="utf-8")

    code = gate.main(
        [
            "--report-path",
            str(report),
            "--exemptions",
            str(exemptions),
            "--as-of",
            AS_OF,
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert code == 1
    assert payload["exemptedRuleIds"] == []
    assert payload["warnings"][0].startswith("exemption_file_invalid:")
    assert payload["warnings"][0].endswith("no exemptions applied")
    assert payload["reasons"] == [
        "1 CAT I finding(s) failed without a valid exemption: V-1",
        payload["warnings"][0],
    ]


def test_unreadable_report_is_an_error_not_a_pass(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = tmp_path / "findings.json"
    report.write_text("[{truncated", encoding="utf-8")

    code = gate.main(["--report-path", str(report), "--phase", "baseline"])

    captured = capsys.readouterr()
    assert code == 1
    assert captured.out == ""
    (error,) = _errors(captured.err)
    assert error["status"] == "error"
    assert error["phase"] == "gate"
    assert error["reason"] == "report_parse_error"


def test_cat_ii_flags_override_environment(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    monkeypatch.setenv("STIGPIPE_CAT_II_THRESHOLD", "50")
    report = _report(
        tmp_path, ("V-1", "CAT II", "Fail"), ("V-2", "CAT II", "Fail")
    )

    code = gate.main(
        [
            "--report-path",
            str(report),
            "--fail-on-cat-ii",
            "--cat-ii-threshold",
            "1",
            "--as-of",
            AS_OF,
        ]
    )

    payload = json.loads(capsys.readouterr().out)
    assert code == 1
    assert payload["reasons"] == [
        "2 CAT II finding(s) failed, above the threshold of 1"
    ]


def test_cat_i_gating_can_be_switched_off(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = _report(tmp_path, ("V-1", "CAT I", "Fail"))

    assert gate.main(["--report-path", str(report), "--no-fail-on-cat-i"]) == 0


def test_negative_threshold_is_invalid_input(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = _report(tmp_path)

    code = gate.main(["--report-path", str(report), "--cat-ii-threshold", "-1"])

    (error,) = _errors(capsys.readouterr().err)
    assert code == 1
    assert error["reason"] == "invalid_input"


def test_decision_is_written_and_audited(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = _report(tmp_path, ("V-1", "CAT III", "Fail"))
    decision_path = tmp_path / "out" / "gate_decision.json"

    code = gate.main(
        [
            "--report-path",
            str(report),
            "--decision-path",
            str(decision_path),
            "--run-id",
            "run-9",
            "--as-of",
            AS_OF,
        ]
    )

    stdout_payload = json.loads(capsys.readouterr().out)
    assert code == 0
    assert json.loads(decision_path.read_text(encoding="utf-8")) == stdout_payload
    (event,) = get_audit_events()
    assert event["event"] == GATE_EVALUATED
    assert event["run_id"] == "run-9"
    assert event["phase"] == "after"


@pytest.mark.parametrize(
    "argv",
    [
        [],
        ["--report-path", "findings.json", "--as-of", "not-a-date"],
        ["--report-path", "findings.json", "--cat-ii-threshold", "ten"],
        ["--report-path", "findings.json", "--phase", "final"],
    ],
)
def test_bad_arguments_exit_one_not_two(
    argv: list[str], capsys: pytest.CaptureFixture[str]
) -> None:
    code = gate.main(argv)

    (error,) = _errors(capsys.readouterr().err)
    assert code == 1
    assert error["phase"] == "gate"
    assert error["reason"] == "invalid_input"


@pytest.mark.parametrize(
    ("exit_code", "outcome"), [(0, "compliant"), (2, "rules_failed")]
)
def test_scan_exit_code_is_recorded(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], exit_code: int, outcome: str
) -> None:
    report = _report(tmp_path, ("V-1", "CAT II", "Fail"))

    code = gate.main(
        ["--report-path", str(report), "--scan-exit-code", str(exit_code)]
    )

    assert code == 0
    assert json.loads(capsys.readouterr().out)["scanOutcome"] == outcome


def test_scan_engine_failure_is_not_gated(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    report = _report(tmp_path)

    code = gate.main(
        ["--report-path", str(report), "--scan-exit-code", "1", "--phase", "baseline"]
    )

    captured = capsys.readouterr()
    (error,) = _errors(captured.err)
    assert code == 1
    assert captured.out == ""
    assert error["reason"] == "scan_engine_error"
