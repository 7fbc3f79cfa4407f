"""Read scan findings artifacts into :class:`Finding` records.

Two layouts are accepted:

* the findings JSON array (``RuleId``/``Severity``/``Status``/``Title``), and
* XCCDF or ARF results as written by ``oscap xccdf eval --results``.

Anything that cannot be read completely raises :class:`ReportParseError`.
Truncating or skipping input could hide a failing rule, so there is no
partial result.
"""

from __future__ import annotations

import json
import logging
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any, Sequence

from defusedxml.common import DefusedXmlException
from defusedxml.ElementTree import fromstring as defused_fromstring

from ..domain.errors import ReportParseError
from ..domain.models import Finding, FindingStatus, Severity
from . import schema_registry
from .report_limits import ReportLimitConfig
from .schema_registry import SchemaValidationError

_LOG = logging.getLogger(__name__)

FINDINGS_SCHEMA = "scan_findings_v1"

XCCDF_SEVERITY = {
    "high": Severity.CAT_I,
    "medium": Severity.CAT_II,
    "low": Severity.CAT_III,
}
"""XCCDF severities; ``unknown`` and ``info`` fall back to CAT III."""

XCCDF_STATUS = {
    "pass": FindingStatus.PASS,
    "fixed": FindingStatus.PASS,
    "fail": FindingStatus.FAIL,
    "error": FindingStatus.FAIL,
}
"""XCCDF results that count; every other result is reported as not tested."""


def _local_name(tag: Any) -> str:
    if not isinstance(tag, str):
        return ""
    return tag.rsplit("}", 1)[-1]


def load_findings(path: Path, limits: ReportLimitConfig | None = None) -> list[Finding]:
    """Read the report at ``path`` and return its findings in report order."""

    limits = limits or ReportLimitConfig.from_env()
    path = Path(path)
    try:
        size = path.stat().st_size
        if size > limits.max_report_bytes:
            raise ReportParseError(
                f"Report {path} is {size} bytes; the limit is "
                f"{limits.max_report_bytes}."
            )
        raw = path.read_bytes()
    except OSError as exc:
        raise ReportParseError(f"Report {path} could not be read: {exc}") from exc

    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise ReportParseError(f"Report {path} is not valid UTF-8.") from exc

    if text.lstrip().startswith("<"):
        findings = parse_xccdf_results(text)
    else:
        findings = parse_findings_json(text)

    if len(findings) > limits.max_findings:
        raise ReportParseError(
            f"Report {path} holds {len(findings)} findings; the limit is "
            f"{limits.max_findings}."
        )
    _LOG.debug("Read %d findings from %s", len(findings), path)
    return findings


def parse_findings_json(text: str) -> list[Finding]:
    """Parse the findings JSON array layout."""

    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ReportParseError(f"Findings report is not valid JSON: {exc}") from exc
    try:
        schema_registry.validate(FINDINGS_SCHEMA, document)
    except SchemaValidationError as exc:
        raise ReportParseError(
            f"Findings report failed validation: {exc.message}"
        ) from exc
    return findings_from_rows(document)


def findings_from_rows(rows: Sequence[dict[str, Any]]) -> list[Finding]:
    return [
        Finding(
            rule_id=row["RuleId"],
            severity=Severity(row["Severity"]),
            status=FindingStatus(row["Status"]),
            title=row.get("Title", ""),
        )
        for row in rows
    ]


def parse_xccdf_results(text: str) -> list[Finding]:
    """Parse ``rule-result`` elements from XCCDF or ARF results."""

    try:
        root = defused_fromstring(text, forbid_dtd=True)
    except (DefusedXmlException, ET.ParseError) as exc:
        raise ReportParseError(f"Results XML is malformed or unsafe: {exc}") from exc

    findings: list[Finding] = []
    for element in root.iter():
        if _local_name(element.tag) != "rule-result":
            continue
        findings.append(_finding_from_rule_result(element))

    if not findings:
        raise ReportParseError("Results XML contains no rule results.")
    return findings


def _finding_from_rule_result(element: ET.Element) -> Finding:
    idref = element.get("idref")
    if not idref:
        raise ReportParseError("A rule-result element has no idref.")

    result_text = ""
    rule_id = idref
    for child in element:
        name = _local_name(child.tag)
        text = (child.text or "").strip()
        if name == "result":
            result_text = text.lower()
        elif name == "ident" and text.startswith("V-"):
            rule_id = text
    if not result_text:
        raise ReportParseError(f"Rule result {idref} has no result value.")

    severity = XCCDF_SEVERITY.get(
        element.get("severity", "unknown").lower(), Severity.CAT_III
    )
    status = XCCDF_STATUS.get(result_text, FindingStatus.NOT_TESTED)
    return Finding(rule_id=rule_id, severity=severity, status=status, title=idref)
