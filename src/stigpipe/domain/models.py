"""Core entities without I/O for the stigpipe resolver and gate."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum

_VERSION_NUMBER = re.compile(r"\d+")


class ReleaseType(Enum):
    """Publication status of a catalog entry."""

    BENCHMARK = "Benchmark"
    DRAFT = "Draft"
    OTHER = "Other"

    @classmethod
    def from_label(cls, label: str | None) -> "ReleaseType":
        for member in cls:
            if label and member.value.lower() == label.strip().lower():
                return member
        return cls.OTHER


class MatchStrategy(Enum):
    """Resolver strategies, in the order they are attempted."""

    EXACT = "exact"
    ROLE_RELAXED = "role_relaxed"
    VERSION_PATTERN = "version_pattern"
    GENERIC_FALLBACK = "generic_fallback"

    @property
    def degraded(self) -> bool:
        return self is MatchStrategy.GENERIC_FALLBACK


class Severity(Enum):
    """DISA severity categories."""

    CAT_I = "CAT I"
    CAT_II = "CAT II"
    CAT_III = "CAT III"


class FindingStatus(Enum):
    PASS = "Pass"
    FAIL = "Fail"
    NOT_TESTED = "Not Tested"


def benchmark_version_key(value: str) -> tuple[int, ...]:
    """Numeric ordering key for benchmark versions ("1.10" sorts above "1.9")."""

    return tuple(int(part) for part in _VERSION_NUMBER.findall(value))


@dataclass(frozen=True)
class TargetDescriptor:
    """What is being scanned; built once per run outside the core."""

    os_family: str
    os_version_major: str
    role: str | None = None


@dataclass(frozen=True)
class BenchmarkDescriptor:
    """One entry of the benchmark catalog."""

    technology_role: str
    technology_version: str
    benchmark_version: str
    release_type: ReleaseType
    id: str
    title: str = ""

    @property
    def version_key(self) -> tuple[int, ...]:
        return benchmark_version_key(self.benchmark_version)

    @property
    def selectable(self) -> bool:
        return self.release_type is ReleaseType.BENCHMARK


@dataclass(frozen=True)
class BenchmarkSelection:
    """The pinned benchmark for a single pipeline run."""

    technology_role: str
    technology_version: str
    benchmark_version: str
    benchmark_id: str
    selected_at: datetime
    match_strategy: MatchStrategy = MatchStrategy.EXACT
    degraded: bool = False

    @classmethod
    def from_descriptor(
        cls,
        descriptor: BenchmarkDescriptor,
        strategy: MatchStrategy,
        selected_at: datetime,
    ) -> "BenchmarkSelection":
        return cls(
            technology_role=descriptor.technology_role,
            technology_version=descriptor.technology_version,
            benchmark_version=descriptor.benchmark_version,
            benchmark_id=descriptor.id,
            selected_at=selected_at,
            match_strategy=strategy,
            degraded=strategy.degraded,
        )

    def to_record(self) -> dict[str, object]:
        """Serialize to the persisted cache record layout."""

        return {
            "technology": self.technology_role,
            "version": self.technology_version,
            "stigVersion": self.benchmark_version,
            "stigId": self.benchmark_id,
            "selectedDate": self.selected_at.isoformat(),
            "matchStrategy": self.match_strategy.value,
            "degraded": self.degraded,
        }

    @classmethod
    def from_record(cls, record: dict[str, object]) -> "BenchmarkSelection":
        strategy = MatchStrategy(record.get("matchStrategy", MatchStrategy.EXACT.value))
        return cls(
            technology_role=str(record["technology"]),
            technology_version=str(record["version"]),
            benchmark_version=str(record["stigVersion"]),
            benchmark_id=str(record["stigId"]),
            selected_at=datetime.fromisoformat(str(record["selectedDate"])),
            match_strategy=strategy,
            degraded=bool(record.get("degraded", strategy.degraded)),
        )


@dataclass(frozen=True)
class Finding:
    """Result of evaluating one rule; severity is fixed at parse time."""

    rule_id: str
    severity: Severity
    status: FindingStatus
    title: str = ""

    @property
    def failed(self) -> bool:
        return self.status is FindingStatus.FAIL


@dataclass(frozen=True)
class ExemptionEntry:
    """Operator-approved override for a group of rule ids."""

    rule_ids: tuple[str, ...]
    justification: str
    approver: str
    expiry_date: date

    def covers(self, rule_id: str) -> bool:
        return rule_id in self.rule_ids

    def active_on(self, day: date) -> bool:
        return self.expiry_date >= day


@dataclass(frozen=True)
class GateDecision:
    """Outcome of a single gate evaluation."""

    passed: bool
    raw_cat_i: int
    raw_cat_ii: int
    exempted_rule_ids: tuple[str, ...]
    effective_cat_i: int
    effective_cat_ii: int
    reasons: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    def to_mapping(self) -> dict[str, object]:
        return {
            "passed": self.passed,
            "rawCatI": self.raw_cat_i,
            "rawCatII": self.raw_cat_ii,
            "exemptedRuleIds": list(self.exempted_rule_ids),
            "effectiveCatI": self.effective_cat_i,
            "effectiveCatII": self.effective_cat_ii,
            "reasons": list(self.reasons),
            "warnings": list(self.warnings),
        }
