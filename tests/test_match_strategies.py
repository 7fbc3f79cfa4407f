"""Each match predicate in isolation, without catalog or cache."""

from __future__ import annotations

from stigpipe.domain.models import (
    BenchmarkDescriptor,
    MatchStrategy,
    ReleaseType,
    TargetDescriptor,
)
from stigpipe.services.match_strategies import (
    MATCH_STRATEGIES,
    exact_match,
    generic_fallback_match,
    role_relaxed_match,
    version_pattern_match,
)


def _entry(
    role: str = "MS", version: str = "2022", id: str = "entry", title: str = ""
) -> BenchmarkDescriptor:
    return BenchmarkDescriptor(
        technology_role=role,
        technology_version=version,
        benchmark_version="1",
        release_type=ReleaseType.BENCHMARK,
        id=id,
        title=title,
    )


def test_strategy_order_is_fixed() -> None:
    assert [strategy for strategy, _ in MATCH_STRATEGIES] == [
        MatchStrategy.EXACT,
        MatchStrategy.ROLE_RELAXED,
        MatchStrategy.VERSION_PATTERN,
        MatchStrategy.GENERIC_FALLBACK,
    ]
    assert [strategy.degraded for strategy, _ in MATCH_STRATEGIES] == [
        False,
        False,
        False,
        True,
    ]


def test_exact_requires_role_when_given() -> None:
    target = TargetDescriptor("windows", "2022", role="DC")

    assert exact_match(target, _entry(role="dc"))
    assert not exact_match(target, _entry(role="MS"))


def test_exact_ignores_role_when_absent() -> None:
    target = TargetDescriptor("rhel", "8")

    assert exact_match(target, _entry(role="", version="8"))
    assert not exact_match(target, _entry(role="", version="9"))


def test_role_relaxed_accepts_substring_version() -> None:
    target = TargetDescriptor("windows", "2022", role="DC")

    assert role_relaxed_match(target, _entry(role="Server", version="Server2022"))
    assert not role_relaxed_match(target, _entry(role="Core", version="2022"))


def test_version_pattern_reads_metadata() -> None:
    target = TargetDescriptor("rhel", "9")

    assert version_pattern_match(target, _entry(role="x", version="", title="RHEL 9"))
    assert not version_pattern_match(target, _entry(role="x", version="8", id="r8"))


def test_generic_fallback_uses_family_aliases() -> None:
    target = TargetDescriptor("rhel", "10")

    assert generic_fallback_match(
        target, _entry(version="9", id="x", title="Red Hat Enterprise Linux 9")
    )
    assert not generic_fallback_match(
        target, _entry(version="22", id="Ubuntu-22", title="Canonical Ubuntu 22.04")
    )
