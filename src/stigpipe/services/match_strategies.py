"""Ordered match predicates used by the benchmark resolver.

Each strategy is a pure predicate ``(target, entry) -> bool``. The resolver
walks :data:`MATCH_STRATEGIES` in order and keeps the first strategy that
matches at least one selectable entry, so each predicate can be tested on its
own without a catalog or a cache.
"""

from __future__ import annotations

from typing import Callable

from ..domain.models import BenchmarkDescriptor, MatchStrategy, TargetDescriptor

MatchPredicate = Callable[[TargetDescriptor, BenchmarkDescriptor], bool]

GENERIC_SERVER_ROLES = frozenset({"", "ms", "server", "memberserver"})
"""Roles that stand for a plain server install when the exact role is absent."""

_OS_FAMILY_ALIASES: dict[str, tuple[str, ...]] = {
    "rhel": ("rhel", "red hat", "redhat", "red_hat"),
    "ubuntu": ("ubuntu", "canonical"),
    "windows": ("windows",),
}


def _norm(value: str | None) -> str:
    return (value or "").strip().lower()


def _role_matches(target: TargetDescriptor, entry: BenchmarkDescriptor) -> bool:
    if target.role is None:
        return True
    return _norm(entry.technology_role) == _norm(target.role)


def exact_match(target: TargetDescriptor, entry: BenchmarkDescriptor) -> bool:
    """Role (when given) and technology version both equal the target's."""

    return _role_matches(target, entry) and _norm(entry.technology_version) == _norm(
        target.os_version_major
    )


def role_relaxed_match(target: TargetDescriptor, entry: BenchmarkDescriptor) -> bool:
    """Accept generic server roles; version by equality or substring."""

    roles = set(GENERIC_SERVER_ROLES)
    if target.role is not None:
        roles.add(_norm(target.role))
    if _norm(entry.technology_role) not in roles:
        return False
    wanted = _norm(target.os_version_major)
    version = _norm(entry.technology_version)
    return bool(wanted) and (version == wanted or wanted in version)


def version_pattern_match(
    target: TargetDescriptor, entry: BenchmarkDescriptor
) -> bool:
    """Version or metadata mentions the major version (e.g. "Server2022")."""

    wanted = _norm(target.os_version_major)
    if not wanted:
        return False
    haystacks = (entry.technology_version, entry.id, entry.title)
    return any(wanted in _norm(text) for text in haystacks)


def generic_fallback_match(
    target: TargetDescriptor, entry: BenchmarkDescriptor
) -> bool:
    """Any entry of the same broad OS family, ignoring version."""

    family = _norm(target.os_family)
    if not family:
        return False
    aliases = _OS_FAMILY_ALIASES.get(family, (family,))
    haystacks = (entry.technology_role, entry.id, entry.title)
    return any(alias in _norm(text) for alias in aliases for text in haystacks)


MATCH_STRATEGIES: tuple[tuple[MatchStrategy, MatchPredicate], ...] = (
    (MatchStrategy.EXACT, exact_match),
    (MatchStrategy.ROLE_RELAXED, role_relaxed_match),
    (MatchStrategy.VERSION_PATTERN, version_pattern_match),
    (MatchStrategy.GENERIC_FALLBACK, generic_fallback_match),
)
"""Strategies in the order the resolver attempts them."""
