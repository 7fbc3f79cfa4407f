"""Build the immutable :class:`TargetDescriptor` handed to the resolver.

This is the only place that looks at how the host identifies itself. The
resolver never inspects the environment; callers read ``/etc/os-release`` (or
take an ``--os`` override) here and pass the result in.
"""

from __future__ import annotations

import re
import shlex
from pathlib import Path

from ..domain.models import TargetDescriptor

OS_RELEASE_PATH = Path("/etc/os-release")

RHEL_REBUILDS = frozenset({"rhel", "centos", "rocky", "almalinux", "ol"})
"""Distribution ids that share the RHEL benchmark family."""

_OS_ID_PATTERN = re.compile(r"^([a-z]+)[-_]?(\d+)(?:\.\d+)?$")


def _normalize_family(os_id: str) -> str:
    os_id = os_id.strip().lower()
    if os_id in RHEL_REBUILDS:
        return "rhel"
    return os_id


def parse_os_release(text: str) -> dict[str, str]:
    """Parse ``KEY=value`` lines, unquoting values the way a shell would."""

    values: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


def descriptor_from_os_release(text: str, role: str | None = None) -> TargetDescriptor:
    """Describe the host from ``/etc/os-release`` contents."""

    values = parse_os_release(text)
    os_id = values.get("ID", "")
    version_id = values.get("VERSION_ID", "")
    if not os_id or not version_id:
        raise ValueError("os-release data is missing ID or VERSION_ID.")
    return TargetDescriptor(
        os_family=_normalize_family(os_id),
        os_version_major=version_id.split(".", 1)[0],
        role=role,
    )


def descriptor_from_os_id(os_id: str, role: str | None = None) -> TargetDescriptor:
    """Describe the host from a pipeline OS id such as ``rhel8`` or ``ubuntu2204``."""

    match = _OS_ID_PATTERN.match(os_id.strip().lower())
    if not match:
        raise ValueError(f"Unrecognized OS id {os_id!r}.")
    family, digits = match.groups()
    family = _normalize_family(family)
    # ubuntu2204 names a release; the benchmark family is keyed by major.
    if family == "ubuntu" and len(digits) == 4:
        digits = digits[:2]
    return TargetDescriptor(os_family=family, os_version_major=digits, role=role)


def detect_descriptor(
    role: str | None = None, os_release: Path = OS_RELEASE_PATH
) -> TargetDescriptor:
    """Read ``os_release`` from disk and describe the local host."""

    try:
        text = os_release.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(
            f"Cannot determine OS from {os_release}; pass --os instead."
        ) from exc
    return descriptor_from_os_release(text, role=role)
