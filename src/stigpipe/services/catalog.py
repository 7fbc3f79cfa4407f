"""Benchmark catalog contract and the adapters the resolver can query.

The catalog is an external collaborator. Every adapter returns an immutable
snapshot of :class:`BenchmarkDescriptor` entries in catalog order and converts
any query failure into :class:`CatalogUnavailable`; it never returns a partial
snapshot.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from pathlib import Path
from typing import Any, Iterable, Mapping, Protocol

from ..domain.errors import CatalogUnavailable
from ..domain.models import BenchmarkDescriptor, ReleaseType
from . import schema_registry
from .resolver_config import DEFAULT_CATALOG_TIMEOUT_SECONDS
from .schema_registry import SchemaValidationError

_LOG = logging.getLogger(__name__)

CATALOG_SCHEMA = "benchmark_catalog_v1"

POWERSTIG_QUERY = (
    "Import-Module PowerSTIG; "
    "Get-Stig -ListAvailable | Select-Object Technology, TechnologyVersion, "
    "TechnologyRole, @{Name='StigVersion';Expression={$_.Version.ToString()}} "
    "| ConvertTo-Json -Depth 3"
)
"""PowerShell pipeline listing every STIG the PowerSTIG module ships."""


class BenchmarkCatalog(Protocol):
    """Catalog contract that adapters must implement."""

    def entries(self) -> tuple[BenchmarkDescriptor, ...]: ...


def _version_text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def descriptor_from_mapping(item: Mapping[str, Any]) -> BenchmarkDescriptor:
    """Build a descriptor from one schema-valid catalog JSON entry."""

    return BenchmarkDescriptor(
        technology_role=str(item.get("role", "")),
        technology_version=str(item.get("version", "")),
        benchmark_version=_version_text(item["benchmarkVersion"]),
        release_type=ReleaseType.from_label(item.get("releaseType")),
        id=str(item["id"]),
        title=str(item.get("title", "")),
    )


class StaticCatalog(BenchmarkCatalog):
    """In-memory snapshot, used by tests and by callers that already hold one."""

    def __init__(self, descriptors: Iterable[BenchmarkDescriptor]) -> None:
        self._descriptors = tuple(descriptors)

    def entries(self) -> tuple[BenchmarkDescriptor, ...]:
        return self._descriptors


class JsonFileCatalog(BenchmarkCatalog):
    """Catalog exported to a JSON file matching ``benchmark_catalog_v1``."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def entries(self) -> tuple[BenchmarkDescriptor, ...]:
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            raise CatalogUnavailable(
                f"Benchmark catalog {self.path} could not be read: {exc}"
            ) from exc
        except json.JSONDecodeError as exc:
            raise CatalogUnavailable(
                f"Benchmark catalog {self.path} is not valid JSON."
            ) from exc

        try:
            schema_registry.validate(CATALOG_SCHEMA, document)
        except SchemaValidationError as exc:
            raise CatalogUnavailable(
                f"Benchmark catalog {self.path} failed validation: {exc.message}"
            ) from exc

        descriptors = tuple(
            descriptor_from_mapping(item) for item in document["benchmarks"]
        )
        _LOG.debug("Loaded %d catalog entries from %s", len(descriptors), self.path)
        return descriptors


class PowerStigCatalog(BenchmarkCatalog):
    """Catalog backed by the PowerSTIG module's ``Get-Stig -ListAvailable``."""

    def __init__(
        self,
        executable: str = "pwsh",
        timeout: int = DEFAULT_CATALOG_TIMEOUT_SECONDS,
    ) -> None:
        self.executable = executable
        self.timeout = timeout

    def entries(self) -> tuple[BenchmarkDescriptor, ...]:
        command = shutil.which(self.executable)
        if command is None:
            raise CatalogUnavailable(f"{self.executable} is not installed.")

        try:
            result = subprocess.run(
                [command, "-NoProfile", "-NonInteractive", "-Command", POWERSTIG_QUERY],
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise CatalogUnavailable(
                f"PowerSTIG catalog query timed out after {self.timeout}s."
            ) from exc
        except (subprocess.SubprocessError, OSError) as exc:
            raise CatalogUnavailable(f"PowerSTIG catalog query failed: {exc}") from exc

        if result.returncode != 0:
            message = (result.stderr or result.stdout or "").strip()
            if not message:
                message = f"exit code {result.returncode}"
            raise CatalogUnavailable(f"PowerSTIG catalog query failed: {message}")

        return self._parse(result.stdout)

    @staticmethod
    def _parse(output: str) -> tuple[BenchmarkDescriptor, ...]:
        if not output.strip():
            return ()
        try:
            document = json.loads(output)
        except json.JSONDecodeError as exc:
            raise CatalogUnavailable("PowerSTIG returned malformed JSON.") from exc

        # ConvertTo-Json emits a bare object for a single result.
        rows = document if isinstance(document, list) else [document]
        descriptors = []
        for row in rows:
            if not isinstance(row, dict) or not row.get("StigVersion"):
                raise CatalogUnavailable("PowerSTIG returned an unexpected entry.")
            technology = str(row.get("Technology") or "")
            version = str(row.get("TechnologyVersion") or "")
            role = str(row.get("TechnologyRole") or "")
            stig_version = _version_text(row["StigVersion"])
            identifier = "-".join(
                part for part in (technology, version, role, stig_version) if part
            )
            descriptors.append(
                BenchmarkDescriptor(
                    technology_role=role,
                    technology_version=version,
                    benchmark_version=stig_version,
                    release_type=ReleaseType.BENCHMARK,
                    id=identifier,
                    title=technology,
                )
            )
        return tuple(descriptors)


CATALOG_REGISTRY: dict[str, type[BenchmarkCatalog]] = {
    "json": JsonFileCatalog,
    "powerstig": PowerStigCatalog,
}
"""Registry enumerating supported catalog adapters."""


def get_catalog(
    kind: str,
    source: Path | None = None,
    *,
    timeout: int = DEFAULT_CATALOG_TIMEOUT_SECONDS,
) -> BenchmarkCatalog:
    """Return the catalog adapter registered under ``kind``."""

    catalog_cls = CATALOG_REGISTRY.get(kind.lower())
    if catalog_cls is None:
        raise ValueError(f"Catalog kind {kind!r} is not supported.")
    if catalog_cls is JsonFileCatalog:
        if source is None:
            raise ValueError("A catalog path is required for the json catalog.")
        return JsonFileCatalog(source)
    return PowerStigCatalog(timeout=timeout)
