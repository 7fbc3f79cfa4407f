"""Utility to surface shared JSON schemas and examples."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Mapping

from jsonschema import Draft7Validator, ValidationError

SCHEMA_DIR = Path(__file__).resolve().parents[1] / "schemas"
EXAMPLE_DIR = SCHEMA_DIR / "examples"

SchemaValidationError = ValidationError
"""Alias for jsonschema.ValidationError.
Keeps callers unaware of the implementation.
"""

SCHEMA_FILES = {
    "selection_record_v1": "selection_record_schema_v1.json",
    "exemption_policy_v1": "exemption_policy_schema_v1.json",
    "scan_findings_v1": "scan_findings_schema_v1.json",
    "benchmark_catalog_v1": "benchmark_catalog_schema_v1.json",
    "gate_decision_v1": "gate_decision_schema_v1.json",
}

EXAMPLE_FILES = {
    "selection_record_example_min": "selection_record_example_min.json",
    "exemption_policy_example_min": "exemption_policy_example_min.json",
    "exemption_policy_example_groups": "exemption_policy_example_groups.json",
    "scan_findings_example_min": "scan_findings_example_min.json",
    "benchmark_catalog_example_min": "benchmark_catalog_example_min.json",
    "gate_decision_example_min": "gate_decision_example_min.json",
}

_SCHEMAS: dict[str, Mapping[str, Any]] = {}
_EXAMPLES: dict[str, Any] = {}


def _load_json_file(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as handle:
        return json.load(handle)


def _schema_path(name: str) -> Path:
    filename = SCHEMA_FILES[name]
    return SCHEMA_DIR / filename


def _example_path(name: str) -> Path:
    filename = EXAMPLE_FILES[name]
    return EXAMPLE_DIR / filename


def get_schema(name: str) -> Mapping[str, Any]:
    """Return the JSON schema with the given registry name."""

    if name not in _SCHEMAS:
        _SCHEMAS[name] = _load_json_file(_schema_path(name))
    return _SCHEMAS[name]


def get_example(name: str) -> Any:
    """Return a representative example payload by name."""

    if name not in _EXAMPLES:
        _EXAMPLES[name] = _load_json_file(_example_path(name))
    return _EXAMPLES[name]


def validate(name: str, instance: Any) -> None:
    """Validate an instance against a named schema."""

    schema = get_schema(name)
    Draft7Validator(schema).validate(instance)
