"""Load the operator-curated exemption policy."""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Mapping

from ..domain.errors import ExemptionFileInvalid
from ..domain.models import ExemptionEntry
from . import schema_registry
from .schema_registry import SchemaValidationError

_LOG = logging.getLogger(__name__)

POLICY_SCHEMA = "exemption_policy_v1"


def load_exemptions(path: Path | None) -> tuple[ExemptionEntry, ...]:
    """Return the exemption groups in ``path``; no path means no exemptions."""

    if path is None:
        return ()
    path = Path(path)
    try:
        document = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError) as exc:
        raise ExemptionFileInvalid(
            f"Exemption file {path} could not be read: {exc}"
        ) from exc
    except json.JSONDecodeError as exc:
        raise ExemptionFileInvalid(
            f"Exemption file {path} is not valid JSON: {exc}"
        ) from exc

    entries = exemptions_from_document(document)
    _LOG.debug("Loaded %d exemption group(s) from %s", len(entries), path)
    return entries


def exemptions_from_document(document: Any) -> tuple[ExemptionEntry, ...]:
    """Validate a policy document and convert each group."""

    try:
        schema_registry.validate(POLICY_SCHEMA, document)
    except SchemaValidationError as exc:
        raise ExemptionFileInvalid(
            f"Exemption policy failed validation: {exc.message}"
        ) from exc

    groups = document["exemptions"]
    if isinstance(groups, Mapping):
        groups = [groups]
    return tuple(_entry_from_group(group) for group in groups)


def _entry_from_group(group: Mapping[str, Any]) -> ExemptionEntry:
    try:
        expiry = date.fromisoformat(group["expiryDate"])
    except ValueError as exc:
        raise ExemptionFileInvalid(
            f"Exemption expiry date {group['expiryDate']!r} is not a real date."
        ) from exc
    return ExemptionEntry(
        rule_ids=tuple(group["ruleIds"]),
        justification=group["justification"],
        approver=group["approver"],
        expiry_date=expiry,
    )
