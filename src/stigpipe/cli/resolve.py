"""Pin (or re-read) the benchmark that governs the current pipeline run."""

from __future__ import annotations

import argparse
import logging
import os
from pathlib import Path
from typing import Sequence

from ..domain.errors import ResolutionError
from ..domain.models import TargetDescriptor
from ..services.benchmark_resolver import pinned_selection, resolve
from ..services.catalog import CATALOG_REGISTRY, get_catalog
from ..services.resolver_config import (
    RUN_ID_ENV,
    STATE_DIR_ENV,
    ResolverConfig,
)
from ..services.selection_cache import SelectionCache
from ..services.target_descriptor import (
    descriptor_from_os_id,
    detect_descriptor,
)
from . import reason_codes
from .common import (
    ArgumentParser,
    UsageError,
    configure_logging,
    write_error,
    write_json,
)

_LOG = logging.getLogger(__name__)

PHASE = "resolve"


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="stigpipe-resolve",
        description="Select the STIG benchmark for this run and pin it.",
    )
    parser.add_argument(
        "--run-id",
        default=os.getenv(RUN_ID_ENV),
        help=f"Identifier shared by every phase of the run (env {RUN_ID_ENV}).",
    )
    parser.add_argument(
        "--state-dir",
        type=Path,
        default=None,
        help=f"Directory holding run state (env {STATE_DIR_ENV}, default ./state).",
    )
    parser.add_argument(
        "--os",
        dest="os_id",
        default=None,
        help="Override detected OS (e.g. rhel8, ubuntu22, windows2022).",
    )
    parser.add_argument("--os-family", default=None)
    parser.add_argument("--os-version", default=None)
    parser.add_argument("--role", default=None, help="Technology role, e.g. MS or DC.")
    parser.add_argument(
        "--catalog-kind",
        choices=sorted(CATALOG_REGISTRY),
        default="json",
    )
    parser.add_argument(
        "--catalog",
        type=Path,
        default=None,
        help="Catalog JSON file (required for --catalog-kind json).",
    )
    parser.add_argument(
        "--allow-degraded-match",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Permit the version-agnostic fallback strategy (default: on).",
    )
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser


def descriptor_from_args(args: argparse.Namespace) -> TargetDescriptor:
    if args.os_id:
        return descriptor_from_os_id(args.os_id, role=args.role)
    if args.os_family or args.os_version:
        if not (args.os_family and args.os_version):
            raise ValueError("--os-family and --os-version must be given together.")
        return TargetDescriptor(
            os_family=args.os_family.strip().lower(),
            os_version_major=args.os_version.strip(),
            role=args.role,
        )
    return detect_descriptor(role=args.role)


def config_from_args(args: argparse.Namespace) -> ResolverConfig:
    base = ResolverConfig.from_env()
    return ResolverConfig(
        state_dir=args.state_dir or base.state_dir,
        run_id=(args.run_id or "").strip() or None,
        allow_degraded_match=base.allow_degraded_match
        if args.allow_degraded_match is None
        else args.allow_degraded_match,
        catalog_timeout=base.catalog_timeout,
    )


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as exc:
        write_error(PHASE, reason_codes.INVALID_INPUT, str(exc))
        return 1
    configure_logging(args.verbose)

    config = config_from_args(args)
    try:
        cache = SelectionCache.from_config(config)
    except ValueError as exc:
        write_error(PHASE, reason_codes.INVALID_INPUT, str(exc))
        return 1

    # A pinned run needs neither the host description nor the catalog.
    pinned = pinned_selection(cache, config)
    if pinned is not None:
        write_json(pinned.to_record())
        return 0

    try:
        target = descriptor_from_args(args)
        catalog = get_catalog(
            args.catalog_kind, args.catalog, timeout=config.catalog_timeout
        )
    except ValueError as exc:
        write_error(PHASE, reason_codes.INVALID_INPUT, str(exc))
        return 1

    try:
        selection = resolve(target, catalog, cache, config=config)
    except ResolutionError as exc:
        write_error(PHASE, reason_codes.reason_for(exc), str(exc))
        return 1

    write_json(selection.to_record())
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
