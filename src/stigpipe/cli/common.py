"""Shared plumbing for the stigpipe command-line entry points."""

from __future__ import annotations

import argparse
import json
import logging
import sys


class UsageError(Exception):
    """Command-line arguments could not be parsed."""


class ArgumentParser(argparse.ArgumentParser):
    """Parser that reports bad arguments as :class:`UsageError`.

    Exit status 2 belongs to the scan engine ("rules failed"), never to a
    stigpipe command.
    """

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        raise UsageError(message)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def write_error(phase: str, reason: str, detail: str) -> None:
    """Emit the error payload that names the failing phase."""

    payload = {"status": "error", "phase": phase, "reason": reason, "detail": detail}
    sys.stderr.write(json.dumps(payload, ensure_ascii=False))
    sys.stderr.write("\n")


def write_json(payload: object) -> None:
    sys.stdout.write(json.dumps(payload, ensure_ascii=False, sort_keys=True))
    sys.stdout.write("\n")
