"""Persistence behaviour of the run-scoped selection cache."""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path

import pytest

from stigpipe.domain.models import BenchmarkSelection, MatchStrategy
from stigpipe.services import schema_registry
from stigpipe.services.selection_cache import RECORD_FILENAME, SelectionCache


def _selection(version: str = "2.1") -> BenchmarkSelection:
    return BenchmarkSelection(
        technology_role="MS",
        technology_version="2022",
        benchmark_version=version,
        benchmark_id=f"WindowsServer-2022-MS-{version}",
        selected_at=datetime(2026, 10, 19, 8, 15, tzinfo=timezone.utc),
    )


def test_missing_cache_is_absent(tmp_path: Path) -> None:
    assert SelectionCache.for_run(tmp_path, "run-1").load() is None


def test_store_then_load_returns_selection(tmp_path: Path) -> None:
    cache = SelectionCache.for_run(tmp_path, "run-1")
    cache.store(_selection())

    assert cache.load() == _selection()
    assert cache.path == tmp_path / "runs" / "run-1" / RECORD_FILENAME


def test_record_uses_published_layout(tmp_path: Path) -> None:
    cache = SelectionCache.for_run(tmp_path, "run-1")
    cache.store(_selection())

    record = json.loads(cache.path.read_text(encoding="utf-8"))
    schema_registry.validate("selection_record_v1", record)
    assert record["technology"] == "MS"
    assert record["version"] == "2022"
    assert record["stigVersion"] == "2.1"
    assert record["stigId"] == "WindowsServer-2022-MS-2.1"
    assert record["selectedDate"].startswith("2026-10-19T08:15")


def test_store_leaves_no_temp_files(tmp_path: Path) -> None:
    cache = SelectionCache.for_run(tmp_path, "run-1")
    cache.store(_selection("1.0"))
    cache.store(_selection("2.0"))

    assert sorted(p.name for p in cache.path.parent.iterdir()) == [RECORD_FILENAME]


def test_failed_rename_keeps_previous_record(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    """An interrupted write must never leave a partial cache file."""

    cache = SelectionCache.for_run(tmp_path, "run-1")
    cache.store(_selection("1.0"))

    def crash(*args: object, **kwargs: object) -> None:
        raise OSError("power loss")

    with monkeypatch.context() as patched:
        patched.setattr(os, "replace", crash)
        with pytest.raises(OSError):
            cache.store(_selection("2.0"))

    assert cache.load() == _selection("1.0")
    assert sorted(p.name for p in cache.path.parent.iterdir()) == [RECORD_FILENAME]


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        json.dumps({"technology": "MS"}),
        json.dumps([1, 2, 3]),
    ],
)
def test_corrupt_cache_is_a_miss_with_warning(
    tmp_path: Path, content: str, caplog: pytest.LogCaptureFixture
) -> None:
    cache = SelectionCache.for_run(tmp_path, "run-1")
    cache.path.parent.mkdir(parents=True)
    cache.path.write_text(content, encoding="utf-8")

    caplog.set_level(logging.WARNING)
    assert cache.load() is None
    assert any("Ignoring unreadable" in r.getMessage() for r in caplog.records)


def test_runs_do_not_share_a_cache(tmp_path: Path) -> None:
    first = SelectionCache.for_run(tmp_path, "run-1")
    second = SelectionCache.for_run(tmp_path, "run-2")
    first.store(_selection())

    assert second.load() is None


def test_run_id_is_sanitized(tmp_path: Path) -> None:
    cache = SelectionCache.for_run(tmp_path, "../../etc")

    assert cache.path.parent.parent == tmp_path / "runs"


def test_empty_run_id_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        SelectionCache.for_run(tmp_path, "  ")


def test_legacy_record_without_strategy_defaults_to_exact(tmp_path: Path) -> None:
    cache = SelectionCache.for_run(tmp_path, "run-1")
    cache.path.parent.mkdir(parents=True)
    cache.path.write_text(
        json.dumps(
            {
                "technology": "MS",
                "version": "2022",
                "stigVersion": "2.1",
                "stigId": "WindowsServer-2022-MS-2.1",
                "selectedDate": "2026-10-19T08:15:00+00:00",
            }
        ),
        encoding="utf-8",
    )

    selection = cache.load()

    assert selection is not None
    assert selection.match_strategy is MatchStrategy.EXACT
    assert selection.degraded is False


def test_clear_removes_record(tmp_path: Path) -> None:
    cache = SelectionCache.for_run(tmp_path, "run-1")
    cache.store(_selection())
    cache.clear()

    assert cache.load() is None
