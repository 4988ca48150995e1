"""Tests for dynrender.watcher module."""

from __future__ import annotations

import asyncio
import sys
import types
from collections.abc import AsyncIterator
from pathlib import Path
from typing import Any

import pytest

import dynrender.cli
from dynrender.watcher import (
    WatchCycleResult,
    WatchEvent,
    WatchTargets,
    build_cycle_runner,
    classify_changes,
    format_watch_cycle_json,
    run_watch_loop,
)

# ---------------------------------------------------------------------------
# Optional dependency check
# ---------------------------------------------------------------------------


def test_check_watchfiles_available_raises_when_missing(monkeypatch) -> None:
    """Should raise ImportError with a helpful install message."""
    monkeypatch.setitem(sys.modules, "watchfiles", None)

    from dynrender.watcher import check_watchfiles_available

    with pytest.raises(ImportError, match="pip install dynrender\\[watch\\]"):
        check_watchfiles_available()


def test_check_watchfiles_available_succeeds_when_installed(monkeypatch) -> None:
    fake = types.ModuleType("watchfiles")
    monkeypatch.setitem(sys.modules, "watchfiles", fake)

    from dynrender.watcher import check_watchfiles_available

    check_watchfiles_available()  # no exception


def test_watch_command_reports_missing_watchfiles(monkeypatch, capsys) -> None:
    monkeypatch.setitem(sys.modules, "watchfiles", None)
    rc = dynrender.cli.main(["watch", "page.md", "--id", "x"])
    assert rc == dynrender.cli.EXIT_CONFIG_OR_INPUT
    assert "pip install dynrender[watch]" in capsys.readouterr().err


# ---------------------------------------------------------------------------
# Targets and change classification
# ---------------------------------------------------------------------------


def test_targets_watch_parent_directories(tmp_path: Path) -> None:
    docs = tmp_path / "docs"
    targets = WatchTargets.of([docs / "page.md"], config=tmp_path / "dynrender.toml")
    assert targets.directories() == sorted({docs.resolve(), tmp_path.resolve()})


def test_targets_without_config(tmp_path: Path) -> None:
    targets = WatchTargets.of([tmp_path / "page.md"])
    assert targets.config is None
    assert targets.directories() == [tmp_path.resolve()]


def test_classify_keeps_only_input(tmp_path: Path) -> None:
    target = tmp_path / "page.md"
    targets = WatchTargets.of([target])
    event = classify_changes(frozenset({target, tmp_path / "other.md"}), targets)
    assert event is not None
    assert event.changed_paths == frozenset({target})
    assert event.config_changed is False


def test_classify_ignores_unrelated_files(tmp_path: Path) -> None:
    targets = WatchTargets.of([tmp_path / "page.md"])
    changed = frozenset({tmp_path / "other.md", tmp_path / "page.md.swp"})
    assert classify_changes(changed, targets) is None


def test_classify_flags_config_changes(tmp_path: Path) -> None:
    cfg = tmp_path / "dynrender.toml"
    targets = WatchTargets.of([tmp_path / "page.md"], config=cfg)
    event = classify_changes(frozenset({cfg}), targets)
    assert event is not None
    assert event.config_changed is True
    assert event.changed_paths == frozenset({cfg})


# ---------------------------------------------------------------------------
# Loop
# ---------------------------------------------------------------------------


async def _aiter(batches: list[set[tuple[Any, str]]]) -> AsyncIterator[set[tuple[Any, str]]]:
    for b in batches:
        yield b


def _ok_cycle(cycles: list[WatchEvent]):
    def run_cycle(event: WatchEvent) -> WatchCycleResult:
        cycles.append(event)
        return WatchCycleResult(
            exit_code=0,
            duration_s=0.5,
            changed_paths=event.changed_paths,
            config_changed=event.config_changed,
        )

    return run_cycle


def test_run_watch_loop_runs_cycle_for_relevant_changes(tmp_path: Path) -> None:
    target = tmp_path / "page.md"
    batches = [
        {(1, str(tmp_path / "unrelated.txt"))},
        {(2, str(target))},
    ]
    events: list[str] = []
    results: list[WatchCycleResult] = []
    cycles: list[WatchEvent] = []

    asyncio.run(
        run_watch_loop(
            changes_iter=_aiter(batches),
            run_cycle=_ok_cycle(cycles),
            targets=WatchTargets.of([target]),
            on_event=events.append,
            on_cycle_result=results.append,
            on_error=lambda e: pytest.fail(f"unexpected error {e!r}"),
        )
    )

    assert len(cycles) == 1
    assert cycles[0].changed_paths == frozenset({target})
    assert events == [f"[watch] change detected: {target}", "[watch] done (0.5s)"]
    assert [r.exit_code for r in results] == [0]


def test_run_watch_loop_announces_config_reload(tmp_path: Path) -> None:
    target = tmp_path / "page.md"
    cfg = tmp_path / "dynrender.toml"
    events: list[str] = []
    results: list[WatchCycleResult] = []

    asyncio.run(
        run_watch_loop(
            changes_iter=_aiter([{(2, str(cfg))}]),
            run_cycle=_ok_cycle([]),
            targets=WatchTargets.of([target], config=cfg),
            on_event=events.append,
            on_cycle_result=results.append,
            on_error=lambda e: pytest.fail(f"unexpected error {e!r}"),
        )
    )

    assert events[0] == "[watch] config changed, reloading"
    assert results[0].config_changed is True


def test_run_watch_loop_reports_errors_and_continues(tmp_path: Path) -> None:
    target = tmp_path / "page.md"
    batches = [{(1, str(target))}, {(1, str(target))}]
    errors: list[BaseException] = []
    events: list[str] = []
    calls = 0

    def run_cycle(event: WatchEvent) -> WatchCycleResult:
        nonlocal calls
        calls += 1
        if calls == 1:
            raise RuntimeError("boom")
        return WatchCycleResult(exit_code=3, duration_s=0.0, changed_paths=event.changed_paths)

    results: list[WatchCycleResult] = []
    asyncio.run(
        run_watch_loop(
            changes_iter=_aiter(batches),
            run_cycle=run_cycle,
            targets=WatchTargets.of([target]),
            on_event=events.append,
            on_cycle_result=results.append,
            on_error=errors.append,
        )
    )

    assert calls == 2
    assert [str(e) for e in errors] == ["boom"]
    assert [r.exit_code for r in results] == [3]
    assert events[-1] == "[watch] failed (exit 3) (0.0s)"


def test_format_watch_cycle_json() -> None:
    res = WatchCycleResult(
        exit_code=0, duration_s=1.23456, changed_paths=frozenset({Path("/p/b.md"), Path("/p/a.md")})
    )
    assert format_watch_cycle_json(res) == {
        "command": "watch",
        "ok": True,
        "exit_code": 0,
        "config_changed": False,
        "duration_s": 1.23,
        "changed_paths": ["/p/a.md", "/p/b.md"],
    }
    failed = WatchCycleResult(exit_code=3, duration_s=0.0, changed_paths=frozenset())
    assert format_watch_cycle_json(failed)["ok"] is False


def test_build_cycle_runner_defaults_to_cli_transform(monkeypatch) -> None:
    seen: list[object] = []

    def fake_transform(args: object) -> int:
        seen.append(args)
        return 0

    monkeypatch.setattr(dynrender.cli, "cmd_transform", fake_transform)
    args = dynrender.cli.parse_args(["watch", "page.md", "--id", "x"])
    runner = build_cycle_runner(args)

    event = WatchEvent(
        changed_paths=frozenset({Path("page.md")}), config_changed=False, timestamp=0.0
    )
    result = runner(event)

    assert seen == [args]
    assert result.exit_code == 0
    assert result.changed_paths == event.changed_paths


def test_build_cycle_runner_uses_given_transform() -> None:
    runner = build_cycle_runner(object(), transform=lambda _args: 2)
    event = WatchEvent(changed_paths=frozenset(), config_changed=True, timestamp=0.0)
    result = runner(event)
    assert result.exit_code == 2
    assert result.config_changed is True
