"""Watch mode: re-run `transform` when the markdown input or its config changes.

`cmd_transform` reloads ``dynrender.toml`` on every call, so an edit to the
config takes effect on the next cycle without restarting the watcher.
"""

from __future__ import annotations

import time
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Any


@dataclass(frozen=True, slots=True)
class WatchTargets:
    """Files whose changes trigger a new transform cycle."""

    inputs: frozenset[Path]
    config: Path | None = None

    @classmethod
    def of(cls, inputs: list[Path], config: Path | None = None) -> WatchTargets:
        return cls(
            inputs=frozenset(p.resolve() for p in inputs),
            config=config.resolve() if config is not None else None,
        )

    def directories(self) -> list[Path]:
        # Editors often replace files instead of writing in place, so watch parents.
        dirs = {p.parent for p in self.inputs}
        if self.config is not None:
            dirs.add(self.config.parent)
        return sorted(dirs)


@dataclass(frozen=True, slots=True)
class WatchEvent:
    changed_paths: frozenset[Path]
    config_changed: bool
    timestamp: float


@dataclass(frozen=True, slots=True)
class WatchCycleResult:
    exit_code: int
    duration_s: float
    changed_paths: frozenset[Path]
    config_changed: bool = False


def check_watchfiles_available() -> None:
    """Raise ImportError with a helpful message if watchfiles is not installed."""
    import importlib

    try:
        importlib.import_module("watchfiles")
    except ImportError:
        raise ImportError(
            "watchfiles is required for watch mode. Install it with: pip install dynrender[watch]"
        ) from None


def classify_changes(changed_paths: frozenset[Path], targets: WatchTargets) -> WatchEvent | None:
    """Build an event from the watched files in a change batch, or None if none were touched."""
    relevant: set[Path] = set()
    config_changed = False
    for p in changed_paths:
        resolved = p.resolve()
        if resolved in targets.inputs:
            relevant.add(p)
        elif targets.config is not None and resolved == targets.config:
            relevant.add(p)
            config_changed = True
    if not relevant:
        return None
    return WatchEvent(
        changed_paths=frozenset(relevant),
        config_changed=config_changed,
        timestamp=time.monotonic(),
    )


async def run_watch_loop(
    *,
    changes_iter: AsyncIterator[set[tuple[Any, str]]],
    run_cycle: Callable[[WatchEvent], WatchCycleResult],
    targets: WatchTargets,
    on_event: Callable[[str], None],
    on_cycle_result: Callable[[WatchCycleResult], None],
    on_error: Callable[[BaseException], None],
) -> None:
    async for raw_changes in changes_iter:
        event = classify_changes(frozenset(Path(p) for _, p in raw_changes), targets)
        if event is None:
            continue

        if event.config_changed:
            on_event("[watch] config changed, reloading")
        else:
            names = ", ".join(str(p) for p in sorted(event.changed_paths))
            on_event(f"[watch] change detected: {names}")

        try:
            result = run_cycle(event)
        except Exception as exc:
            on_error(exc)
            continue

        status = "done" if result.exit_code == 0 else f"failed (exit {result.exit_code})"
        on_event(f"[watch] {status} ({result.duration_s:.1f}s)")
        on_cycle_result(result)


def format_watch_cycle_json(result: WatchCycleResult) -> dict[str, object]:
    return {
        "command": "watch",
        "ok": result.exit_code == 0,
        "exit_code": result.exit_code,
        "config_changed": result.config_changed,
        "duration_s": round(result.duration_s, 2),
        "changed_paths": sorted(str(p) for p in result.changed_paths),
    }


def build_cycle_runner(
    args: Any,
    *,
    transform: Callable[[Any], int] | None = None,
) -> Callable[[WatchEvent], WatchCycleResult]:
    """Create a cycle runner around `transform` (defaults to `cli.cmd_transform`)."""

    def runner(event: WatchEvent) -> WatchCycleResult:
        run = transform
        if run is None:
            from dynrender.cli import cmd_transform as run

        t0 = time.monotonic()
        rc = run(args)
        return WatchCycleResult(
            exit_code=rc,
            duration_s=time.monotonic() - t0,
            changed_paths=event.changed_paths,
            config_changed=event.config_changed,
        )

    return runner


def make_watchfiles_iter(
    targets: WatchTargets,
    *,
    debounce_ms: int = 200,
) -> AsyncIterator[set[tuple[Any, str]]]:
    import watchfiles  # type: ignore[import-untyped]

    return watchfiles.awatch(*targets.directories(), debounce=debounce_ms)
