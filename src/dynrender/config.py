"""Project configuration loading for dynrender.

This module is intentionally small and deterministic: it only reads
`dynrender.toml` and performs light validation. Library calls never read it;
the CLI converts it into `RenderOptions`.
"""

from __future__ import annotations

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dynrender.errors import DynRenderConfigError
from dynrender.models import RenderOptions, SubstitutionMode

CONFIG_FILENAME = "dynrender.toml"


@dataclass(frozen=True)
class ParseConfig:
    strict: bool
    script_blocks: bool


@dataclass(frozen=True)
class SubstituteConfig:
    mode: SubstitutionMode


@dataclass(frozen=True)
class WatchConfig:
    debounce_ms: int


@dataclass(frozen=True)
class DynRenderConfig:
    version: int
    parse: ParseConfig
    substitute: SubstituteConfig
    watch: WatchConfig

    def render_options(self) -> RenderOptions:
        return RenderOptions(
            strict=self.parse.strict,
            script_blocks=self.parse.script_blocks,
            substitution=self.substitute.mode,
        )


def default_config() -> DynRenderConfig:
    return DynRenderConfig(
        version=1,
        parse=ParseConfig(strict=True, script_blocks=True),
        substitute=SubstituteConfig(mode=SubstitutionMode.TEXT),
        watch=WatchConfig(debounce_ms=200),
    )


def find_project_root(start: Path) -> Path:
    """Walk upward from `start` (file or directory) looking for `dynrender.toml`."""

    cur = start
    try:
        if cur.is_file():
            cur = cur.parent
    except OSError:
        cur = cur.parent

    cur = cur.resolve()
    while True:
        if (cur / CONFIG_FILENAME).is_file():
            return cur
        if cur.parent == cur:
            break
        cur = cur.parent

    raise DynRenderConfigError(
        f"Could not find {CONFIG_FILENAME} by walking upward from start path."
    )


def _as_table(value: Any, *, name: str) -> dict[str, Any]:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise DynRenderConfigError(f"Expected [{name}] to be a table.")
    return value


def _as_bool(value: Any, *, name: str) -> bool:
    if not isinstance(value, bool):
        raise DynRenderConfigError(f"Expected {name} to be a boolean.")
    return value


def _as_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise DynRenderConfigError(f"Expected {name} to be an integer.")
    return value


def _as_str(value: Any, *, name: str) -> str:
    if not isinstance(value, str):
        raise DynRenderConfigError(f"Expected {name} to be a string.")
    return value


def load_config(*, root: Path | None = None, config_path: Path | None = None) -> DynRenderConfig:
    """Load and validate `dynrender.toml`.

    If neither `root` nor `config_path` are provided, the project root is
    discovered by walking upward from the current working directory.
    """

    if config_path is None:
        if root is None:
            root = find_project_root(Path.cwd())
        config_path = root / CONFIG_FILENAME

    try:
        raw = config_path.read_bytes()
    except FileNotFoundError as e:
        raise DynRenderConfigError(f"Missing {CONFIG_FILENAME} at: {config_path}") from e
    except OSError as e:
        raise DynRenderConfigError(f"Failed reading config file: {config_path}") from e

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except UnicodeDecodeError as e:
        raise DynRenderConfigError(f"Config is not valid UTF-8: {config_path}") from e
    except tomllib.TOMLDecodeError as e:
        raise DynRenderConfigError(f"Invalid TOML in {config_path}: {e}") from e

    version = data.get("version", None)
    if version is None:
        raise DynRenderConfigError(f"Missing required `version = 1` in {CONFIG_FILENAME}.")
    version_i = _as_int(version, name="version")
    if version_i != 1:
        raise DynRenderConfigError(f"Unsupported config version: {version_i} (expected 1).")

    parse_tbl = _as_table(data.get("parse"), name="parse")
    substitute_tbl = _as_table(data.get("substitute"), name="substitute")
    watch_tbl = _as_table(data.get("watch"), name="watch")

    if "strict" in parse_tbl:
        strict = _as_bool(parse_tbl["strict"], name="parse.strict")
    else:
        strict = True

    if "script_blocks" in parse_tbl:
        script_blocks = _as_bool(parse_tbl["script_blocks"], name="parse.script_blocks")
    else:
        script_blocks = True

    if "mode" in substitute_tbl:
        mode_s = _as_str(substitute_tbl["mode"], name="substitute.mode")
    else:
        mode_s = SubstitutionMode.TEXT.value

    if "debounce_ms" in watch_tbl:
        debounce_ms = _as_int(watch_tbl["debounce_ms"], name="watch.debounce_ms")
    else:
        debounce_ms = 200

    # Validation
    try:
        mode = SubstitutionMode(mode_s)
    except ValueError:
        allowed = ", ".join(repr(m.value) for m in SubstitutionMode)
        raise DynRenderConfigError(
            f"Invalid config: substitute.mode must be one of {allowed} (got {mode_s!r})."
        ) from None

    if debounce_ms < 0:
        raise DynRenderConfigError("Invalid config: watch.debounce_ms must be >= 0.")

    return DynRenderConfig(
        version=version_i,
        parse=ParseConfig(strict=strict, script_blocks=script_blocks),
        substitute=SubstituteConfig(mode=mode),
        watch=WatchConfig(debounce_ms=debounce_ms),
    )
