from __future__ import annotations

import argparse
import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dynrender import __version__
from dynrender.errors import BlockParseError, DynRenderConfigError

if TYPE_CHECKING:  # pragma: no cover
    from dynrender.config import DynRenderConfig
    from dynrender.models import RenderOptions


EXIT_OK = 0
EXIT_CONFIG_OR_INPUT = 2
EXIT_PARSE_ERROR = 3


def _add_common_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument("file", type=str, help="Markdown file to read.")
    p.add_argument(
        "--root",
        type=str,
        default=None,
        help="Project root (defaults to searching upward from cwd for dynrender.toml).",
    )
    p.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to dynrender.toml (defaults to <root>/dynrender.toml).",
    )
    p.add_argument(
        "--lenient",
        action="store_true",
        help="Skip malformed blocks instead of failing.",
    )
    p.add_argument(
        "--no-script",
        action="store_true",
        help="Leave ```ts blocks untouched.",
    )
    p.add_argument(
        "--json",
        dest="json_output",
        action="store_true",
        help="Emit machine-readable JSON on stdout.",
    )


def _add_transform_flags(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--id",
        dest="ids",
        action="append",
        default=[],
        help="Renderer id to substitute, in order (repeatable).",
    )
    p.add_argument(
        "--output",
        "-o",
        type=str,
        default=None,
        help="Write the transformed content here instead of stdout.",
    )
    p.add_argument(
        "--position",
        action="store_true",
        help="Replace blocks by position so identical blocks get distinct anchors.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="dynrender")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_p = subparsers.add_parser("scan", help="List fenced component blocks.")
    _add_common_flags(scan_p)

    transform_p = subparsers.add_parser(
        "transform", help="Replace component blocks with anchor placeholders."
    )
    _add_common_flags(transform_p)
    _add_transform_flags(transform_p)

    watch_p = subparsers.add_parser("watch", help="Re-run transform whenever the file changes.")
    _add_common_flags(watch_p)
    _add_transform_flags(watch_p)

    return parser


def parse_args(argv: list[str]) -> argparse.Namespace:
    return _build_parser().parse_args(argv)


def _is_json_mode(args: argparse.Namespace) -> bool:
    return bool(getattr(args, "json_output", False))


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _print_error(e: BaseException) -> None:
    from dynrender.diagnostics import format_error_with_hint

    _eprint(format_error_with_hint(e))


def _config_path(args: argparse.Namespace) -> Path | None:
    """Return the config file the CLI would load, or None when running without one."""
    from dynrender.config import CONFIG_FILENAME, find_project_root

    if args.config:
        return Path(args.config).resolve()
    if args.root:
        return Path(args.root).resolve() / CONFIG_FILENAME
    try:
        return find_project_root(Path.cwd()) / CONFIG_FILENAME
    except DynRenderConfigError:
        # The config file is optional for the CLI.
        return None


def _load_config(args: argparse.Namespace) -> DynRenderConfig:
    from dynrender.config import default_config, load_config

    config_path = _config_path(args)
    if config_path is None:
        return default_config()
    return load_config(config_path=config_path)


def _render_options(args: argparse.Namespace, cfg: DynRenderConfig) -> RenderOptions:
    from dynrender.models import SubstitutionMode

    opts = cfg.render_options()
    if args.lenient:
        opts = replace(opts, strict=False)
    if args.no_script:
        opts = replace(opts, script_blocks=False)
    if getattr(args, "position", False):
        opts = replace(opts, substitution=SubstitutionMode.POSITION)
    return opts


def _read_input(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise DynRenderConfigError(f"Failed reading input file: {path} ({e.strerror})") from e
    except UnicodeDecodeError as e:
        raise DynRenderConfigError(f"Input is not valid UTF-8: {path}") from e


def _manifest_component(renderer_id: str):
    # The CLI has no real components; each render output is a plain record.
    def component(**props: Any) -> dict[str, Any]:
        return {"renderer_id": renderer_id, "props": props}

    return component


def cmd_scan(args: argparse.Namespace) -> int:
    from dynrender.diagnostics import format_scan_report, scan_blocks

    try:
        cfg = _load_config(args)
        opts = _render_options(args, cfg)
        content = _read_input(args.file)
    except DynRenderConfigError as e:
        _print_error(e)
        return EXIT_CONFIG_OR_INPUT

    reports = scan_blocks(content, script_blocks=opts.script_blocks)
    failed = any(r.error is not None for r in reports)
    if _is_json_mode(args):
        payload = {
            "command": "scan",
            "ok": not failed,
            "blocks": [r.to_json() for r in reports],
        }
        print(json.dumps(payload, indent=2, default=str))
    else:
        sys.stdout.write(format_scan_report(reports))

    if failed and opts.strict:
        return EXIT_PARSE_ERROR
    return EXIT_OK


def cmd_transform(args: argparse.Namespace) -> int:
    from dynrender.models import ComponentDefinition
    from dynrender.pipeline import orphaned_bindings, process_content

    try:
        cfg = _load_config(args)
        opts = _render_options(args, cfg)
        content = _read_input(args.file)
        if not args.ids:
            raise DynRenderConfigError("transform needs at least one --id")

        definitions = [ComponentDefinition(rid, _manifest_component(rid)) for rid in args.ids]
        result = process_content(content, definitions, render=opts)

        if args.output:
            try:
                Path(args.output).write_text(result.transformed_content, encoding="utf-8")
            except OSError as e:
                raise DynRenderConfigError(
                    f"Failed writing output file: {args.output} ({e.strerror})"
                ) from e
    except DynRenderConfigError as e:
        _print_error(e)
        return EXIT_CONFIG_OR_INPUT
    except BlockParseError as e:
        _print_error(e)
        return EXIT_PARSE_ERROR

    if _is_json_mode(args):
        bindings = []
        for b in result.bindings:
            rendered = b.render()
            bindings.append(
                {
                    "anchor_id": b.anchor_id,
                    "renderer_id": rendered["renderer_id"],
                    "props": rendered["props"],
                }
            )
        payload: dict[str, object] = {
            "command": "transform",
            "ok": True,
            "bindings": bindings,
            "orphaned": [b.anchor_id for b in orphaned_bindings(result)],
        }
        if args.output:
            payload["output"] = args.output
        else:
            payload["content"] = result.transformed_content
        print(json.dumps(payload, indent=2, default=str))
    elif not args.output:
        sys.stdout.write(result.transformed_content)
    return EXIT_OK


def cmd_watch(args: argparse.Namespace) -> int:
    from dynrender import watcher

    try:
        watcher.check_watchfiles_available()
        cfg = _load_config(args)
    except ImportError as e:
        _print_error(e)
        return EXIT_CONFIG_OR_INPUT
    except DynRenderConfigError as e:
        _print_error(e)
        return EXIT_CONFIG_OR_INPUT

    targets = watcher.WatchTargets.of([Path(args.file)], config=_config_path(args))
    runner = watcher.build_cycle_runner(args)
    json_mode = _is_json_mode(args)

    def on_event(msg: str) -> None:
        _eprint(msg)

    def on_cycle_result(result: watcher.WatchCycleResult) -> None:
        if json_mode:
            print(json.dumps(watcher.format_watch_cycle_json(result)))

    def on_error(exc: BaseException) -> None:
        _print_error(exc)

    cmd_transform(args)
    changes = watcher.make_watchfiles_iter(targets, debounce_ms=cfg.watch.debounce_ms)
    try:
        asyncio.run(
            watcher.run_watch_loop(
                changes_iter=changes,
                run_cycle=runner,
                targets=targets,
                on_event=on_event,
                on_cycle_result=on_cycle_result,
                on_error=on_error,
            )
        )
    except KeyboardInterrupt:
        pass
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    try:
        args = parse_args(list(sys.argv[1:] if argv is None else argv))
    except SystemExit as e:
        # argparse uses SystemExit for --help/--version and parse errors.
        code = e.code
        return int(code) if isinstance(code, int) else EXIT_CONFIG_OR_INPUT

    if args.command == "scan":
        return cmd_scan(args)
    if args.command == "transform":
        return cmd_transform(args)
    if args.command == "watch":
        return cmd_watch(args)

    return EXIT_CONFIG_OR_INPUT


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
