"""Error formatting, actionable hints and block reports for CLI output.

Keep this module small and dependency-light: it is imported by the CLI layer
and only depends on the error hierarchy and the block scanner.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from dynrender.blocks import TAG_ORDER, SyntaxTag, extract_blocks
from dynrender.config import CONFIG_FILENAME
from dynrender.errors import BlockParseError, DynRenderConfigError
from dynrender.parsing import parse_block


@dataclass(frozen=True, slots=True)
class BlockReport:
    tag: str
    line: int
    kind: Any
    id: Any
    props: dict[str, Any]
    error: str | None = None

    def to_json(self) -> dict[str, object]:
        return {
            "tag": self.tag,
            "line": self.line,
            "kind": self.kind,
            "id": self.id,
            "props": self.props,
            "error": self.error,
        }


def scan_blocks(content: str, *, script_blocks: bool = True) -> list[BlockReport]:
    """Describe every fenced block, data blocks first; parse errors are reported, not raised."""

    reports: list[BlockReport] = []
    for tag in TAG_ORDER:
        if tag is SyntaxTag.SCRIPT and not script_blocks:
            continue
        for block in extract_blocks(content, tag):
            line = block.line_in(content)
            try:
                desc = parse_block(block, content=content)
            except BlockParseError as e:
                reports.append(
                    BlockReport(tag=tag.value, line=line, kind=None, id=None, props={}, error=e.reason)
                )
                continue
            if desc is None:
                reports.append(BlockReport(tag=tag.value, line=line, kind=None, id=None, props={}))
            else:
                reports.append(
                    BlockReport(
                        tag=tag.value, line=line, kind=desc.kind, id=desc.id, props=desc.props
                    )
                )
    return reports


def format_scan_report(reports: list[BlockReport]) -> str:
    """Format block reports into a human-readable summary."""
    if not reports:
        return "No fenced blocks found.\n"
    lines = [f"Found {len(reports)} block(s):\n"]
    for r in reports:
        head = f"  line {r.line} ```{r.tag}"
        if r.error is not None:
            lines.append(f"{head}  error: {r.error}")
            continue
        if r.kind is None:
            lines.append(f"{head}  (not an object)")
            continue
        lines.append(f"{head}  type={r.kind} id={r.id}")
        if r.props:
            lines.append(f"    props: {json.dumps(r.props, sort_keys=True, default=str)}")
    return "\n".join(lines).rstrip() + "\n"


def format_hint(exc: BaseException) -> str | None:
    """Return an actionable hint for a known error, or None."""
    msg = str(exc)

    if isinstance(exc, DynRenderConfigError):
        if CONFIG_FILENAME in msg and "find" in msg.lower():
            return f"create a {CONFIG_FILENAME} with `version = 1`, or pass --config"
        return None

    if isinstance(exc, BlockParseError):
        if exc.tag == SyntaxTag.DATA.value:
            return "data blocks must contain strict JSON (double quotes, no trailing commas)"
        if exc.tag == SyntaxTag.SCRIPT.value:
            return (
                "script blocks are read, not run: declare `const spec = {...}` "
                "using literals only, or pass --no-script to leave them untouched"
            )
        return "pass --lenient to skip malformed blocks"

    return None


def format_error_with_hint(exc: BaseException) -> str:
    """Format error message + optional hint for stderr output."""
    msg = (str(exc) or repr(exc)).strip()
    result = f"error: {msg}"
    hint = format_hint(exc)
    if hint:
        result += f"\nhint: {hint}"
    return result
