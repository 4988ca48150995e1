"""Turn raw fenced blocks into component descriptors."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from dynrender.blocks import RawBlock, SyntaxTag
from dynrender.errors import BlockParseError
from dynrender.models import DYNAMIC_RENDERER, ComponentDescriptor
from dynrender.script import read_spec


def descriptor_from_mapping(data: Any) -> ComponentDescriptor | None:
    """Build a descriptor from a parsed value.

    Values that are not mappings describe nothing and yield None.
    """

    if not isinstance(data, Mapping):
        return None
    kind = data.get("type")
    props = data.get("props")
    if props is None:
        props = {}
    elif not isinstance(props, Mapping):
        if kind != DYNAMIC_RENDERER:
            # Never rendered, so its props are not validated.
            return ComponentDescriptor(kind=kind, id=data.get("id"))
        raise BlockParseError(f"`props` must be an object, got {type(props).__name__}")
    return ComponentDescriptor(kind=kind, id=data.get("id"), props=dict(props))


def _reject_constant(name: str) -> Any:
    raise BlockParseError(f"invalid JSON: {name} is not allowed")


def _parse_data(body: str) -> Any:
    try:
        return json.loads(body, parse_constant=_reject_constant)
    except json.JSONDecodeError as e:
        raise BlockParseError(f"invalid JSON: {e.msg} (line {e.lineno}, column {e.colno})") from e


def parse_body(body: str, tag: SyntaxTag) -> ComponentDescriptor | None:
    if tag is SyntaxTag.DATA:
        return descriptor_from_mapping(_parse_data(body))
    if tag is SyntaxTag.SCRIPT:
        return descriptor_from_mapping(read_spec(body))
    raise ValueError(f"unknown syntax tag: {tag!r}")  # pragma: no cover


def parse_block(
    block: RawBlock,
    *,
    content: str | None = None,
    allow_script: bool = True,
) -> ComponentDescriptor | None:
    """Parse one block; errors are re-raised with the block's tag and line.

    `content` is the text the block was scanned from and is only used to
    report the line number.
    """

    if block.tag is SyntaxTag.SCRIPT and not allow_script:
        return None
    try:
        return parse_body(block.body, block.tag)
    except BlockParseError as e:
        line = block.line_in(content) if content is not None else None
        raise BlockParseError(e.reason, tag=block.tag.value, line=line) from e
