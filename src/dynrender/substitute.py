"""Replace matched blocks with anchor placeholders."""

from __future__ import annotations

from collections.abc import Iterable, Sequence

from dynrender.blocks import TAG_ORDER, SyntaxTag
from dynrender.matching import BlockMatch, collect_matches
from dynrender.models import RenderOptions, SubstitutionMode, anchor_markup


def _replace_text(content: str, matches: Sequence[BlockMatch]) -> str:
    # Literal replacement of every occurrence: a block repeated verbatim
    # collapses onto the anchor of its first match, and later identical
    # matches find nothing left to replace.
    out = content
    for m in matches:
        out = out.replace(m.block.text, anchor_markup(m.anchor_id))
    return out


def _replace_spans(content: str, matches: Sequence[BlockMatch]) -> str:
    parts: list[str] = []
    cursor = 0
    for m in sorted(matches, key=lambda m: m.block.start):
        parts.append(content[cursor : m.block.start])
        parts.append(anchor_markup(m.anchor_id))
        cursor = m.block.end
    parts.append(content[cursor:])
    return "".join(parts)


def apply_matches(
    content: str,
    matches: Sequence[BlockMatch],
    *,
    mode: SubstitutionMode = SubstitutionMode.TEXT,
) -> str:
    """Substitute `matches` (as returned by `collect_matches` for `content`)."""

    if not matches:
        return content
    if mode is SubstitutionMode.POSITION:
        return _replace_spans(content, matches)
    return _replace_text(content, matches)


def substitute_placeholders(
    content: str,
    renderer_id: str,
    tags: Iterable[SyntaxTag] = TAG_ORDER,
    *,
    options: RenderOptions | None = None,
) -> str:
    """Return `content` with every block rendered by `renderer_id` replaced by
    ``<div id="{renderer_id}-{index}"></div>``."""

    opts = options or RenderOptions()
    matches = collect_matches(content, renderer_id, tags, options=opts)
    return apply_matches(content, matches, mode=opts.substitution)
