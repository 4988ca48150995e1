"""Find the blocks that belong to one renderer identity and number them."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from dynrender.blocks import TAG_ORDER, RawBlock, SyntaxTag, extract_blocks
from dynrender.errors import BlockParseError
from dynrender.models import ComponentDescriptor, RenderOptions, anchor_id
from dynrender.parsing import parse_block

logger = logging.getLogger("dynrender.matching")


@dataclass(frozen=True, slots=True)
class BlockMatch:
    block: RawBlock
    descriptor: ComponentDescriptor
    anchor_id: str


def _ordered_tags(tags: Iterable[SyntaxTag]) -> list[SyntaxTag]:
    wanted = set(tags)
    return [t for t in TAG_ORDER if t in wanted]


def _parse_all(
    content: str,
    tags: Iterable[SyntaxTag],
    opts: RenderOptions,
) -> list[tuple[RawBlock, ComponentDescriptor | None, BlockParseError | None]]:
    out: list[tuple[RawBlock, ComponentDescriptor | None, BlockParseError | None]] = []
    for tag in _ordered_tags(tags):
        if tag is SyntaxTag.SCRIPT and not opts.script_blocks:
            continue
        for block in extract_blocks(content, tag):
            try:
                desc = parse_block(block, content=content, allow_script=opts.script_blocks)
            except BlockParseError as e:
                out.append((block, None, e))
                continue
            out.append((block, desc, None))
    return out


def iter_descriptors(
    content: str,
    tags: Iterable[SyntaxTag] = TAG_ORDER,
    *,
    options: RenderOptions | None = None,
    log_skips: bool = True,
) -> list[tuple[RawBlock, ComponentDescriptor | None]]:
    """Parse every block of `tags` (data blocks first) in `content`.

    With ``options.strict`` the first malformed block raises; otherwise it is
    skipped and left in the content as literal text, with a warning unless
    `log_skips` is off.
    """

    opts = options or RenderOptions()
    out: list[tuple[RawBlock, ComponentDescriptor | None]] = []
    for block, desc, err in _parse_all(content, tags, opts):
        if err is not None:
            if opts.strict:
                raise err
            if log_skips:
                logger.warning("Skipping unparseable block: %s", err)
            continue
        out.append((block, desc))
    return out


def report_skipped_blocks(
    content: str,
    tags: Iterable[SyntaxTag] = TAG_ORDER,
    *,
    options: RenderOptions | None = None,
) -> list[BlockParseError]:
    """Log one warning per malformed block in `content` and return the errors.

    Used when several renderers scan the same text in turn: the malformed
    blocks survive every pass unchanged, so they are reported once, against
    the lines of the text as given.
    """

    parsed = _parse_all(content, tags, options or RenderOptions())
    errors = [err for _, _, err in parsed if err is not None]
    for err in errors:
        logger.warning("Skipping unparseable block: %s", err)
    return errors


def collect_matches(
    content: str,
    renderer_id: str,
    tags: Iterable[SyntaxTag] = TAG_ORDER,
    *,
    options: RenderOptions | None = None,
    log_skips: bool = True,
) -> list[BlockMatch]:
    """Return the blocks rendered by `renderer_id`, numbered from 0.

    Matches are gathered first and numbered in a single pass afterwards, so the
    anchor index is the position in this list: every data block precedes every
    script block regardless of where they sit in the text.
    """

    found = [
        (block, desc)
        for block, desc in iter_descriptors(content, tags, options=options, log_skips=log_skips)
        if desc is not None and desc.matches(renderer_id)
    ]
    matches = [
        BlockMatch(block=block, descriptor=desc, anchor_id=anchor_id(renderer_id, index))
        for index, (block, desc) in enumerate(found)
    ]
    logger.debug("Renderer %r matched %d block(s)", renderer_id, len(matches))
    return matches
