"""Fenced block scanning.

A block opens with three backticks immediately followed by the syntax tag and
a newline, and closes at the nearest following newline + three backticks:

    ```json
    {"type": "dynamicRenderer", "id": "chart"}
    ```

Whitespace between the backticks and the tag is not accepted. Scanning never
raises; malformed fencing simply produces no match.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterator
from dataclasses import dataclass

FENCE = "```"


class SyntaxTag(enum.Enum):
    """Fence language marker; selects the parse strategy for a block."""

    DATA = "json"
    SCRIPT = "ts"

    @property
    def opener(self) -> str:
        return f"{FENCE}{self.value}\n"


# Data blocks are always numbered before script blocks.
TAG_ORDER: tuple[SyntaxTag, ...] = (SyntaxTag.DATA, SyntaxTag.SCRIPT)


@dataclass(frozen=True, slots=True)
class RawBlock:
    tag: SyntaxTag
    body: str
    text: str
    start: int
    end: int

    def line_in(self, content: str) -> int:
        """1-based line number of the opening fence within `content`."""

        return content.count("\n", 0, self.start) + 1


class FenceScanner:
    """Locates fenced blocks of one syntax tag.

    The pattern is compiled once per tag; use `scanner_for` rather than
    constructing scanners directly.
    """

    __slots__ = ("tag", "_pattern")

    def __init__(self, tag: SyntaxTag) -> None:
        self.tag = tag
        self._pattern = re.compile(
            re.escape(FENCE + tag.value) + r"\n([\s\S]*?)\n" + re.escape(FENCE)
        )

    def scan(self, content: str) -> Iterator[RawBlock]:
        for m in self._pattern.finditer(content):
            yield RawBlock(
                tag=self.tag,
                body=m.group(1),
                text=m.group(0),
                start=m.start(),
                end=m.end(),
            )


_SCANNERS: dict[SyntaxTag, FenceScanner] = {tag: FenceScanner(tag) for tag in SyntaxTag}


def scanner_for(tag: SyntaxTag) -> FenceScanner:
    return _SCANNERS[tag]


def extract_blocks(content: str, tag: SyntaxTag) -> list[RawBlock]:
    """Return all blocks of `tag` in order of appearance (empty if none)."""

    if not isinstance(content, str) or not content:
        return []
    return list(scanner_for(tag).scan(content))


def extract_bodies(content: str, tag: SyntaxTag) -> list[str]:
    return [b.body for b in extract_blocks(content, tag)]


def is_dynamic_content(content: str) -> bool:
    """Cheap pre-check: does `content` contain an opener for any known tag?"""

    return any(tag.opener in content for tag in SyntaxTag)
