"""Pair anchor ids with deferred render-output factories."""

from __future__ import annotations

import functools
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from dynrender.blocks import TAG_ORDER, SyntaxTag
from dynrender.matching import BlockMatch, collect_matches
from dynrender.models import ComponentBinding, RenderOptions


def bindings_for_matches(
    matches: Sequence[BlockMatch], component: Callable[..., Any]
) -> list[ComponentBinding]:
    out: list[ComponentBinding] = []
    for m in matches:
        # Each factory owns a copy so callers mutating props cannot leak
        # between renders.
        factory = functools.partial(component, **dict(m.descriptor.props))
        out.append(ComponentBinding(anchor_id=m.anchor_id, factory=factory))
    return out


def build_bindings(
    content: str,
    renderer_id: str,
    component: Callable[..., Any],
    tags: Iterable[SyntaxTag] = TAG_ORDER,
    *,
    options: RenderOptions | None = None,
) -> list[ComponentBinding]:
    """Return one binding per block rendered by `renderer_id`, in anchor order.

    The factory of each binding calls ``component(**props)`` when invoked.
    """

    matches = collect_matches(content, renderer_id, tags, options=options)
    return bindings_for_matches(matches, component)
