"""Run several renderer identities over one piece of content.

Definitions are applied in the order given. Each pass scans the content as
left by the previous pass, so a later definition never sees blocks an earlier
one already replaced:

    result = process_content(markdown, [
        ComponentDefinition("chart", Chart),
        ComponentDefinition("badge", Badge),
    ])
    for binding in result.bindings:
        mount(binding.anchor_id, binding.factory)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dynrender.blocks import is_dynamic_content
from dynrender.matching import report_skipped_blocks
from dynrender.models import (
    ComponentBinding,
    ComponentDefinition,
    RenderFactory,
    RenderOptions,
    TransformResult,
    anchor_markup,
)
from dynrender.renderer import DynamicRenderer

logger = logging.getLogger("dynrender.pipeline")

DefinitionLike = ComponentDefinition | Mapping[str, Any]


@dataclass(frozen=True, slots=True)
class ProcessOptions:
    initial_content: str
    component_definitions: Sequence[DefinitionLike] = field(default_factory=tuple)
    render: RenderOptions = field(default_factory=RenderOptions)


def _as_definition(value: DefinitionLike) -> ComponentDefinition:
    if isinstance(value, ComponentDefinition):
        return value
    if isinstance(value, Mapping):
        return ComponentDefinition.from_mapping(value)
    raise TypeError(f"expected a ComponentDefinition, got {type(value).__name__}")


def process_dynamic_components(options: ProcessOptions) -> TransformResult:
    """Apply every definition in `options` to its initial content."""

    definitions = [_as_definition(d) for d in options.component_definitions]
    content = options.initial_content
    bindings: list[ComponentBinding] = []

    if not definitions or not is_dynamic_content(content):
        return TransformResult(transformed_content=content, bindings=bindings)

    if not options.render.strict:
        report_skipped_blocks(content, options=options.render)

    for definition in definitions:
        renderer = DynamicRenderer.from_definition(definition, options=options.render)
        step = renderer.transform(content, log_skips=False)
        content = step.transformed_content
        bindings.extend(step.bindings)

    result = TransformResult(transformed_content=content, bindings=bindings)
    orphans = orphaned_bindings(result)
    if orphans:
        logger.warning(
            "%d binding(s) have no anchor in the transformed content "
            "(identical blocks collapsed): %s",
            len(orphans),
            ", ".join(b.anchor_id for b in orphans),
        )
    return result


def process_content(
    content: str,
    definitions: Iterable[DefinitionLike],
    *,
    render: RenderOptions | None = None,
) -> TransformResult:
    """Positional-argument form of `process_dynamic_components`."""

    return process_dynamic_components(
        ProcessOptions(
            initial_content=content,
            component_definitions=tuple(definitions),
            render=render or RenderOptions(),
        )
    )


def orphaned_bindings(result: TransformResult) -> list[ComponentBinding]:
    """Bindings whose anchor markup does not appear in the transformed content."""

    return [
        b for b in result.bindings if anchor_markup(b.anchor_id) not in result.transformed_content
    ]


def hydrate(
    bindings: Iterable[ComponentBinding],
    mount: Callable[[str, RenderFactory], object],
) -> int:
    """Call ``mount(anchor_id, factory)`` once per binding; return the call count.

    Locating the anchor and deciding whether to render is up to `mount`.
    """

    count = 0
    for b in bindings:
        mount(b.anchor_id, b.factory)
        count += 1
    return count
