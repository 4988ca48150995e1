from __future__ import annotations

from collections.abc import Callable
from typing import Any

from dynrender.bindings import bindings_for_matches, build_bindings
from dynrender.matching import collect_matches
from dynrender.models import (
    ComponentBinding,
    ComponentDefinition,
    RenderOptions,
    TransformResult,
)
from dynrender.substitute import apply_matches, substitute_placeholders


class DynamicRenderer:
    """Substitution and binding for a single renderer identity.

    Blocks whose descriptor has ``type == "dynamicRenderer"`` and ``id ==
    renderer_id`` are replaced by anchors, and each anchor is paired with a
    factory calling ``component(**props)``.
    """

    def __init__(
        self,
        renderer_id: str,
        component: Callable[..., Any],
        *,
        options: RenderOptions | None = None,
    ) -> None:
        if not isinstance(renderer_id, str):
            raise TypeError(f"renderer_id must be a string, got {type(renderer_id).__name__}")
        if not callable(component):
            raise TypeError(f"component for {renderer_id!r} is not callable")
        self.id = renderer_id
        self.component = component
        self.options = options or RenderOptions()

    @classmethod
    def from_definition(
        cls, definition: ComponentDefinition, *, options: RenderOptions | None = None
    ) -> DynamicRenderer:
        return cls(definition.id, definition.component, options=options)

    def __repr__(self) -> str:
        return f"DynamicRenderer(id={self.id!r}, component={self.component!r})"

    def process_injection_blocks(self, content: str) -> str:
        return substitute_placeholders(content, self.id, options=self.options)

    def generate_component_pairs(self, content: str) -> list[ComponentBinding]:
        return build_bindings(content, self.id, self.component, options=self.options)

    def transform(self, content: str, *, log_skips: bool = True) -> TransformResult:
        """Substitute and bind in one scan of `content`.

        Equivalent to calling `process_injection_blocks` and
        `generate_component_pairs` on the same input. `log_skips` controls the
        lenient-mode warning for malformed blocks.
        """

        matches = collect_matches(content, self.id, options=self.options, log_skips=log_skips)
        return TransformResult(
            transformed_content=apply_matches(content, matches, mode=self.options.substitution),
            bindings=bindings_for_matches(matches, self.component),
        )
