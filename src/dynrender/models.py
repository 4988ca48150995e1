from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from dynrender.errors import DynRenderConfigError

DYNAMIC_RENDERER = "dynamicRenderer"

RenderFactory = Callable[[], Any]


class SubstitutionMode(enum.Enum):
    """How matched blocks are replaced in the content.

    TEXT replaces every verbatim occurrence of a block's fenced text, so
    identical blocks collapse onto the anchor of the first one. POSITION
    replaces only the span each block was found at.
    """

    TEXT = "text"
    POSITION = "position"


@dataclass(frozen=True, slots=True)
class RenderOptions:
    strict: bool = True
    script_blocks: bool = True
    substitution: SubstitutionMode = SubstitutionMode.TEXT


@dataclass(frozen=True, slots=True)
class ComponentDescriptor:
    kind: Any
    id: Any
    props: dict[str, Any] = field(default_factory=dict)

    def is_dynamic(self) -> bool:
        return self.kind == DYNAMIC_RENDERER

    def matches(self, renderer_id: str) -> bool:
        return self.is_dynamic() and self.id == renderer_id


@dataclass(frozen=True, slots=True)
class ComponentDefinition:
    """A renderer identity: blocks with `id` are rendered by `component(**props)`."""

    id: str
    component: Callable[..., Any]

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> ComponentDefinition:
        """Accept ``{"id": ..., "component": ...}``, or ``Component`` as the key."""
        if "id" not in data:
            raise DynRenderConfigError("component definition is missing `id`")
        for key in ("component", "Component"):
            if key in data:
                return cls(id=data["id"], component=data[key])
        raise DynRenderConfigError(f"component definition {data['id']!r} is missing `component`")


@dataclass(frozen=True, slots=True)
class ComponentBinding:
    anchor_id: str
    factory: RenderFactory

    def render(self) -> Any:
        return self.factory()


@dataclass(frozen=True, slots=True)
class TransformResult:
    transformed_content: str
    bindings: list[ComponentBinding] = field(default_factory=list)

    @property
    def anchor_ids(self) -> list[str]:
        return [b.anchor_id for b in self.bindings]


def anchor_id(renderer_id: str, index: int) -> str:
    return f"{renderer_id}-{index}"


def anchor_markup(anchor: str) -> str:
    return f'<div id="{anchor}"></div>'
