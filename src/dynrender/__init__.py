from __future__ import annotations

from importlib.metadata import PackageNotFoundError, version

from dynrender.bindings import build_bindings
from dynrender.blocks import RawBlock, SyntaxTag, extract_blocks, is_dynamic_content
from dynrender.errors import BlockParseError, DynRenderConfigError, DynRenderError
from dynrender.models import (
    DYNAMIC_RENDERER,
    ComponentBinding,
    ComponentDefinition,
    ComponentDescriptor,
    RenderOptions,
    SubstitutionMode,
    TransformResult,
)
from dynrender.parsing import parse_block
from dynrender.pipeline import (
    ProcessOptions,
    hydrate,
    orphaned_bindings,
    process_content,
    process_dynamic_components,
)
from dynrender.renderer import DynamicRenderer
from dynrender.substitute import substitute_placeholders


def _package_version() -> str:
    try:
        return version("dynrender")
    except PackageNotFoundError:
        # Running from a source checkout, or otherwise not installed.
        return "0.0.0"


__version__ = _package_version()

__all__ = [
    "DYNAMIC_RENDERER",
    "BlockParseError",
    "ComponentBinding",
    "ComponentDefinition",
    "ComponentDescriptor",
    "DynRenderConfigError",
    "DynRenderError",
    "DynamicRenderer",
    "ProcessOptions",
    "RawBlock",
    "RenderOptions",
    "SubstitutionMode",
    "SyntaxTag",
    "TransformResult",
    "__version__",
    "build_bindings",
    "extract_blocks",
    "hydrate",
    "is_dynamic_content",
    "orphaned_bindings",
    "parse_block",
    "process_content",
    "process_dynamic_components",
    "substitute_placeholders",
]
