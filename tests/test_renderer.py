from __future__ import annotations

from typing import Any

import pytest

from dynrender.models import ComponentDefinition, RenderOptions, SubstitutionMode
from dynrender.renderer import DynamicRenderer

F = "```"

CONTENT = "\n".join(
    [
        "# Report",
        f'{F}json\n{{"type": "dynamicRenderer", "id": "chart", "props": {{"kind": "bar"}}}}\n{F}',
        "Some prose.",
        f'{F}ts\nconst spec = {{ type: "dynamicRenderer", id: "chart", props: {{ kind: `pie` }} }}\n{F}',
    ]
)


def chart(**props: Any) -> str:
    return f"chart:{props['kind']}"


def test_transform_matches_separate_calls() -> None:
    r = DynamicRenderer("chart", chart)
    result = r.transform(CONTENT)

    assert result.transformed_content == r.process_injection_blocks(CONTENT)
    assert result.anchor_ids == [b.anchor_id for b in r.generate_component_pairs(CONTENT)]
    assert result.transformed_content == (
        '# Report\n<div id="chart-0"></div>\nSome prose.\n<div id="chart-1"></div>'
    )
    assert [b.render() for b in result.bindings] == ["chart:bar", "chart:pie"]


def test_from_definition() -> None:
    r = DynamicRenderer.from_definition(ComponentDefinition("chart", chart))
    assert r.id == "chart"
    assert r.component is chart
    assert r.options == RenderOptions()
    assert "chart" in repr(r)


def test_options_are_used() -> None:
    opts = RenderOptions(script_blocks=False, substitution=SubstitutionMode.POSITION)
    result = DynamicRenderer("chart", chart, options=opts).transform(CONTENT)
    assert result.anchor_ids == ["chart-0"]
    assert f"{F}ts\n" in result.transformed_content


def test_invalid_construction() -> None:
    with pytest.raises(TypeError):
        DynamicRenderer(None, chart)  # type: ignore[arg-type]
    with pytest.raises(TypeError):
        DynamicRenderer("chart", "not callable")  # type: ignore[arg-type]


def test_empty_renderer_id_is_allowed() -> None:
    content = f'{F}json\n{{"type": "dynamicRenderer", "id": "", "props": {{"kind": "x"}}}}\n{F}'
    result = DynamicRenderer("", chart).transform(content)
    assert result.transformed_content == '<div id="-0"></div>'
    assert [b.render() for b in result.bindings] == ["chart:x"]


def test_transform_can_silence_skip_warnings(caplog: pytest.LogCaptureFixture) -> None:
    content = f"{F}json\n{{oops\n{F}\n"
    r = DynamicRenderer("chart", chart, options=RenderOptions(strict=False))
    with caplog.at_level("WARNING", logger="dynrender.matching"):
        r.transform(content, log_skips=False)
    assert "Skipping unparseable" not in caplog.text
    with caplog.at_level("WARNING", logger="dynrender.matching"):
        r.transform(content)
    assert "```json block at line 1" in caplog.text
