from __future__ import annotations

from pathlib import Path

import pytest

from dynrender.config import default_config, find_project_root, load_config
from dynrender.errors import DynRenderConfigError
from dynrender.models import RenderOptions, SubstitutionMode


def test_load_minimal_config_defaults_apply(tmp_path: Path) -> None:
    (tmp_path / "dynrender.toml").write_text("version = 1\n", encoding="utf-8")
    cfg = load_config(root=tmp_path)

    assert cfg.version == 1
    assert cfg.parse.strict is True
    assert cfg.parse.script_blocks is True
    assert cfg.substitute.mode is SubstitutionMode.TEXT
    assert cfg.watch.debounce_ms == 200
    assert cfg == default_config()
    assert cfg.render_options() == RenderOptions()


def test_load_config_overrides_work(tmp_path: Path) -> None:
    (tmp_path / "dynrender.toml").write_text(
        "\n".join(
            [
                "version = 1",
                "",
                "[parse]",
                "strict = false",
                "script_blocks = false",
                "",
                "[substitute]",
                'mode = "position"',
                "",
                "[watch]",
                "debounce_ms = 50",
                "",
            ]
        ),
        encoding="utf-8",
    )

    cfg = load_config(root=tmp_path)
    assert cfg.parse.strict is False
    assert cfg.parse.script_blocks is False
    assert cfg.substitute.mode is SubstitutionMode.POSITION
    assert cfg.watch.debounce_ms == 50
    assert cfg.render_options() == RenderOptions(
        strict=False, script_blocks=False, substitution=SubstitutionMode.POSITION
    )


def test_invalid_toml_raises(tmp_path: Path) -> None:
    (tmp_path / "dynrender.toml").write_text("version = \n", encoding="utf-8")
    with pytest.raises(DynRenderConfigError):
        load_config(root=tmp_path)


def test_missing_config_raises(tmp_path: Path) -> None:
    with pytest.raises(DynRenderConfigError, match="Missing dynrender.toml"):
        load_config(config_path=tmp_path / "dynrender.toml")


@pytest.mark.parametrize(
    "text",
    [
        "",
        "version = 2\n",
        'version = "1"\n',
        "version = 1\nparse = 3\n",
        'version = 1\n[parse]\nstrict = "yes"\n',
        'version = 1\n[substitute]\nmode = "regex"\n',
        "version = 1\n[watch]\ndebounce_ms = -1\n",
        "version = 1\n[watch]\ndebounce_ms = true\n",
    ],
)
def test_invalid_values_raise(tmp_path: Path, text: str) -> None:
    (tmp_path / "dynrender.toml").write_text(text, encoding="utf-8")
    with pytest.raises(DynRenderConfigError):
        load_config(root=tmp_path)


def test_find_project_root_success(tmp_path: Path) -> None:
    (tmp_path / "dynrender.toml").write_text("version = 1\n", encoding="utf-8")
    deep = tmp_path / "a" / "b"
    deep.mkdir(parents=True)

    assert find_project_root(deep) == tmp_path.resolve()
    some_file = deep / "page.md"
    some_file.write_text("# hi\n", encoding="utf-8")
    assert find_project_root(some_file) == tmp_path.resolve()


def test_find_project_root_failure(tmp_path: Path) -> None:
    deep = tmp_path / "a" / "b"
    deep.mkdir(parents=True)
    with pytest.raises(DynRenderConfigError, match="Could not find dynrender.toml"):
        find_project_root(deep)
