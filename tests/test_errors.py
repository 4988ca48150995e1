import pytest

from dynrender.errors import BlockParseError, DynRenderConfigError, DynRenderError


def test_all_errors_are_subclasses_of_dynrender_error() -> None:
    assert issubclass(DynRenderConfigError, DynRenderError)
    assert issubclass(BlockParseError, DynRenderError)


def test_error_message_is_preserved() -> None:
    err = DynRenderConfigError("boom")
    assert str(err) == "boom"


def test_block_parse_error_includes_location() -> None:
    err = BlockParseError("invalid JSON", tag="json", line=7)
    assert err.reason == "invalid JSON"
    assert err.tag == "json"
    assert err.line == 7
    assert str(err) == "```json block at line 7: invalid JSON"


def test_block_parse_error_without_location_is_just_the_reason() -> None:
    assert str(BlockParseError("nope")) == "nope"


def test_can_catch_any_dynrender_error() -> None:
    def raise_one() -> None:
        raise BlockParseError("nope", tag="ts")

    with pytest.raises(DynRenderError):
        raise_one()
