"""Restricted reader for ```ts descriptor snippets.

Script blocks are *read*, never executed. The accepted language is a small
subset of TypeScript declarations whose initializers build literal data:

    // comments are fine
    const label = `<b>"quoted"</b> markup without escaping`;
    const spec = {
      type: "dynamicRenderer",
      id: "badge",
      props: { label, sizes: [1, 2.5, -3], visible: true },
    } as const;

Supported: ``const``/``let``/``var`` (optionally ``export``ed), object and
array literals with trailing commas, shorthand properties, single/double/backtick
strings (backtick strings may not interpolate), numbers, ``true``/``false``/
``null``/``undefined``/``NaN``/``Infinity``, references to names declared
earlier in the same snippet, type annotations and ``as``/``satisfies`` clauses
(which are skipped). Everything else is a `BlockParseError`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

from dynrender.errors import BlockParseError

SPEC_NAME = "spec"

_DECL_KEYWORDS = frozenset({"const", "let", "var"})
_CONSTANTS: dict[str, Any] = {
    "true": True,
    "false": False,
    "null": None,
    "undefined": None,
    "NaN": float("nan"),
    "Infinity": float("inf"),
}

_TOKEN_RE = re.compile(
    r"""
    (?P<ws>\s+)
  | (?P<line_comment>//[^\n]*)
  | (?P<block_comment>/\*[\s\S]*?\*/)
  | (?P<string>"(?:[^"\\\n]|\\[\s\S])*"|'(?:[^'\\\n]|\\[\s\S])*')
  | (?P<template>`(?:[^`\\]|\\[\s\S])*`)
  | (?P<number>0[xX][0-9a-fA-F]+|(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)
  | (?P<name>[A-Za-z_$][\w$]*)
  | (?P<punct>\.\.\.|[{}\[\](),:;=<>|&?.+\-*])
    """,
    re.VERBOSE,
)

_SIMPLE_ESCAPES = {
    "n": "\n",
    "t": "\t",
    "r": "\r",
    "b": "\b",
    "f": "\f",
    "v": "\v",
    "0": "\0",
}
_ESCAPE_RE = re.compile(r"\\(u\{[0-9a-fA-F]+\}|u[0-9a-fA-F]{4}|x[0-9a-fA-F]{2}|\r\n|[\s\S])")


@dataclass(frozen=True, slots=True)
class Token:
    kind: str
    value: str
    pos: int


def _line_of(source: str, pos: int) -> int:
    return source.count("\n", 0, pos) + 1


def tokenize(source: str) -> list[Token]:
    tokens: list[Token] = []
    pos = 0
    while pos < len(source):
        m = _TOKEN_RE.match(source, pos)
        if m is None:
            if source.startswith("/*", pos):
                raise BlockParseError(f"unterminated comment (line {_line_of(source, pos)})")
            if source[pos] in "\"'`":
                raise BlockParseError(f"unterminated string (line {_line_of(source, pos)})")
            raise BlockParseError(
                f"unexpected character {source[pos]!r} (line {_line_of(source, pos)})"
            )
        kind = m.lastgroup
        assert kind is not None
        if kind not in ("ws", "line_comment", "block_comment"):
            tokens.append(Token(kind=kind, value=m.group(0), pos=pos))
        pos = m.end()
    return tokens


def _unescape(raw: str) -> str:
    def repl(m: re.Match[str]) -> str:
        esc = m.group(1)
        if esc in ("\n", "\r\n", "\r", "\u2028", "\u2029"):
            # Line continuation.
            return ""
        if esc.startswith("u{"):
            code = int(esc[2:-1], 16)
            if code > 0x10FFFF:
                raise BlockParseError(f"invalid code point escape \\{esc}")
            return chr(code)
        if esc.startswith("u") and len(esc) == 5:
            return chr(int(esc[1:], 16))
        if esc.startswith("x") and len(esc) == 3:
            return chr(int(esc[1:], 16))
        return _SIMPLE_ESCAPES.get(esc, esc)

    return _ESCAPE_RE.sub(repl, raw)


def _number(text: str) -> int | float:
    if text[:2] in ("0x", "0X"):
        return int(text, 16)
    if any(c in text for c in ".eE"):
        return float(text)
    return int(text)


class _SnippetReader:
    def __init__(self, source: str) -> None:
        self.source = source
        self.tokens = tokenize(source)
        self.i = 0
        self.names: dict[str, Any] = {}

    # -- token helpers -------------------------------------------------------

    def _peek(self) -> Token | None:
        return self.tokens[self.i] if self.i < len(self.tokens) else None

    def _next(self) -> Token:
        tok = self._peek()
        if tok is None:
            raise BlockParseError("unexpected end of snippet")
        self.i += 1
        return tok

    def _at(self, value: str) -> bool:
        tok = self._peek()
        return tok is not None and tok.kind in ("punct", "name") and tok.value == value

    def _accept(self, value: str) -> bool:
        if self._at(value):
            self.i += 1
            return True
        return False

    def _expect(self, value: str) -> Token:
        tok = self._next()
        if tok.value != value or tok.kind not in ("punct", "name"):
            raise self._error(f"expected {value!r} but found {tok.value!r}", tok)
        return tok

    def _error(self, msg: str, tok: Token | None = None) -> BlockParseError:
        tok = tok or self._peek()
        if tok is not None:
            msg = f"{msg} (line {_line_of(self.source, tok.pos)})"
        return BlockParseError(msg)

    # -- grammar ---------------------------------------------------------------

    def read(self) -> dict[str, Any]:
        while self._peek() is not None:
            if self._accept(";"):
                continue
            self._declaration()
        return self.names

    def _declaration(self) -> None:
        self._accept("export")
        tok = self._next()
        if tok.kind != "name" or tok.value not in _DECL_KEYWORDS:
            raise self._error(
                f"only const/let/var declarations are allowed, found {tok.value!r}", tok
            )
        while True:
            name_tok = self._next()
            if name_tok.kind != "name" or name_tok.value in _CONSTANTS:
                raise self._error(f"invalid declaration name {name_tok.value!r}", name_tok)
            if self._accept(":"):
                self._skip_type(stop={"="})
            self._expect("=")
            value = self._value()
            self._skip_type_assertions()
            self.names[name_tok.value] = value
            if not self._accept(","):
                break
        if not self._accept(";"):
            nxt = self._peek()
            if nxt is not None and not (
                nxt.kind == "name" and nxt.value in _DECL_KEYWORDS | {"export"}
            ):
                raise self._error(f"unexpected {nxt.value!r} after declaration", nxt)

    def _skip_type_assertions(self) -> None:
        while self._at("as") or self._at("satisfies"):
            self.i += 1
            if self._accept("const"):
                continue
            self._skip_type(stop={";", ","})

    def _skip_type(self, *, stop: set[str]) -> None:
        """Skip a type expression up to a top-level stop token or declaration keyword."""

        depth = 0
        start = self.i
        while True:
            tok = self._peek()
            if tok is None:
                break
            if depth == 0:
                if tok.kind == "punct" and tok.value in stop:
                    break
                if tok.kind == "name" and tok.value in _DECL_KEYWORDS | {"export"}:
                    break
            if tok.kind == "punct" and tok.value in "{[(<":
                depth += 1
            elif tok.kind == "punct" and tok.value in "}])>":
                depth -= 1
                if depth < 0:
                    raise self._error(f"unbalanced {tok.value!r} in type", tok)
            self.i += 1
        if self.i == start:
            raise self._error("expected a type")

    def _value(self) -> Any:
        tok = self._next()
        if tok.kind == "string":
            return _unescape(tok.value[1:-1])
        if tok.kind == "template":
            body = tok.value[1:-1]
            if re.search(r"(?<!\\)(?:\\\\)*\$\{", body):
                raise self._error("template interpolation is not allowed", tok)
            return _unescape(body)
        if tok.kind == "number":
            return _number(tok.value)
        if tok.kind == "punct":
            if tok.value == "{":
                return self._object()
            if tok.value == "[":
                return self._array()
            if tok.value in ("-", "+"):
                nxt = self._value()
                if isinstance(nxt, bool) or not isinstance(nxt, (int, float)):
                    raise self._error(f"unary {tok.value!r} needs a number", tok)
                return -nxt if tok.value == "-" else nxt
            raise self._error(f"unexpected {tok.value!r}", tok)
        # name
        if tok.value in _CONSTANTS:
            value = _CONSTANTS[tok.value]
        elif tok.value in self.names:
            value = self.names[tok.value]
        else:
            raise self._error(f"unknown name {tok.value!r}", tok)
        if self._at("(") or self._at("."):
            raise self._error(f"expressions are not allowed after {tok.value!r}", self._peek())
        return value

    def _object(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        while not self._accept("}"):
            key_tok = self._next()
            if key_tok.kind == "string":
                key = _unescape(key_tok.value[1:-1])
            elif key_tok.kind == "number":
                key = str(_number(key_tok.value))
            elif key_tok.kind == "name":
                key = key_tok.value
            else:
                raise self._error(f"expected a property name, found {key_tok.value!r}", key_tok)

            if self._accept(":"):
                out[key] = self._value()
            elif key_tok.kind == "name" and (self._at(",") or self._at("}")):
                if key not in self.names:
                    raise self._error(f"unknown name {key!r}", key_tok)
                out[key] = self.names[key]
            else:
                raise self._error(f"expected ':' after property {key!r}")

            if not self._accept(","):
                self._expect("}")
                break
        return out

    def _array(self) -> list[Any]:
        out: list[Any] = []
        while not self._accept("]"):
            out.append(self._value())
            if not self._accept(","):
                self._expect("]")
                break
        return out


def read_declarations(source: str) -> dict[str, Any]:
    """Return every name declared by the snippet, in declaration order."""

    return _SnippetReader(source).read()


def read_spec(source: str) -> Any:
    """Return the value the snippet assigns to ``spec``."""

    names = read_declarations(source)
    if SPEC_NAME not in names:
        raise BlockParseError("snippet does not declare `spec`")
    return names[SPEC_NAME]
