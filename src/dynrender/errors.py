"""dynrender exception hierarchy.

Keep this module small and dependency-free: it is imported broadly across the
project and by tests.
"""

from __future__ import annotations


class DynRenderError(Exception):
    """Base exception for all dynrender errors."""


class DynRenderConfigError(DynRenderError):
    """Raised for invalid user configuration."""


class BlockParseError(DynRenderError):
    """Raised when a fenced block cannot be turned into a descriptor."""

    def __init__(self, reason: str, *, tag: str | None = None, line: int | None = None) -> None:
        self.reason = reason
        self.tag = tag
        self.line = line
        super().__init__(self._format())

    def _format(self) -> str:
        where = ""
        if self.tag:
            where = f"```{self.tag} block"
            if self.line is not None:
                where += f" at line {self.line}"
            where += ": "
        return f"{where}{self.reason}"
