"""Structured error types for rewrite/evaluation separation."""

from __future__ import annotations

from dataclasses import dataclass


class PrecisionError(Exception):
    """Base class for structured precision-jax errors."""


class RewriteShapeError(PrecisionError):
    """The rewriter was handed something that is not a syntax tree node."""


@dataclass(frozen=True)
class LiteralReparseError(PrecisionError):
    """A float literal's text could not be parsed in the target type."""

    text: str
    target: str
    reason: str = ""
    lineno: int | None = None

    def __str__(self) -> str:
        where = ""
        if self.lineno is not None:
            where = f" (line {self.lineno})"
        reason = ""
        if self.reason:
            reason = f": {self.reason}"
        return f"cannot re-parse literal {self.text!r} as {self.target}{where}{reason}"


@dataclass(frozen=True)
class InclusionIOError(PrecisionError):
    """An included fragment could not be read."""

    path: str
    reason: str

    def __str__(self) -> str:
        return f"cannot include {self.path!r}: {self.reason}"
