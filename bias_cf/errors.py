"""Error taxonomy for the rating pipeline.

Everything raised on purpose derives from :class:`BiasCFError` so the CLI can
turn it into a clean diagnostic and a non-zero exit status. The concrete
classes also subclass the builtin they specialise (``ValueError`` for bad
input, ``RuntimeError`` for misuse) so callers catching those keep working.
"""

from __future__ import annotations


class BiasCFError(Exception):
    """Base class for all pipeline errors."""


class ParseError(BiasCFError, ValueError):
    """A record line could not be parsed."""

    def __init__(self, message: str, *, line_no: int | None = None, line: str | None = None) -> None:
        self.line_no = line_no
        self.line = line
        if line_no is not None:
            message = f"line {line_no}: {message}"
        if line is not None:
            message = f"{message} (got {line!r})"
        super().__init__(message)


class InputError(BiasCFError):
    """The input source could not be opened or read."""


class SchemaError(BiasCFError, ValueError):
    """Section markers are missing or out of place, or a frame lacks required columns."""


class ConfigError(BiasCFError, ValueError):
    """Invalid model configuration."""


class NotFittedError(BiasCFError, RuntimeError):
    """The model was queried before ``fit`` was called."""
