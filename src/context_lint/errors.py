"""Tool errors — conditions that stop an analysis run.

Findings are never raised; they are data collected by the rules. Only
the conditions below abort a run, and each maps to the tool-error exit
path. Classification mirrors the error kinds so callers can log which
stage failed without matching on message text.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path


class ErrorClass(Enum):
    MANIFEST = "manifest"  # missing, unreadable or malformed Cargo.toml
    SOURCE_READ = "source_read"  # unreadable or non-UTF-8 source file
    SOURCE_PARSE = "source_parse"  # syntax tree contains errors
    UNKNOWN = "unknown"


class ToolError(Exception):
    """Base class for errors that prevent analysis from completing."""

    error_class = ErrorClass.UNKNOWN

    def __init__(self, message: str, *, path: Path | None = None) -> None:
        super().__init__(message)
        self.path = path


class ManifestError(ToolError):
    """The workspace manifest cannot be located, read or decoded."""

    error_class = ErrorClass.MANIFEST


class SourceReadError(ToolError):
    """A source file cannot be read as UTF-8 text."""

    error_class = ErrorClass.SOURCE_READ


class SourceParseError(ToolError):
    """A source file does not parse cleanly."""

    error_class = ErrorClass.SOURCE_PARSE

    def __init__(
        self,
        message: str,
        *,
        path: Path | None = None,
        line: int | None = None,
        column: int | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.line = line
        self.column = column


def classify_error(error: Exception) -> ErrorClass:
    """Classify an exception raised during a run."""
    if isinstance(error, ToolError):
        return error.error_class
    return ErrorClass.UNKNOWN