"""
Positioned diagnostics shared by every conversion stage.

A Diagnostic is both a value (code, file, line, column, message, snippet)
and an exception: stages raise it on the first problem and the caller
either reports it or branches on ``code``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict

from .errors import ConverterUserError

# Lexical
LEX_UNCLOSED_COMMENT = "LEX_UNCLOSED_COMMENT"
LEX_UNCLOSED_INTERPOLATION = "LEX_UNCLOSED_INTERPOLATION"
LEX_UNCLOSED_TAG = "LEX_UNCLOSED_TAG"
LEX_INVALID_DIRECTIVE = "LEX_INVALID_DIRECTIVE"
LEX_INVALID_MACRO_CALL = "LEX_INVALID_MACRO_CALL"

# Structural
PARSE_INVALID_IF = "PARSE_INVALID_IF"
PARSE_INVALID_ELSEIF = "PARSE_INVALID_ELSEIF"
PARSE_UNCLOSED_IF = "PARSE_UNCLOSED_IF"
PARSE_INVALID_LIST = "PARSE_INVALID_LIST"
PARSE_UNCLOSED_LIST = "PARSE_UNCLOSED_LIST"
PARSE_INVALID_ASSIGN = "PARSE_INVALID_ASSIGN"
PARSE_INVALID_FUNCTION = "PARSE_INVALID_FUNCTION"
PARSE_UNCLOSED_FUNCTION = "PARSE_UNCLOSED_FUNCTION"
PARSE_UNSUPPORTED_DIRECTIVE = "PARSE_UNSUPPORTED_DIRECTIVE"
PARSE_UNEXPECTED_CLOSING = "PARSE_UNEXPECTED_CLOSING"
PARSE_UNEXPECTED_DIRECTIVE = "PARSE_UNEXPECTED_DIRECTIVE"

# Emission
EMIT_UNSUPPORTED_FUNCTION = "EMIT_UNSUPPORTED_FUNCTION"
EMIT_UNSUPPORTED_MACRO_CALL = "EMIT_UNSUPPORTED_MACRO_CALL"
EMIT_UNSUPPORTED_RETURN = "EMIT_UNSUPPORTED_RETURN"
EMIT_UNSUPPORTED_DIRECTIVE_NODE = "EMIT_UNSUPPORTED_DIRECTIVE_NODE"
EMIT_EXPRESSION_MAP = "EMIT_EXPRESSION_MAP"


@dataclass(frozen=True)
class Position:
    """1-based line/column pair in the source template."""
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class Diagnostic(ConverterUserError):
    """
    Structured conversion error with source metadata.

    Attributes:
        code: Stable identifier a caller may branch on (e.g. PARSE_INVALID_LIST)
        message: Human-readable description
        file: Display name of the template
        line: 1-based line (0 when unknown)
        column: 1-based column (0 when unknown)
        snippet: Offending source fragment, possibly empty
    """

    def __init__(
        self,
        code: str,
        file: str,
        line: int,
        column: int,
        message: str,
        snippet: str = "",
    ):
        self.code = code
        self.file = file
        self.line = line
        self.column = column
        self.message = message
        self.snippet = snippet
        super().__init__(self._format())

    @classmethod
    def at(cls, code: str, file: str, pos: Position, message: str, snippet: str = "") -> Diagnostic:
        """Build a diagnostic positioned at a node or token position."""
        return cls(code, file, pos.line, pos.column, message, snippet)

    @property
    def position(self) -> Position:
        return Position(self.line, self.column)

    def _format(self) -> str:
        location = self.file
        if self.line > 0:
            location = f"{self.file}:{self.line}:{self.column}"
        if not self.code:
            return f"{location}: {self.message}"
        return f"{location} [{self.code}]: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the six-field mapping used by reports."""
        return {
            "code": self.code,
            "file": self.file,
            "line": self.line,
            "column": self.column,
            "message": self.message,
            "snippet": self.snippet,
        }

    def __repr__(self) -> str:
        return f"Diagnostic({self.code}, {self.file!r}, {self.line}:{self.column}, {self.message!r})"


__all__ = [
    "Position",
    "Diagnostic",
    "LEX_UNCLOSED_COMMENT",
    "LEX_UNCLOSED_INTERPOLATION",
    "LEX_UNCLOSED_TAG",
    "LEX_INVALID_DIRECTIVE",
    "LEX_INVALID_MACRO_CALL",
    "PARSE_INVALID_IF",
    "PARSE_INVALID_ELSEIF",
    "PARSE_UNCLOSED_IF",
    "PARSE_INVALID_LIST",
    "PARSE_UNCLOSED_LIST",
    "PARSE_INVALID_ASSIGN",
    "PARSE_INVALID_FUNCTION",
    "PARSE_UNCLOSED_FUNCTION",
    "PARSE_UNSUPPORTED_DIRECTIVE",
    "PARSE_UNEXPECTED_CLOSING",
    "PARSE_UNEXPECTED_DIRECTIVE",
    "EMIT_UNSUPPORTED_FUNCTION",
    "EMIT_UNSUPPORTED_MACRO_CALL",
    "EMIT_UNSUPPORTED_RETURN",
    "EMIT_UNSUPPORTED_DIRECTIVE_NODE",
    "EMIT_EXPRESSION_MAP",
]
