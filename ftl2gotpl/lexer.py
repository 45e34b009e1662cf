"""
Lexical analyzer for FreeMarker templates.

Splits the source text into a flat sequence of tokens: literal text runs,
interpolations (${...} and #{...}), directive tags (<#name ...>, </#name>)
and macro calls (<@name ...>). Comments (<#-- ... -->) are skipped.

Argument strings are kept verbatim; interpreting them is left to the parser
and the expression rewriter.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import List, Tuple

from .diagnostics import (
    Diagnostic,
    Position,
    LEX_INVALID_DIRECTIVE,
    LEX_INVALID_MACRO_CALL,
    LEX_UNCLOSED_COMMENT,
    LEX_UNCLOSED_INTERPOLATION,
    LEX_UNCLOSED_TAG,
)
from .quoting import QuoteState


class TokenKind(enum.Enum):
    """Syntactic category of a token."""

    TEXT = "text"
    DIRECTIVE = "directive"
    INTERPOLATION = "interpolation"
    MACRO_CALL = "macro_call"


@dataclass(frozen=True)
class Token:
    """
    One lexical unit with its source coordinates.

    Depending on the kind only some fields are meaningful:
    - TEXT: value
    - INTERPOLATION: value (trimmed expression), alt_style (#{ opener)
    - DIRECTIVE: name (lower-cased), args, closing
    - MACRO_CALL: name, args
    """
    kind: TokenKind
    line: int
    column: int
    raw: str = ""
    value: str = ""
    name: str = ""
    args: str = ""
    closing: bool = False
    alt_style: bool = False

    @property
    def position(self) -> Position:
        return Position(self.line, self.column)

    def __repr__(self) -> str:
        payload = self.name or self.value
        return f"Token({self.kind.name}, {payload!r}, {self.line}:{self.column})"


COMMENT_OPEN = "<#--"
COMMENT_CLOSE = "-->"
INTERPOLATION_OPENERS = ("${", "#{")
TAG_OPENERS = ("<#", "</#", "<@")

# Start of any construct that ends a literal text run
_CONSTRUCT_START = re.compile(r"<#|</#|<@|\$\{|#\{")


def split_name_args(body: str) -> Tuple[str, str]:
    """Split a tag body into its first whitespace-delimited word and the trimmed rest."""
    body = body.strip()
    if not body:
        return "", ""
    i = 0
    while i < len(body) and not body[i].isspace():
        i += 1
    return body[:i], body[i:].strip()


class TemplateLexer:
    """
    Single-pass scanner over one template source.

    Keeps an explicit (line, column) cursor that advances per consumed
    character; a newline bumps the line and resets the column.
    """

    def __init__(self, text: str, file: str = "<template>"):
        self.text = text
        self.file = file
        self.position = 0
        self.line = 1
        self.column = 1
        self.length = len(text)

    def tokenize(self) -> List[Token]:
        """
        Tokenize the whole source.

        Returns:
            Ordered list of tokens (no EOF marker)

        Raises:
            Diagnostic: On unterminated comments, interpolations or tags
        """
        tokens: List[Token] = []

        while not self._eof():
            if self._has_prefix(COMMENT_OPEN):
                self._consume_comment()
            elif self._has_prefix(*INTERPOLATION_OPENERS):
                tokens.append(self._consume_interpolation())
            elif self._has_prefix(*TAG_OPENERS):
                tokens.append(self._consume_tag())
            else:
                token = self._consume_text()
                if token.value:
                    tokens.append(token)

        return tokens

    # ---- construct scanners ----

    def _consume_text(self) -> Token:
        """Consume literal text up to the next construct start."""
        start_line, start_column = self.line, self.column
        start = self.position
        match = _CONSTRUCT_START.search(self.text, self.position)
        end = match.start() if match else self.length
        value = self.text[start:end]
        self._advance(len(value))
        return Token(TokenKind.TEXT, start_line, start_column, raw=value, value=value)

    def _consume_comment(self) -> None:
        """Skip <#-- ... --> without emitting a token."""
        end = self.text.find(COMMENT_CLOSE, self.position)
        if end < 0:
            raise Diagnostic(
                LEX_UNCLOSED_COMMENT, self.file, self.line, self.column,
                "unclosed FreeMarker comment",
            )
        self._advance(end + len(COMMENT_CLOSE) - self.position)

    def _consume_interpolation(self) -> Token:
        """Consume ${...} or #{...}, honoring nested braces and quoted strings."""
        start_line, start_column = self.line, self.column
        start = self.position
        alt = self._has_prefix("#{")

        self._advance(2)
        depth = 1
        quotes = QuoteState()

        while not self._eof():
            ch = self.text[self.position]
            self._advance(1)

            if quotes.consume(ch):
                continue
            if ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    raw = self.text[start:self.position]
                    return Token(
                        TokenKind.INTERPOLATION, start_line, start_column,
                        raw=raw, value=raw[2:-1].strip(), alt_style=alt,
                    )

        raise Diagnostic(
            LEX_UNCLOSED_INTERPOLATION, self.file, start_line, start_column,
            "unclosed interpolation",
        )

    def _consume_tag(self) -> Token:
        """Consume a directive or macro-call tag up to its unquoted '>'."""
        start_line, start_column = self.line, self.column
        start = self.position
        quotes = QuoteState()

        while not self._eof():
            ch = self.text[self.position]
            self._advance(1)

            if quotes.consume(ch):
                continue
            if ch == ">":
                raw = self.text[start:self.position]
                return self._tag_token(raw, start_line, start_column)

        raise Diagnostic(
            LEX_UNCLOSED_TAG, self.file, start_line, start_column,
            "unclosed tag",
        )

    def _tag_token(self, raw: str, line: int, column: int) -> Token:
        """Decompose a raw tag into closing flag, name and argument string."""
        if raw.startswith("<@"):
            name, args = split_name_args(raw[2:-1])
            if not name:
                raise Diagnostic(LEX_INVALID_MACRO_CALL, self.file, line, column, "invalid macro call", raw)
            return Token(TokenKind.MACRO_CALL, line, column, raw=raw, name=name, args=args)

        body = raw[1:-1].strip()
        closing = body.startswith("/")
        if closing:
            body = body[1:].strip()
        if body.startswith("#"):
            body = body[1:]

        name, args = split_name_args(body)
        if not name:
            raise Diagnostic(LEX_INVALID_DIRECTIVE, self.file, line, column, "invalid directive tag", raw)
        return Token(
            TokenKind.DIRECTIVE, line, column,
            raw=raw, name=name.lower(), args=args, closing=closing,
        )

    # ---- cursor helpers ----

    def _eof(self) -> bool:
        return self.position >= self.length

    def _has_prefix(self, *prefixes: str) -> bool:
        return self.text.startswith(prefixes, self.position)

    def _advance(self, count: int) -> None:
        """
        Move the cursor forward by count characters,
        updating line and column numbers.
        """
        for _ in range(count):
            if self.position >= self.length:
                break
            if self.text[self.position] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.position += 1


def tokenize_template(file: str, text: str) -> List[Token]:
    """
    Convenience wrapper around TemplateLexer.

    Args:
        file: Display name used in diagnostics
        text: Template source

    Returns:
        Token list

    Raises:
        Diagnostic: On a lexical error
    """
    return TemplateLexer(text, file).tokenize()


__all__ = ["TokenKind", "Token", "TemplateLexer", "tokenize_template", "split_name_args"]
