"""
Quoted-string tracking shared by the scanner and the expression rewriter.

Both stages walk text forward one character at a time and must treat the
contents of '...' and "..." literals (including backslash escapes) as opaque.
"""

from __future__ import annotations

QUOTE_CHARS = "\"'"


class QuoteState:
    """
    Incremental quote tracker.

    Feed characters in order with consume(); the tracker remembers the open
    quote and a pending backslash so that long forward scans never need to
    re-read earlier text.
    """

    __slots__ = ("quote", "escaped")

    def __init__(self) -> None:
        self.quote = ""
        self.escaped = False

    @property
    def inside(self) -> bool:
        return bool(self.quote)

    def consume(self, ch: str) -> bool:
        """
        Feed one character.

        Returns:
            True if the character is part of a quoted literal (including the
            opening and closing quotes), False if it is structural text.
        """
        if self.quote:
            if self.escaped:
                self.escaped = False
            elif ch == "\\":
                self.escaped = True
            elif ch == self.quote:
                self.quote = ""
            return True
        if ch in QUOTE_CHARS:
            self.quote = ch
            return True
        return False


__all__ = ["QuoteState", "QUOTE_CHARS"]
