"""
Opal Source Cursor
==================

Character-level cursor over an in-memory source string. The cursor is the
only piece of scanning state; every parse owns a fresh one.

Positions:
    - offset: absolute index into the source (only ever increases)
    - line:   1-based line of the current character
    - column: 1-based column of the current character

Example:
    cursor = Cursor("<box />")
    cursor.current          # "<"
    cursor.advance()        # "b"
    cursor.capture(TAG_NAME, "tag name")  # "box"
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Pattern, Union

from opal.engine.diagnostics import ErrorReason, OpalSyntaxError, create_syntax_error


# End-of-input sentinel returned by ``Cursor.current`` past the last char
EOF = ""

WHITESPACE = re.compile(r"\s*")


@dataclass(frozen=True)
class Position:
    """Immutable snapshot of a cursor location."""
    offset: int
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.line}:{self.column}"


class Cursor:
    """
    Forward-only cursor over source text.

    The cursor tracks line and column while advancing. A newline is counted
    when the cursor steps past it: the character after a newline sits at
    column 1 of the next line.
    """

    def __init__(self, source: str, path: Optional[str] = None) -> None:
        self.source = source
        self.path = path
        self.offset = 0
        self.line = 1
        self.column = 1

    @property
    def current(self) -> str:
        """Character under the cursor, or ``EOF``."""
        if self.offset < len(self.source):
            return self.source[self.offset]
        return EOF

    def has_next(self) -> bool:
        """True while there is input left under the cursor."""
        return self.offset < len(self.source)

    def advance(self, count: int = 1) -> str:
        """Advance up to ``count`` characters and return the new current."""
        for _ in range(count):
            if self.offset >= len(self.source):
                break
            if self.source[self.offset] == "\n":
                self.line += 1
                self.column = 1
            else:
                self.column += 1
            self.offset += 1
        return self.current

    def startswith(self, text: str) -> bool:
        """Check for literal text at the current offset."""
        return self.source.startswith(text, self.offset)

    def try_capture(self, pattern: Union[str, Pattern[str]]) -> Optional[str]:
        """
        Match ``pattern`` anchored at the current offset.

        On success the cursor moves past the match and the matched text is
        returned. On failure nothing moves and ``None`` is returned.
        """
        if isinstance(pattern, str):
            pattern = re.compile(pattern)
        match = pattern.match(self.source, self.offset)
        if match is None:
            return None
        text = match.group()
        self.advance(len(text))
        return text

    def capture(self, pattern: Union[str, Pattern[str]], label: str) -> str:
        """Like ``try_capture`` but raise a capture diagnostic on failure."""
        text = self.try_capture(pattern)
        if text is None:
            source = pattern if isinstance(pattern, str) else pattern.pattern
            raise self.error(
                ErrorReason.CAPTURE_FAILED,
                f"Failed to capture {label} with pattern: {source}",
                label=label,
            )
        return text

    def skip_whitespace(self) -> str:
        """Skip to the next non-whitespace character."""
        self.try_capture(WHITESPACE)
        return self.current

    def position(self) -> Position:
        """Snapshot the current location."""
        return Position(self.offset, self.line, self.column)

    def error(
        self,
        reason: ErrorReason,
        message: str,
        position: Optional[Position] = None,
        label: Optional[str] = None,
    ) -> OpalSyntaxError:
        """Build a syntax error at ``position`` (default: here)."""
        return create_syntax_error(
            self.source,
            position or self.position(),
            reason,
            message,
            path=self.path,
            label=label,
        )

    def __repr__(self) -> str:
        return f"Cursor({self.line}:{self.column}, {self.current!r})"
