"""
Opal Raw-Span Capture
=====================

Quote-aware capture of raw text regions:

    - Script bodies: everything up to an unquoted ``</script>``
    - Binding expressions: everything up to the ``}`` that balances the
      opening ``{``, ignoring braces inside string literals
    - Quoted attribute values: everything up to the matching quote

Quote tracking is deliberately simple: a backslash directly before a quote
stops that quote from opening or closing a literal. Escaped backslashes are
not recognised, so ``\\\\"`` still counts as an escaped quote.
"""

from __future__ import annotations

import re
from typing import Optional

from opal.engine.cursor import Cursor
from opal.engine.diagnostics import ErrorReason

QUOTES = ("'", '"')

SCRIPT_TERMINATOR = "</script>"

# quote char -> body pattern including the closing quote
QUOTED_VALUE = {
    quote: re.compile(r"(?:[^%s\\]|\\.)*%s" % (quote, quote), re.DOTALL)
    for quote in QUOTES
}


class QuoteState:
    """Tracks whether a scan is inside a string literal."""

    __slots__ = ("quote", "escaped")

    def __init__(self) -> None:
        self.quote: Optional[str] = None
        self.escaped = False

    @property
    def quoted(self) -> bool:
        return self.quote is not None

    def feed(self, char: str) -> None:
        """Account for one scanned character."""
        if char in QUOTES and not self.escaped:
            if self.quote is None:
                self.quote = char
            elif self.quote == char:
                self.quote = None
        self.escaped = char == "\\"


def capture_script_body(cursor: Cursor, terminator: str = SCRIPT_TERMINATOR) -> str:
    """
    Capture a raw script body.

    The cursor must sit on the ``>`` that closes the opening tag. On return
    it sits just past the terminator.

    Raises:
        OpalSyntaxError: ``UNTERMINATED_SCRIPT`` at end of input
    """
    cursor.advance()
    start = cursor.offset
    state = QuoteState()

    while cursor.has_next():
        if not state.quoted and not state.escaped and cursor.startswith(terminator):
            body = cursor.source[start:cursor.offset]
            cursor.advance(len(terminator))
            return body
        state.feed(cursor.current)
        cursor.advance()

    raise cursor.error(
        ErrorReason.UNTERMINATED_SCRIPT,
        f"Expected {terminator} before end of input",
    )


def capture_binding(cursor: Cursor) -> str:
    """
    Capture a brace-delimited binding expression.

    The cursor must sit on the opening ``{``. On return it sits just past
    the balancing ``}``, which is not part of the returned text.

    Raises:
        OpalSyntaxError: ``UNTERMINATED_BINDING`` at end of input
    """
    cursor.advance()
    start = cursor.offset
    state = QuoteState()
    depth = 0

    while cursor.has_next():
        char = cursor.current
        if not state.quoted:
            if char == "{":
                depth += 1
            elif char == "}":
                if depth == 0:
                    source = cursor.source[start:cursor.offset]
                    cursor.advance()
                    return source
                depth -= 1
        state.feed(char)
        cursor.advance()

    raise cursor.error(
        ErrorReason.UNTERMINATED_BINDING,
        "Expected } to close binding before end of input",
    )


def capture_quoted(cursor: Cursor, label: str = "attribute value") -> str:
    """Capture a quoted literal and return it without the quotes."""
    quote = cursor.current
    cursor.advance()
    return cursor.capture(QUOTED_VALUE[quote], label)[:-1]
