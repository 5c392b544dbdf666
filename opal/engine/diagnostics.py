"""
Opal Diagnostics
================

Every parse failure is reported as an ``OpalSyntaxError`` carrying a reason
code, the source position and a rendered excerpt of the surrounding source:

      1 | <scene>
    > 2 |   <box a="1" a="2" />
        |                ^
      3 | </scene>

The excerpt is plain text. Terminal styling is applied by
``opal.cli.formatting``, never here.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

if TYPE_CHECKING:
    from opal.engine.cursor import Position


# Lines of context rendered above and below the offending line
CONTEXT_LINES = 3

# Displayed width of a tab character
TAB_WIDTH = 4


class ErrorReason(Enum):
    """Reason codes for syntax errors."""
    UNEXPECTED_CHARACTER = "UnexpectedCharacter"
    CAPTURE_FAILED = "CaptureFailed"
    MISMATCHED_CLOSING_TAG = "MismatchedClosingTag"
    UNCLOSED_TAG = "UnclosedTag"
    MISSING_CLOSING_TAG = "MissingClosingTag"
    UNTERMINATED_SCRIPT = "UnterminatedScript"
    UNTERMINATED_BINDING = "UnterminatedBinding"
    UNSUPPORTED_TEMPLATE_LITERAL = "UnsupportedTemplateLiteral"
    EXPECTED_ATTRIBUTE_VALUE = "ExpectedAttributeValue"
    DUPLICATE_ATTRIBUTE = "DuplicateAttribute"
    DUPLICATE_BINDING = "DuplicateBinding"


class OpalError(Exception):
    """Base exception for Opal errors."""
    pass


class OpalSyntaxError(OpalError):
    """
    Raised when a document cannot be parsed.

    Attributes:
        reason: Reason code
        message: Human readable message
        path: Display path of the source, if known
        line: 1-based line of the failure
        column: 1-based column of the failure
        offset: Absolute offset of the failure
        excerpt: Rendered source excerpt with a caret under the column
        label: What was being captured, for ``CAPTURE_FAILED``
    """

    def __init__(
        self,
        reason: ErrorReason,
        message: str,
        line: int,
        column: int,
        offset: int,
        excerpt: str = "",
        path: Optional[str] = None,
        label: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.message = message
        self.line = line
        self.column = column
        self.offset = offset
        self.excerpt = excerpt
        self.path = path
        self.label = label

    @property
    def location(self) -> str:
        """``path:line:column`` of the failure."""
        return f"{self.path or '<source>'}:{self.line}:{self.column}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a plain dictionary."""
        return {
            "reason": self.reason.value,
            "message": self.message,
            "path": self.path,
            "line": self.line,
            "column": self.column,
            "offset": self.offset,
            "excerpt": self.excerpt,
        }

    def __str__(self) -> str:
        header = f"{self.location}: {self.message}"
        if self.excerpt:
            return f"{header}\n{self.excerpt}"
        return header

    def __repr__(self) -> str:
        return f"<OpalSyntaxError {self.reason.value} at {self.line}:{self.column}>"


def _line_bounds(source: str, offset: int) -> tuple:
    """Start and end offsets of the line containing ``offset``."""
    start = source.rfind("\n", 0, offset) + 1
    end = source.find("\n", offset)
    if end == -1:
        end = len(source)
    return start, end


def _display(text: str) -> str:
    return text.replace("\t", " " * TAB_WIDTH)


def render_excerpt(
    source: str,
    position: "Position",
    context: int = CONTEXT_LINES,
) -> str:
    """
    Render the source around ``position``.

    Args:
        source: Complete source text
        position: Location of the failure
        context: Lines shown above and below

    Returns:
        Multi-line excerpt without a trailing newline
    """
    line = position.line
    gutter = len(str(line + context))
    start, end = _line_bounds(source, position.offset)

    above: List[str] = []
    prev_end = start - 1
    for i in range(1, context + 1):
        if line - i <= 0 or prev_end < 0:
            break
        prev_start = source.rfind("\n", 0, prev_end) + 1
        text = _display(source[prev_start:prev_end])
        above.insert(0, f"  {line - i:>{gutter}} | {text}")
        prev_end = prev_start - 1

    # tabs render wider than the single column the cursor counted
    tab_offset = source.count("\t", start, position.offset) * (TAB_WIDTH - 1)

    middle = [
        f"> {line:>{gutter}} | {_display(source[start:end])}",
        " " * (gutter + 3) + "|" + " " * (position.column + tab_offset) + "^",
    ]

    below: List[str] = []
    if position.offset < len(source):
        next_end = end
        for i in range(1, context + 1):
            next_start = next_end + 1
            if next_start >= len(source):
                break
            next_end = source.find("\n", next_start)
            if next_end == -1:
                next_end = len(source)
            text = _display(source[next_start:next_end])
            below.append(f"  {line + i:>{gutter}} | {text}")

    return "\n".join(above + middle + below)


def create_syntax_error(
    source: str,
    position: "Position",
    reason: ErrorReason,
    message: str,
    path: Optional[str] = None,
    label: Optional[str] = None,
) -> OpalSyntaxError:
    """Build an ``OpalSyntaxError`` with a rendered excerpt."""
    return OpalSyntaxError(
        reason=reason,
        message=message,
        line=position.line,
        column=position.column,
        offset=position.offset,
        excerpt=render_excerpt(source, position),
        path=path,
        label=label,
    )
