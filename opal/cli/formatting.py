"""
Opal CLI Formatting
===================

Terminal rendering of diagnostics. Colors are only emitted when the target
stream is a TTY.

Example output:

     ERROR  Attribute a already set

    src/index.opal:2:16
      1 | <scene>
    > 2 |   <box a="1" a="2" />
        |                ^
      3 | </scene>
"""

from __future__ import annotations

import sys
from typing import Any, List, Optional, Union

from opal.core.bundler import BuildMessage
from opal.engine.diagnostics import OpalSyntaxError

Diagnostic = Union[OpalSyntaxError, BuildMessage]

RESET = "\033[0m"
BOLD = "\033[1m"
DIM = "\033[2m"
RED = "\033[31m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
ERROR_BADGE = "\033[41m\033[30m\033[1m"


class Styler:
    """Wraps text in ANSI codes when enabled."""

    def __init__(self, enabled: bool) -> None:
        self.enabled = enabled

    def __call__(self, text: str, *codes: str) -> str:
        if not self.enabled or not text:
            return text
        return "".join(codes) + text + RESET


def supports_color(stream: Any) -> bool:
    return hasattr(stream, "isatty") and stream.isatty()


def _is_caret_line(line: str) -> bool:
    stripped = line.strip()
    return stripped.startswith("|") and stripped.endswith("^")


def format_excerpt(excerpt: str, style: Styler) -> str:
    """Dim context lines and highlight the caret."""
    lines: List[str] = []
    for line in excerpt.split("\n"):
        if line.startswith(">"):
            lines.append(line)
        elif _is_caret_line(line):
            lines.append(style(line[:-1], DIM) + style("^", RED, BOLD))
        else:
            lines.append(style(line, DIM))
    return "\n".join(lines)


def format_diagnostic(
    diagnostic: Diagnostic,
    colors: Optional[bool] = None,
    stream: Any = None,
) -> str:
    """
    Render a syntax error or build message for the terminal.

    Args:
        diagnostic: Error to render
        colors: Force colors on or off (default: detect from stream)
        stream: Stream the text is meant for (default: stderr)
    """
    if colors is None:
        colors = supports_color(stream or sys.stderr)
    style = Styler(colors)

    if isinstance(diagnostic, OpalSyntaxError):
        message = diagnostic.message
    else:
        message = diagnostic.text

    parts = [f"{style(' ERROR ', ERROR_BADGE)} {message}", ""]

    location = style(diagnostic.path or "<source>", CYAN)
    if diagnostic.line is not None:
        location += ":" + style(str(diagnostic.line), YELLOW)
        location += ":" + style(str(diagnostic.column), YELLOW)
    parts.append(location)

    if diagnostic.excerpt:
        parts.append(format_excerpt(diagnostic.excerpt, style))

    return "\n".join(parts) + "\n"
