"""
Opal CLI Parse Commands
=======================

Inspect and validate .opal files.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, List

from opal.cli.formatting import format_diagnostic
from opal.engine.diagnostics import OpalSyntaxError
from opal.engine.document import Document, Fragment
from opal.engine.parser import parse


def _format_fragment(fragment: Fragment) -> str:
    parts = [fragment.name]
    for name, value in fragment.attributes.items():
        parts.append(name if value is True else f'{name}="{value}"')
    for name, source in fragment.bindings.items():
        parts.append(f"{{{name}}}" if source == name else f"{name}={{{source}}}")
    return " ".join(parts)


def render_tree(document: Document) -> str:
    """
    Render a readable outline of a document.

    Example:
        scripts:
          script lang="ts" (3 lines)
        fragments:
          scene name="demo"
            box {color}
    """
    lines: List[str] = ["scripts:"]

    for script in document.scripts:
        attributes = Fragment("script", attributes=script.attributes)
        count = len(script.source.splitlines())
        lines.append(f"  {_format_fragment(attributes)} ({count} lines)")

    lines.append("fragments:")

    stack = [(fragment, 1) for fragment in reversed(document.fragments)]
    while stack:
        fragment, depth = stack.pop()
        lines.append("  " * depth + _format_fragment(fragment))
        stack.extend((child, depth + 1) for child in reversed(fragment.children))

    return "\n".join(lines)


def parse_file(
    path: str,
    as_json: bool = False,
    pretty: bool = False,
    stream: Any = None,
) -> int:
    """
    Parse a file and print the document.

    Returns:
        Exit code
    """
    stream = stream or sys.stdout
    source = Path(path).read_text(encoding="utf-8")
    document = parse(source, path)

    if as_json:
        stream.write(document.to_json(pretty=pretty) + "\n")
    else:
        stream.write(render_tree(document) + "\n")

    return 0


def check_files(paths: List[str], stream: Any = None, err: Any = None) -> int:
    """
    Parse every file and report the result of each.

    Returns:
        Exit code: 1 if any file failed
    """
    stream = stream or sys.stdout
    err = err or sys.stderr
    failures = 0

    for path in paths:
        try:
            source = Path(path).read_text(encoding="utf-8")
            parse(source, path)
        except FileNotFoundError:
            err.write(f"error: file not found: {path}\n")
            failures += 1
        except OpalSyntaxError as e:
            err.write(format_diagnostic(e, stream=err))
            failures += 1
        else:
            stream.write(f"ok {path}\n")

    if len(paths) > 1:
        stream.write(f"{len(paths) - failures} ok, {failures} failed\n")

    return 1 if failures else 0
