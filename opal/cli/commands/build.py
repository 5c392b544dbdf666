"""
Opal CLI Build Command
======================

Compile the entry file into a JavaScript bundle.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import Any, Optional

from opal.cli.formatting import format_diagnostic
from opal.core.bundler import Bundler


def build_project(
    entry: str,
    output: str,
    root: Optional[Path] = None,
    stream: Any = None,
    err: Any = None,
) -> int:
    """
    Build the project.

    Args:
        entry: Entry .opal file
        output: Output JavaScript file
        root: Project root (default: cwd)

    Returns:
        Exit code
    """
    stream = stream or sys.stdout
    err = err or sys.stderr

    bundler = Bundler(root or Path.cwd())

    stream.write(f"Building {entry}...\n")
    result = asyncio.run(bundler.build(entry, output))

    if result.errors:
        for message in result.errors:
            err.write(format_diagnostic(message, stream=err))
        stream.write(f"Build failed with {len(result.errors)} error(s)\n")
        return 1

    stream.write(f"✓ Build complete! Output: {output}\n")
    return 0
