"""
Opal CLI Dev Command
====================

Run the development server.
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

from opal.core.server import DevServer


def run_server(
    host: str = "127.0.0.1",
    port: int = 8080,
    entry: str = "src/index.opal",
    upstream: Optional[str] = None,
    root: Optional[Path] = None,
) -> int:
    """
    Run development server.

    Returns:
        Exit code
    """
    root = root or Path.cwd()

    if not (root / entry).exists():
        print(f"Error: entry file not found: {entry}", file=sys.stderr)
        print("Make sure you're in an Opal project directory", file=sys.stderr)
        return 1

    print("Starting Opal development server...")
    print(f"  URL: http://{host}:{port}")
    print(f"  Entry: {entry}")
    if upstream:
        print(f"  Upstream: {upstream}")
    print()

    server = DevServer(root=root, entry=entry, upstream=upstream)

    try:
        server.run(host=host, port=port)
    except KeyboardInterrupt:
        print("\nShutting down...")

    return 0
