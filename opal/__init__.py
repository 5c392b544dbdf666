"""
Opal
====

Parser and tooling for ``.opal`` sources: raw script blocks followed by a
tree of fragments with attributes and data bindings.

    <script lang="ts">
        let color: string = "red";
    </script>

    <scene name="demo">
        <box {color} />
    </scene>

Quick Start:
    >>> from opal import parse
    >>> document = parse(source, "src/index.opal")
    >>> document.fragments[0].children[0].bindings
    {'color': 'color'}

Command line:
    $ opal check src/index.opal
    $ opal build
    $ opal dev
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

from typing import TYPE_CHECKING

# Engine imports (always available)
from opal.engine.diagnostics import ErrorReason, OpalError, OpalSyntaxError
from opal.engine.document import Document, Fragment, Script
from opal.engine.parser import OpalParser, parse

# Lazy imports for tooling
if TYPE_CHECKING:
    from opal.engine.compiler import OpalCompiler, CompiledModule
    from opal.core.bundler import Bundler
    from opal.core.config import Config
    from opal.core.server import DevServer


def __getattr__(name: str):
    """Lazy loading of tooling components."""
    _imports = {
        "OpalCompiler": "opal.engine.compiler",
        "CompiledModule": "opal.engine.compiler",
        "compile": "opal.engine.compiler",
        "Bundler": "opal.core.bundler",
        "Config": "opal.core.config",
        "DevServer": "opal.core.server",
    }

    if name in _imports:
        import importlib
        module = importlib.import_module(_imports[name])
        return getattr(module, name)

    raise AttributeError(f"module 'opal' has no attribute '{name}'")


__all__ = [
    "__version__",
    "__license__",
    # Engine
    "ErrorReason",
    "OpalError",
    "OpalSyntaxError",
    "Document",
    "Fragment",
    "Script",
    "OpalParser",
    "parse",
    # Tooling (lazy)
    "OpalCompiler",
    "CompiledModule",
    "compile",
    "Bundler",
    "Config",
    "DevServer",
]
