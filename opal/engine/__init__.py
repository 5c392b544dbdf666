"""
Opal Engine Module
==================

Components:
- Cursor: position-tracking scanner over the source
- Parser: builds a Document from an .opal source
- Diagnostics: syntax errors with rendered source excerpts
- Compiler: generates a JavaScript module from a Document
"""

from opal.engine.cursor import Cursor, Position
from opal.engine.diagnostics import ErrorReason, OpalError, OpalSyntaxError, render_excerpt
from opal.engine.document import AttributeValue, Document, Fragment, Script
from opal.engine.parser import SCRIPT_TAG, OpalParser, parse
from opal.engine.compiler import CompiledModule, OpalCompiler, compile

__all__ = [
    "Cursor",
    "Position",
    "ErrorReason",
    "OpalError",
    "OpalSyntaxError",
    "render_excerpt",
    "AttributeValue",
    "Document",
    "Fragment",
    "Script",
    "SCRIPT_TAG",
    "OpalParser",
    "parse",
    "CompiledModule",
    "OpalCompiler",
    "compile",
]
