"""
Opal Compiler
=============

Turns a parsed Opal document into a JavaScript module.

The generated module is a scaffold: it imports three.js, inlines the
document's script blocks, creates a scene and a renderer and mounts the
renderer into ``#root``. Fragments are listed as comments only; rendering
them is not implemented yet.

Output:
    import * as THREE from 'three';

    let color = "red";

    const scene = new THREE.Scene();
    // fragment: scene
    const renderer = new THREE.WebGLRenderer();
    document.getElementById("root").appendChild(renderer.domElement);
"""

from __future__ import annotations

import hashlib
import textwrap
import time
from dataclasses import dataclass
from typing import List, Optional

from opal.engine.document import Document
from opal.engine.parser import OpalParser
from opal.utils.logger import get_logger

logger = get_logger("opal.compiler")

# Script languages inlined into the generated module
INLINE_LANGS = {"", "js", "javascript", "ts", "typescript"}


class CodeWriter:
    """Collects generated lines."""

    def __init__(self) -> None:
        self.lines: List[str] = []

    def write_line(self, code: str = "") -> "CodeWriter":
        """Emit one line."""
        self.lines.append(code)
        return self

    def blank_line(self) -> "CodeWriter":
        """Emit an empty line unless the last one is already empty."""
        if self.lines and self.lines[-1] != "":
            self.lines.append("")
        return self

    def write_block(self, text: str) -> "CodeWriter":
        """Emit a multi-line block with its common indentation removed."""
        for line in textwrap.dedent(text).strip("\n").split("\n"):
            self.write_line(line.rstrip())
        return self

    def get_code(self) -> str:
        return "\n".join(self.lines) + "\n"


@dataclass
class CompiledModule:
    """Result of compiling one Opal source."""
    code: str
    document: Document
    source_hash: str
    path: Optional[str] = None


class OpalCompiler:
    """
    Compiles Opal sources to JavaScript modules.

    Example:
        compiler = OpalCompiler()
        module = compiler.compile(source, "src/index.opal")
        print(module.code)
    """

    def compile(self, source: str, path: Optional[str] = None) -> CompiledModule:
        """
        Parse and compile a source.

        Raises:
            OpalSyntaxError: If the source cannot be parsed
        """
        started = time.perf_counter()

        document = OpalParser(source, path).parse()
        code = self.generate(document, path)

        logger.debug(
            "Compiled module",
            path=path or "<source>",
            elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
        )

        return CompiledModule(
            code=code,
            document=document,
            source_hash=hashlib.md5(source.encode("utf-8")).hexdigest()[:12],
            path=path,
        )

    def generate(self, document: Document, path: Optional[str] = None) -> str:
        """Generate module code for a parsed document."""
        w = CodeWriter()

        w.write_line("import * as THREE from 'three';")

        for script in document.scripts:
            if script.lang not in INLINE_LANGS:
                logger.warning("Skipping script", path=path or "<source>", lang=script.lang)
                continue
            if script.source.strip():
                w.blank_line()
                w.write_block(script.source)

        w.blank_line()
        w.write_line("const scene = new THREE.Scene();")

        for fragment in document.fragments:
            w.write_line(f"// fragment: {fragment.name}")

        w.write_line("const renderer = new THREE.WebGLRenderer();")
        w.write_line('document.getElementById("root").appendChild(renderer.domElement);')

        return w.get_code()


def compile(source: str, path: Optional[str] = None) -> CompiledModule:
    """Compile a source with a default compiler."""
    return OpalCompiler().compile(source, path)
