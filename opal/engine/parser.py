"""
Opal Parser
===========

Parses ``.opal`` sources into a ``Document``.

Format:
    An Opal file is a sequence of tags. ``<script>`` tags hold raw code; all
    other tags form the fragment tree:

    <script lang="ts">
        let color: string = "red";
    </script>

    <!-- comments are skipped -->
    <scene name="demo">
        <box {color} visible size={sizes["box"]} />
    </scene>

    - name="value": string attribute
    - name:         boolean attribute (same as name=true)
    - name={expr}:  binding, ``expr`` is kept as opaque source text
    - {name}:       shorthand binding, same as name={name}

    A script keeps only the attributes of its tag. Bindings written on a
    ``<script>`` tag are checked for duplicates and then discarded.

Parser Architecture:
    A single pass over the source with an explicit stack of open fragments.
    The cursor skips whitespace and expects ``<``, then the parser dispatches
    to comment, closing tag or opening tag handling. A fragment is attached
    to its parent when its closing tag is matched; self-closing fragments are
    attached immediately.

    All scanning state lives in a ``ParseState`` created by each call to
    ``parse``, so one parser can be used from several threads.
"""

from __future__ import annotations

import re
import time
from typing import List, Optional, Set

from opal.engine.capture import (
    QUOTES,
    capture_binding,
    capture_quoted,
    capture_script_body,
)
from opal.engine.cursor import Cursor, Position
from opal.engine.diagnostics import ErrorReason, OpalSyntaxError
from opal.engine.document import AttributeValue, Document, Fragment, Script
from opal.utils.logger import LogLevel, get_logger

logger = get_logger("opal.parser")

# Tag whose body is captured as raw script source
SCRIPT_TAG = "script"

TAG_NAME = re.compile(r"[A-Za-z][A-Za-z0-9_]*")
IDENTIFIER = re.compile(r"[A-Za-z0-9_]+(?:\.[A-Za-z0-9_]+)*")
COMMENT = re.compile(r"!--[\s\S]*?-->")


class ParseState:
    """Scanning state of a single parse."""

    __slots__ = ("cursor", "scripts", "fragments", "stack", "shorthands", "count")

    def __init__(self, source: str, path: Optional[str] = None) -> None:
        self.cursor = Cursor(source, path)
        self.scripts: List[Script] = []
        self.fragments: List[Fragment] = []
        self.stack: List[Fragment] = []
        # shorthand bindings of the tag being parsed
        self.shorthands: Set[str] = set()
        self.count = 0

    def error(
        self,
        reason: ErrorReason,
        message: str,
        position: Optional[Position] = None,
    ) -> OpalSyntaxError:
        return self.cursor.error(reason, message, position)

    def attach(self, fragment: Fragment) -> None:
        """Attach to the innermost open fragment, or the top level."""
        if self.stack:
            self.stack[-1].add_child(fragment)
        else:
            self.fragments.append(fragment)
        self.count += 1


class OpalParser:
    """
    Parser for Opal sources.

    Each call to ``parse`` starts from a fresh ``ParseState``; the parser
    itself only holds the source and its display path.

    Example:
        parser = OpalParser(source, "src/index.opal")
        document = parser.parse()
        print(document.fragments)
    """

    def __init__(self, source: str, path: Optional[str] = None) -> None:
        self.source = source
        self.path = path

    @staticmethod
    def load(source: str, path: Optional[str] = None) -> Document:
        """Parse ``source`` in one call."""
        return OpalParser(source, path).parse()

    def parse(self) -> Document:
        """
        Parse the source into a Document.

        Returns:
            Document with scripts and root fragments

        Raises:
            OpalSyntaxError: On the first syntax error
        """
        state = ParseState(self.source, self.path)
        cursor = state.cursor
        started = time.perf_counter()

        while True:
            cursor.skip_whitespace()
            if not cursor.has_next():
                break

            if cursor.current != "<":
                raise state.error(ErrorReason.UNEXPECTED_CHARACTER, "Unexpected character")

            tag_start = cursor.position()
            cursor.advance()
            if not cursor.has_next():
                raise state.error(
                    ErrorReason.UNEXPECTED_CHARACTER,
                    "Expected tag name after <",
                )

            if cursor.current == "!":
                cursor.capture(COMMENT, "comment")
            elif cursor.current == "/":
                self._parse_closing_tag(state, tag_start)
            else:
                self._parse_opening_tag(state, tag_start)

        if state.stack:
            raise state.error(
                ErrorReason.UNCLOSED_TAG,
                f"Unclosed tag <{state.stack[-1].name}>",
            )

        document = Document(scripts=state.scripts, fragments=state.fragments)

        if logger.is_enabled_for(LogLevel.DEBUG):
            logger.debug(
                "Parsed document",
                path=self.path or "<source>",
                fragments=state.count,
                scripts=len(document.scripts),
                elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
            )

        return document

    def _parse_closing_tag(self, state: ParseState, tag_start: Position) -> None:
        """Parse ``</name>`` and close the innermost fragment."""
        cursor = state.cursor
        cursor.advance()

        name = cursor.capture(TAG_NAME, "tag name")

        if not state.stack:
            raise state.error(
                ErrorReason.MISMATCHED_CLOSING_TAG,
                f"Closing tag </{name}> before any tag has been opened",
                tag_start,
            )

        current = state.stack[-1]
        if current.name != name:
            raise state.error(
                ErrorReason.MISMATCHED_CLOSING_TAG,
                f"Closing tag </{name}> before </{current.name}>",
                tag_start,
            )

        if cursor.current != ">":
            raise state.error(ErrorReason.UNEXPECTED_CHARACTER, "Expected >")

        state.stack.pop()
        state.attach(current)
        cursor.advance()

    def _parse_opening_tag(self, state: ParseState, tag_start: Position) -> None:
        """Parse an opening tag with its attributes and bindings."""
        cursor = state.cursor

        cursor.skip_whitespace()
        name = cursor.capture(TAG_NAME, "tag name")

        fragment = Fragment(name=name, line=tag_start.line, column=tag_start.column)
        state.shorthands = set()

        cursor.skip_whitespace()

        while cursor.has_next():
            char = cursor.current

            if char == "/":
                if cursor.advance() != ">":
                    raise state.error(ErrorReason.UNEXPECTED_CHARACTER, "Expected >")
                cursor.advance()
                state.attach(fragment)
                return

            if char == ">":
                if name == SCRIPT_TAG:
                    source = capture_script_body(cursor)
                    state.scripts.append(Script(source=source, attributes=fragment.attributes))
                    return

                state.stack.append(fragment)
                cursor.advance()
                if not cursor.has_next():
                    raise state.error(
                        ErrorReason.MISSING_CLOSING_TAG,
                        f"Missing closing tag for <{name}>. Did you mean to use />?",
                    )
                return

            if char == "{":
                self._parse_shorthand_binding(state, fragment)
            else:
                self._parse_attribute(state, fragment)

        raise state.error(
            ErrorReason.UNCLOSED_TAG,
            f"Unexpected end of input inside <{name}> tag",
        )

    def _parse_shorthand_binding(self, state: ParseState, fragment: Fragment) -> None:
        """Parse ``{name}``."""
        cursor = state.cursor
        cursor.advance()
        cursor.skip_whitespace()

        start = cursor.position()
        name = cursor.capture(IDENTIFIER, "shorthand binding name")

        cursor.skip_whitespace()
        if cursor.current != "}":
            raise state.error(
                ErrorReason.UNEXPECTED_CHARACTER,
                "Expected } to complete shorthand binding",
            )

        if name in fragment.bindings:
            raise state.error(
                ErrorReason.DUPLICATE_BINDING,
                f"Binding {name} already set",
                start,
            )
        fragment.bindings[name] = name
        state.shorthands.add(name)

        cursor.advance()
        cursor.skip_whitespace()

    def _parse_attribute(self, state: ParseState, fragment: Fragment) -> None:
        """Parse ``name``, ``name="value"`` or ``name={expr}``."""
        cursor = state.cursor

        start = cursor.position()
        name = cursor.capture(IDENTIFIER, "attribute name")

        if cursor.current == "=":
            char = cursor.advance()

            if char in QUOTES:
                self._set_attribute(state, fragment, name, capture_quoted(cursor), start)
            elif char == "{":
                self._set_binding(state, fragment, name, capture_binding(cursor), start)
            elif char == "`":
                raise state.error(
                    ErrorReason.UNSUPPORTED_TEMPLATE_LITERAL,
                    "Template strings are not supported yet",
                )
            else:
                raise state.error(
                    ErrorReason.EXPECTED_ATTRIBUTE_VALUE,
                    f"Expected value after {name}=",
                )
        else:
            # bare attributes are shorthand for =true
            self._set_attribute(state, fragment, name, True, start)

        cursor.skip_whitespace()

    def _set_attribute(
        self,
        state: ParseState,
        fragment: Fragment,
        name: str,
        value: AttributeValue,
        position: Position,
    ) -> None:
        if name in fragment.attributes:
            raise state.error(
                ErrorReason.DUPLICATE_ATTRIBUTE,
                f"Attribute {name} already set",
                position,
            )
        fragment.attributes[name] = value

    def _set_binding(
        self,
        state: ParseState,
        fragment: Fragment,
        name: str,
        source: str,
        position: Position,
    ) -> None:
        # an explicit expression replaces an earlier shorthand of the same name
        if name in fragment.bindings and name not in state.shorthands:
            raise state.error(
                ErrorReason.DUPLICATE_BINDING,
                f"Binding {name} already set",
                position,
            )
        state.shorthands.discard(name)
        fragment.bindings[name] = source


def parse(source: str, path: Optional[str] = None) -> Document:
    """
    Parse an Opal source.

    Args:
        source: Complete source text
        path: Display path used in diagnostics

    Returns:
        Parsed Document
    """
    return OpalParser(source, path).parse()
