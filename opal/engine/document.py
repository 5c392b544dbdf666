"""
Opal Document Model
===================

Parsed representation of an ``.opal`` source:

    Document
    ├── scripts:   [Script]     raw bodies of <script> blocks
    └── fragments: [Fragment]   root elements, each with nested children

Attribute values form a closed union: a quoted literal is a ``str``, a bare
attribute (``<box visible />``) is ``True``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Literal, Union

import orjson

AttributeValue = Union[str, Literal[True]]


@dataclass
class Script:
    """Raw script block found inside a ``<script>`` tag."""
    source: str
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)

    @property
    def lang(self) -> str:
        """Declared language, ``""`` when the tag has no ``lang``."""
        lang = self.attributes.get("lang", "")
        return lang if isinstance(lang, str) else ""

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        data["source"] = self.source
        return data


@dataclass
class Fragment:
    """
    One element node of the fragment tree.

    ``line`` and ``column`` locate the opening ``<`` and are ignored when
    comparing fragments.
    """
    name: str
    attributes: Dict[str, AttributeValue] = field(default_factory=dict)
    bindings: Dict[str, str] = field(default_factory=dict)
    children: List["Fragment"] = field(default_factory=list)
    line: int = field(default=0, compare=False, repr=False)
    column: int = field(default=0, compare=False, repr=False)

    def add_child(self, child: "Fragment") -> None:
        """Add a child fragment."""
        self.children.append(child)

    def walk(self) -> Iterator["Fragment"]:
        """Yield this fragment and all descendants in document order."""
        stack = [self]
        while stack:
            fragment = stack.pop()
            yield fragment
            stack.extend(reversed(fragment.children))

    def find_by_name(self, name: str) -> List["Fragment"]:
        """Find this fragment and descendants with the given name."""
        return [fragment for fragment in self.walk() if fragment.name == name]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a dictionary, omitting empty members."""
        data: Dict[str, Any] = {"name": self.name}
        if self.attributes:
            data["attributes"] = dict(self.attributes)
        if self.bindings:
            data["bindings"] = dict(self.bindings)
        if self.children:
            data["children"] = [child.to_dict() for child in self.children]
        return data


@dataclass
class Document:
    """Complete parse result: scripts plus the root fragments."""
    scripts: List[Script] = field(default_factory=list)
    fragments: List[Fragment] = field(default_factory=list)

    def walk(self) -> Iterator[Fragment]:
        """Yield every fragment in document order."""
        stack = list(reversed(self.fragments))
        while stack:
            fragment = stack.pop()
            yield fragment
            stack.extend(reversed(fragment.children))

    def find(self, name: str) -> List[Fragment]:
        """Find all fragments with the given name."""
        return [fragment for fragment in self.walk() if fragment.name == name]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scripts": [script.to_dict() for script in self.scripts],
            "fragments": [fragment.to_dict() for fragment in self.fragments],
        }

    def to_json(self, pretty: bool = False) -> str:
        """Serialize with orjson."""
        option = orjson.OPT_INDENT_2 if pretty else 0
        return orjson.dumps(self.to_dict(), option=option).decode("utf-8")
