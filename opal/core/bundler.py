"""
Opal Bundler Integration
========================

Load hook used by bundlers and the development server. A load either
produces compiled JavaScript or a list of build messages; syntax errors
never escape as exceptions.

Example:
    bundler = Bundler(root=Path.cwd())
    result = await bundler.load("src/index.opal")
    if result.errors:
        for message in result.errors:
            print(message)
"""

from __future__ import annotations

import hashlib
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import aiofiles

from opal.engine.compiler import CompiledModule, OpalCompiler
from opal.engine.diagnostics import OpalSyntaxError
from opal.utils.logger import get_logger

logger = get_logger("opal.bundler")

# Files handled by the load hook
FILTER = re.compile(r"\.opal$")


@dataclass
class BuildMessage:
    """Error or warning reported back to the bundler."""
    text: str
    path: Optional[str] = None
    line: Optional[int] = None
    column: Optional[int] = None
    excerpt: str = ""
    reason: Optional[str] = None

    @classmethod
    def from_syntax_error(cls, error: OpalSyntaxError) -> "BuildMessage":
        return cls(
            text=error.message,
            path=error.path,
            line=error.line,
            column=error.column,
            excerpt=error.excerpt,
            reason=error.reason.value,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "location": {
                "file": self.path,
                "line": self.line,
                "column": self.column,
                "lineText": self.excerpt,
            },
            "reason": self.reason,
        }

    def __str__(self) -> str:
        location = self.path or "<source>"
        if self.line is not None:
            location = f"{location}:{self.line}:{self.column}"
        text = f"{location}: {self.text}"
        if self.excerpt:
            text = f"{text}\n{self.excerpt}"
        return text


@dataclass
class LoadResult:
    """Outcome of loading one file."""
    contents: Optional[str] = None
    errors: List[BuildMessage] = field(default_factory=list)
    warnings: List[BuildMessage] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors


class ModuleCache:
    """
    LRU cache for compiled modules.

    Keys combine the file path with a hash of its contents, so an edited
    file misses the cache.
    """

    def __init__(self, max_size: int = 64) -> None:
        self.max_size = max_size
        self._cache: Dict[Tuple[str, str], CompiledModule] = {}
        self._access_order: List[Tuple[str, str]] = []

    def get(self, key: Tuple[str, str]) -> Optional[CompiledModule]:
        """Get compiled module from cache."""
        if key in self._cache:
            self._access_order.remove(key)
            self._access_order.append(key)
            return self._cache[key]
        return None

    def set(self, key: Tuple[str, str], module: CompiledModule) -> None:
        """Add compiled module to cache."""
        if key in self._cache:
            self._access_order.remove(key)
        elif len(self._cache) >= self.max_size:
            # Evict least recently used
            oldest = self._access_order.pop(0)
            del self._cache[oldest]

        self._cache[key] = module
        self._access_order.append(key)

    def clear(self) -> None:
        self._cache.clear()
        self._access_order.clear()

    def __contains__(self, key: Tuple[str, str]) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)


class Bundler:
    """
    Loads and compiles ``.opal`` files.

    Args:
        root: Project root; display paths are relative to it
        compiler: Compiler to use (default: ``OpalCompiler()``)
        cache_size: Maximum number of cached modules
    """

    def __init__(
        self,
        root: Union[str, Path, None] = None,
        compiler: Optional[OpalCompiler] = None,
        cache_size: int = 64,
    ) -> None:
        self.root = Path(root) if root is not None else Path.cwd()
        self.compiler = compiler or OpalCompiler()
        self.cache = ModuleCache(cache_size)

    def accepts(self, path: Union[str, Path]) -> bool:
        """Check whether the load hook handles ``path``."""
        return FILTER.search(str(path)) is not None

    def resolve(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        return path if path.is_absolute() else self.root / path

    def display_path(self, path: Union[str, Path]) -> str:
        """Path shown in diagnostics, relative to the root when possible."""
        path = self.resolve(path)
        try:
            return path.relative_to(self.root).as_posix()
        except ValueError:
            return path.as_posix()

    async def load(self, path: Union[str, Path]) -> LoadResult:
        """
        Load and compile one file.

        Returns:
            LoadResult with either ``contents`` or ``errors``
        """
        resolved = self.resolve(path)
        display = self.display_path(resolved)

        try:
            async with aiofiles.open(resolved, "r", encoding="utf-8") as f:
                source = await f.read()
        except FileNotFoundError:
            logger.error("File not found", path=display)
            return LoadResult(errors=[BuildMessage(f"File not found: {display}", path=display)])

        key = (str(resolved), hashlib.md5(source.encode("utf-8")).hexdigest())
        module = self.cache.get(key)
        if module is not None:
            logger.debug("Cache hit", path=display)
            return LoadResult(contents=module.code)

        try:
            module = self.compiler.compile(source, display)
        except OpalSyntaxError as e:
            logger.error(
                "Syntax error",
                path=display,
                reason=e.reason.value,
                line=e.line,
                column=e.column,
            )
            return LoadResult(errors=[BuildMessage.from_syntax_error(e)])

        self.cache.set(key, module)
        return LoadResult(contents=module.code)

    async def build(
        self,
        entry: Union[str, Path],
        outfile: Union[str, Path],
    ) -> LoadResult:
        """
        Compile ``entry`` and write the result to ``outfile``.

        Nothing is written when the build fails.
        """
        started = time.perf_counter()
        result = await self.load(entry)

        if not result.ok:
            return result

        output = self.resolve(outfile)
        output.parent.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(output, "w", encoding="utf-8") as f:
            await f.write(result.contents or "")

        logger.info(
            "Build complete",
            entry=self.display_path(entry),
            outfile=self.display_path(output),
            elapsed_ms=round((time.perf_counter() - started) * 1000, 3),
        )

        return result
