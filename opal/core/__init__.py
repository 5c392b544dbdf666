"""
Opal Core Module
================

Build and serve tooling around the engine: configuration, the bundler
load hook and the development server.
"""

from opal.core.config import Config, load_config
from opal.core.bundler import Bundler, BuildMessage, LoadResult
from opal.core.server import DevServer, generate_index

__all__ = [
    "Config",
    "load_config",
    "Bundler",
    "BuildMessage",
    "LoadResult",
    "DevServer",
    "generate_index",
]
